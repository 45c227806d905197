import uuid
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base


CONCEPT_TYPES = ("fine_dining", "casual", "quick_service", "bar", "coffee", "bakery", "cocktail", "multi")
SERVICE_TYPES = ("lunch", "dinner", "brunch", "delivery", "catering", "tasting_menu", "seasonal_menu")


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    address = Column(JSON, nullable=False, default=dict)
    phone = Column(String, nullable=True)
    website = Column(String, nullable=True)
    instagram = Column(String, nullable=True)
    concept_type = Column(Text, nullable=True)
    services = Column(JSON, nullable=False, default=list)
    timezone = Column(String, nullable=False, default="UTC")
    currency = Column(String(3), nullable=False, default="USD")
    # {"monday": {"open": "11:00", "close": "22:00", "closed": false}, ...}
    hours = Column(JSON, nullable=False, default=dict)
    cuisine_tags = Column(JSON, nullable=False, default=list)
    # Dining-room capacity, caps the sales forecast
    seats = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="restaurants")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "address": dict(self.address or {}),
            "phone": self.phone,
            "website": self.website,
            "instagram": self.instagram,
            "concept_type": self.concept_type,
            "services": list(self.services or []),
            "timezone": self.timezone,
            "currency": self.currency,
            "hours": dict(self.hours or {}),
            "cuisine_tags": list(self.cuisine_tags or []),
            "seats": self.seats,
        }
