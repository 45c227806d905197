import uuid
from sqlalchemy import JSON, Boolean, Column, Float, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .database import Base


class Vendor(Base):
    __tablename__ = "vendors"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True, index=True)
    contact_email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    lead_time_days = Column(Integer, nullable=True)
    minimum_order = Column(Float, nullable=True)
    delivery_days = Column(JSON, nullable=False, default=list)
    payment_terms = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    ingredients = relationship("Ingredient", back_populates="vendor")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "contact_email": self.contact_email,
            "phone": self.phone,
            "lead_time_days": self.lead_time_days,
            "minimum_order": self.minimum_order,
            "delivery_days": list(self.delivery_days or []),
            "payment_terms": self.payment_terms,
            "notes": self.notes,
            "is_active": bool(self.is_active),
        }
