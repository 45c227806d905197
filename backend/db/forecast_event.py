import uuid
from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from .database import Base


FORECAST_EVENT_TYPES = ("holiday", "special_event", "reservation", "weather", "promotion", "closure", "custom")


class ForecastEvent(Base):
    """A dated demand adjustment for one restaurant; `closure` days are removed from the forecast."""
    __tablename__ = "forecast_events"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(UUID(as_uuid=True), ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    event_date = Column(Date, nullable=False, index=True)
    event_type = Column(Text, nullable=False, default="custom")  # one of FORECAST_EVENT_TYPES
    # Percent change in expected sales, e.g. 25 or -15
    impact_percent = Column(Float, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "restaurant_id": self.restaurant_id,
            "name": self.name,
            "event_date": self.event_date,
            "event_type": self.event_type,
            "impact_percent": float(self.impact_percent or 0),
            "notes": self.notes,
        }
