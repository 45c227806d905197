import uuid
from sqlalchemy import JSON, Column, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from .database import Base


class SalesEvent(Base):
    """One POS ticket (or manual entry): a batch of sold recipe quantities"""
    __tablename__ = "sales_events"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    restaurant_id = Column(UUID(as_uuid=True), ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True)
    external_order_id = Column(String, nullable=True, index=True)
    # [{"recipe_id": ..., "recipe_name": ..., "quantity": ...}, ...]
    items = Column(JSON, nullable=True)
    occurred_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)
    # Set once the depletion for this event has been claimed by the listener
    processed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "restaurant_id": self.restaurant_id,
            "external_order_id": self.external_order_id,
            "items": list(self.items or []),
            "occurred_at": self.occurred_at.isoformat() if self.occurred_at else None,
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
        }
