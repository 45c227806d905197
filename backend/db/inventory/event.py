import uuid

from sqlalchemy import Column, DateTime, Float, ForeignKey, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


EVENT_TYPES = ("sale", "receiving", "adjustment", "waste", "transfer", "count")


class InventoryEvent(Base):
    __tablename__ = "inventory_events"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    ingredient_id = Column(
        UUID(as_uuid=True),
        ForeignKey("ingredients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    event_type = Column(Text, nullable=False, index=True)  # one of EVENT_TYPES

    # Signed delta actually applied (new_stock - previous_stock)
    quantity = Column(Float, nullable=False)
    previous_stock = Column(Float, nullable=False)
    new_stock = Column(Float, nullable=False)
    # Requested decrease that could not be applied because stock hit zero
    shortfall = Column(Float, nullable=False, default=0)

    source = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    ingredient = relationship("Ingredient")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "ingredient_id": self.ingredient_id,
            "ingredient_name": self.ingredient.name if "ingredient" in self.__dict__ and self.ingredient else None,
            "event_type": self.event_type,
            "quantity": float(self.quantity),
            "previous_stock": float(self.previous_stock),
            "new_stock": float(self.new_stock),
            "shortfall": float(self.shortfall or 0),
            "source": self.source,
            "notes": self.notes,
            "user_id": self.user_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
