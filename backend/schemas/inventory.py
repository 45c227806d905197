from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, model_validator


InventoryEventType = Literal["sale", "receiving", "adjustment", "waste", "transfer", "count"]


class InventoryEventRead(BaseModel):
    id: UUID
    ingredient_id: UUID
    ingredient_name: Optional[str] = None
    event_type: str
    quantity: float
    previous_stock: float
    new_stock: float
    shortfall: float = 0
    source: Optional[str] = None
    notes: Optional[str] = None
    user_id: Optional[UUID] = None
    created_at: Optional[str] = None


class InventoryEventCreate(BaseModel):
    """
    Manual stock entry.

    - adjustment / receiving / transfer: `quantity` is a signed delta
    - waste: `quantity` must be negative
    - count: `quantity` is the counted on-hand amount
    Sales are recorded through /sales, not here.
    """
    ingredient_id: UUID
    event_type: Literal["receiving", "adjustment", "waste", "transfer", "count"]
    quantity: float
    source: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _validate_sign(self):
        if self.event_type == "waste" and self.quantity >= 0:
            raise ValueError("waste quantity must be negative")
        if self.event_type == "count" and self.quantity < 0:
            raise ValueError("counted quantity cannot be negative")
        return self
