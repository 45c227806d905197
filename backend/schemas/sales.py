from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SaleItem(BaseModel):
    recipe_id: UUID
    recipe_name: Optional[str] = None
    quantity: float = Field(ge=0)


class DepletedIngredient(BaseModel):
    ingredient_id: UUID
    ingredient_name: str
    # Requested consumption (recipe quantity x units sold), before clamping
    quantity_depleted: float
    # Amount actually removed from stock
    quantity_applied: float
    new_stock: float
    shortfall: float = 0


class ProcessSaleResult(BaseModel):
    success: bool = True
    depleted_ingredients: List[DepletedIngredient] = []


class ProcessSaleRequest(BaseModel):
    items: List[SaleItem] = Field(min_length=1)


class SalesEventCreate(BaseModel):
    restaurant_id: UUID
    external_order_id: Optional[str] = None
    # POS ticket time; defaults to now
    occurred_at: Optional[datetime] = None
    items: List[SaleItem] = Field(min_length=1)


class SalesEventRead(BaseModel):
    id: UUID
    restaurant_id: UUID
    external_order_id: Optional[str] = None
    items: List[dict] = []
    occurred_at: Optional[str] = None
    processed_at: Optional[str] = None
