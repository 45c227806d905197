from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class CostSnapshotRead(BaseModel):
    id: UUID
    snapshot_date: date
    recipe_id: UUID
    recipe_name: str
    total_cost: float
    menu_price: Optional[float] = None
    food_cost_pct: Optional[float] = None


class CostSnapshotSummaryRead(BaseModel):
    id: UUID
    week_start: date
    avg_food_cost_pct: float
    total_recipes: int
    # on target <= 30%, warning <= 35%, high above
    recipes_on_target: int
    recipes_warning: int
    recipes_high: int
