from datetime import date
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator


ForecastEventType = Literal["holiday", "special_event", "reservation", "weather", "promotion", "closure", "custom"]
Risk = Literal["high", "medium", "low"]

# Impact used when an event is created without one
DEFAULT_IMPACT = {
    "holiday": 25,
    "special_event": 15,
    "reservation": 10,
    "weather": -15,
    "promotion": 20,
    "closure": -100,
    "custom": 0,
}


def _clean_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    if not v:
        raise ValueError("name is required")
    return v


class ForecastEventRead(BaseModel):
    id: UUID
    restaurant_id: UUID
    name: str
    event_date: date
    event_type: ForecastEventType
    impact_percent: float
    notes: Optional[str] = None


class ForecastEventCreate(BaseModel):
    restaurant_id: UUID
    name: str
    event_date: date
    event_type: ForecastEventType = "custom"
    impact_percent: Optional[float] = Field(default=None, ge=-100, le=500)
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v):
        return _clean_name(v)

    @model_validator(mode="after")
    def _impact(self):
        if self.event_type == "closure":
            self.impact_percent = -100
        elif self.impact_percent is None:
            self.impact_percent = DEFAULT_IMPACT[self.event_type]
        return self


class ForecastEventUpdate(BaseModel):
    name: Optional[str] = None
    event_date: Optional[date] = None
    event_type: Optional[ForecastEventType] = None
    impact_percent: Optional[float] = Field(default=None, ge=-100, le=500)
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v):
        return _clean_name(v)


class ClosureCreate(BaseModel):
    restaurant_id: UUID
    name: str
    event_date: date
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v):
        return _clean_name(v)


class HolidayPreset(BaseModel):
    name: str
    event_date: date
    impact_percent: float


class DishForecast(BaseModel):
    recipe_id: UUID
    recipe_name: str
    category: Optional[str] = None
    predicted_quantity: int
    # 0..95, from how many past days of sales back the prediction
    confidence: int
    menu_price: Optional[float] = None
    # Average event impact over the open forecast days, when there is one
    event_impact: Optional[int] = None


class RecipeUsage(BaseModel):
    name: str
    quantity: float


class IngredientRequirement(BaseModel):
    ingredient_id: UUID
    ingredient_name: str
    unit: str
    # On hand plus still-to-arrive purchase order quantities
    current_stock: float
    pending_quantity: float = 0
    needed_quantity: float
    coverage: float
    risk: Risk
    recipes: List[RecipeUsage] = []


class ForecastResponse(BaseModel):
    start_date: date
    days: int
    dishes: List[DishForecast] = []
    ingredients: List[IngredientRequirement] = []
    has_event_impact: bool = False
    capacity_constrained: bool = False
    max_daily_covers: Optional[int] = None
