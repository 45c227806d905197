from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class RecipeIngredientIn(BaseModel):
    ingredient_id: UUID
    quantity: float = Field(ge=0)
    unit: str

    @field_validator("unit")
    @classmethod
    def _strip_unit(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("unit is required")
        return v


class RecipeIngredientRead(BaseModel):
    ingredient_id: UUID
    name: Optional[str] = None
    quantity: float
    unit: str


class RecipeRead(BaseModel):
    id: UUID
    name: str
    category: str
    yield_amount: float
    yield_unit: str
    menu_price: Optional[float] = None
    prep_time_minutes: Optional[int] = None
    instructions: Optional[str] = None
    pos_item_id: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool = True
    created_at: Optional[str] = None
    ingredients: List[RecipeIngredientRead] = []


class RecipeCreate(BaseModel):
    name: str
    category: str = "main"
    yield_amount: float = Field(default=1, gt=0)
    yield_unit: str = "portion"
    menu_price: Optional[float] = Field(default=None, ge=0)
    prep_time_minutes: Optional[int] = Field(default=None, ge=0)
    instructions: Optional[str] = None
    pos_item_id: Optional[str] = None
    image_url: Optional[str] = None
    ingredients: List[RecipeIngredientIn] = []

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v


class RecipeUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    yield_amount: Optional[float] = Field(default=None, gt=0)
    yield_unit: Optional[str] = None
    menu_price: Optional[float] = Field(default=None, ge=0)
    prep_time_minutes: Optional[int] = Field(default=None, ge=0)
    instructions: Optional[str] = None
    pos_item_id: Optional[str] = None
    image_url: Optional[str] = None
    is_active: Optional[bool] = None
    # When provided, replaces the whole ingredient list
    ingredients: Optional[List[RecipeIngredientIn]] = None


class CostLine(BaseModel):
    ingredient_id: UUID
    name: str
    quantity: float
    unit: str
    unit_cost: float
    line_cost: float
    percentage: float


class RecipeCostBreakdown(BaseModel):
    recipe_id: UUID
    name: str
    category: str
    yield_amount: float
    yield_unit: str
    menu_price: Optional[float] = None
    total_cost: float
    cost_per_unit: float
    food_cost_pct: Optional[float] = None
    status: Optional[str] = None
    lines: List[CostLine] = []


class MenuEngineeringItem(BaseModel):
    recipe_id: UUID
    name: str
    category: str
    menu_price: float
    cost_per_portion: float
    profit: float
    units_sold: float
    classification: str


class MenuEngineeringReport(BaseModel):
    average_profit: float
    average_units_sold: float
    items: List[MenuEngineeringItem] = []


class RecipeStep(BaseModel):
    step: int
    instruction: str


class RecipeStepsResponse(BaseModel):
    steps: List[RecipeStep] = []
    saved: bool = False


class RecipeImageUpdate(BaseModel):
    image_url: str
