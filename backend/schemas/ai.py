from typing import Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ParLevelIngredient(BaseModel):
    id: UUID
    name: str
    category: str = "other"
    unit: str
    current_stock: float = 0
    storage_location: Optional[str] = None


class ParLevelRequest(BaseModel):
    # Omitted -> every active ingredient
    ingredient_ids: Optional[List[UUID]] = None
    concept_type: Optional[str] = None


class ParLevelSuggestion(BaseModel):
    par_level: float
    reorder_point: float
    reasoning: str = "Based on industry standards"


class ParLevelResponse(BaseModel):
    suggestions: Dict[str, ParLevelSuggestion] = {}


class ParLevelApplyItem(BaseModel):
    ingredient_id: UUID
    par_level: float = Field(ge=0)
    reorder_point: float = Field(ge=0)


class ParLevelApplyRequest(BaseModel):
    items: List[ParLevelApplyItem] = Field(min_length=1)


class MarginSuggestion(BaseModel):
    type: Literal["substitution", "portion", "pricing", "sourcing", "technique"]
    title: str
    description: str
    impact: Literal["low", "medium", "high"]
    estimated_savings: Optional[str] = None


class MarginOptimization(BaseModel):
    summary: str
    target_food_cost_pct: Optional[float] = None
    potential_savings: Optional[float] = None
    suggestions: List[MarginSuggestion] = []


class RecipeStepsRequest(BaseModel):
    # Write the generated steps into the recipe's instructions
    save: bool = False
