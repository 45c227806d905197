from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


StorageLocation = Literal["walk_in_cooler", "freezer", "dry_storage", "bar", "other"]


class IngredientRead(BaseModel):
    id: UUID
    name: str
    category: str
    unit: str
    storage_location: Optional[str] = None
    current_stock: float
    reorder_point: float
    par_level: float
    unit_cost: float
    shelf_life_days: Optional[int] = None
    allergens: List[str] = []
    vendor_id: Optional[UUID] = None
    vendor_sku: Optional[str] = None
    is_active: bool = True


class IngredientCreate(BaseModel):
    name: str
    category: str = "other"
    unit: str
    storage_location: Optional[StorageLocation] = None
    current_stock: float = Field(default=0, ge=0)
    reorder_point: float = Field(default=0, ge=0)
    par_level: float = Field(default=0, ge=0)
    unit_cost: float = Field(default=0, ge=0)
    shelf_life_days: Optional[int] = Field(default=None, ge=0)
    allergens: List[str] = []
    vendor_id: Optional[UUID] = None
    vendor_sku: Optional[str] = None

    @field_validator("name", "unit", "category")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v


class IngredientUpdate(BaseModel):
    """Partial update. Stock is not editable here; use inventory events."""
    name: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None
    storage_location: Optional[StorageLocation] = None
    reorder_point: Optional[float] = Field(default=None, ge=0)
    par_level: Optional[float] = Field(default=None, ge=0)
    unit_cost: Optional[float] = Field(default=None, ge=0)
    shelf_life_days: Optional[int] = Field(default=None, ge=0)
    allergens: Optional[List[str]] = None
    vendor_id: Optional[UUID] = None
    vendor_sku: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", "unit", "category")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v
