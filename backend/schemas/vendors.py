from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


class VendorRead(BaseModel):
    id: UUID
    name: str
    contact_email: Optional[str] = None
    phone: Optional[str] = None
    lead_time_days: Optional[int] = None
    minimum_order: Optional[float] = None
    delivery_days: List[str] = []
    payment_terms: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True


class VendorCreate(BaseModel):
    name: str
    contact_email: Optional[EmailStr] = None
    phone: Optional[str] = None
    lead_time_days: Optional[int] = Field(default=None, ge=0)
    minimum_order: Optional[float] = Field(default=None, ge=0)
    delivery_days: List[str] = []
    payment_terms: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v


class VendorUpdate(BaseModel):
    name: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    phone: Optional[str] = None
    lead_time_days: Optional[int] = Field(default=None, ge=0)
    minimum_order: Optional[float] = Field(default=None, ge=0)
    delivery_days: Optional[List[str]] = None
    payment_terms: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None
