from typing import Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


ConceptType = Literal["fine_dining", "casual", "quick_service", "bar", "coffee", "bakery", "cocktail", "multi"]
Confidence = Literal["high", "medium", "low"]


class DayHours(BaseModel):
    open: str = ""
    close: str = ""
    closed: bool = True


class BusinessHoursResult(BaseModel):
    hours: Dict[str, DayHours]
    found: bool = False
    resolved_days: List[str] = []
    confidence: Confidence = "low"


class HoursLookupRequest(BaseModel):
    restaurant_name: str
    location: Optional[str] = None

    @field_validator("restaurant_name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("Restaurant name is required")
        return v


class HoursLookupResponse(BaseModel):
    success: bool
    hours: Optional[Dict[str, DayHours]] = None
    source: Optional[str] = None
    confidence: Optional[Confidence] = None
    error: Optional[str] = None


class RestaurantRead(BaseModel):
    id: UUID
    owner_id: UUID
    name: str
    address: dict = {}
    phone: Optional[str] = None
    website: Optional[str] = None
    instagram: Optional[str] = None
    concept_type: Optional[str] = None
    services: List[str] = []
    timezone: str = "UTC"
    currency: str = "USD"
    hours: Dict[str, DayHours] = {}
    cuisine_tags: List[str] = []
    seats: Optional[int] = None


class RestaurantCreate(BaseModel):
    name: str
    address: dict = {}
    phone: Optional[str] = None
    website: Optional[str] = None
    instagram: Optional[str] = None
    concept_type: Optional[ConceptType] = None
    services: List[str] = []
    timezone: str = "UTC"
    currency: str = "USD"
    hours: Dict[str, DayHours] = {}
    cuisine_tags: List[str] = []
    seats: Optional[int] = Field(default=None, gt=0)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("currency")
    @classmethod
    def _currency(cls, v: str) -> str:
        v = (v or "").strip().upper()
        if len(v) != 3:
            raise ValueError("currency must be a 3-letter code (e.g. USD)")
        return v


class RestaurantUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[dict] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    instagram: Optional[str] = None
    concept_type: Optional[ConceptType] = None
    services: Optional[List[str]] = None
    timezone: Optional[str] = None
    currency: Optional[str] = None
    hours: Optional[Dict[str, DayHours]] = None
    cuisine_tags: Optional[List[str]] = None
    seats: Optional[int] = Field(default=None, gt=0)

    @field_validator("currency")
    @classmethod
    def _currency(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().upper()
        if len(v) != 3:
            raise ValueError("currency must be a 3-letter code (e.g. USD)")
        return v
