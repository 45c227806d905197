from datetime import date
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


PurchaseOrderStatus = Literal["draft", "approved", "sent", "partial", "received", "cancelled"]
Urgency = Literal["high", "medium", "low"]
SuggestionReason = Literal["low_stock", "forecast_demand"]


class PurchaseOrderItemIn(BaseModel):
    ingredient_id: UUID
    quantity: float = Field(gt=0)
    unit: Optional[str] = None
    # Defaults to the ingredient's unit cost when omitted
    unit_cost: Optional[float] = Field(default=None, ge=0)


class PurchaseOrderItemRead(BaseModel):
    id: UUID
    ingredient_id: UUID
    ingredient_name: Optional[str] = None
    quantity: float
    unit: str
    unit_cost: float
    received_quantity: Optional[float] = None


class PurchaseOrderRead(BaseModel):
    id: UUID
    vendor_id: UUID
    vendor_name: Optional[str] = None
    status: PurchaseOrderStatus
    total_amount: float
    expected_delivery: Optional[date] = None
    notes: Optional[str] = None
    created_by: Optional[UUID] = None
    approved_by: Optional[UUID] = None
    received_at: Optional[str] = None
    created_at: Optional[str] = None
    items: List[PurchaseOrderItemRead] = []


class PurchaseOrderCreate(BaseModel):
    vendor_id: UUID
    expected_delivery: Optional[date] = None
    notes: Optional[str] = None
    items: List[PurchaseOrderItemIn] = Field(min_length=1)


class PurchaseOrderUpdate(BaseModel):
    expected_delivery: Optional[date] = None
    notes: Optional[str] = None


class ReceiveLine(BaseModel):
    item_id: UUID
    received_quantity: float = Field(ge=0)


class PurchaseOrderReceive(BaseModel):
    # Omitted -> every line is received in full
    items: Optional[List[ReceiveLine]] = None


class SuggestedOrderItem(BaseModel):
    ingredient_id: UUID
    ingredient_name: str
    current_stock: float
    par_level: float
    reorder_point: float
    unit: str
    unit_cost: float
    suggested_quantity: float
    reason: SuggestionReason = "low_stock"
    # Forecast demand over the look-ahead window, when the forecast asked for this item
    needed_for_forecast: Optional[float] = None


class SuggestedOrder(BaseModel):
    # None groups ingredients without a vendor
    vendor_id: Optional[UUID] = None
    vendor_name: str
    items: List[SuggestedOrderItem] = []
    total_amount: float
    urgency: Urgency
    reason: str


class SuggestedOrdersResponse(BaseModel):
    suggestions: List[SuggestedOrder] = []
    total_items: int = 0
    total_amount: float = 0
