from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class AlertRead(BaseModel):
    id: UUID
    type: str
    severity: str
    title: str
    description: Optional[str] = None
    suggested_action: Optional[str] = None
    related_item_id: Optional[UUID] = None
    related_item_type: Optional[str] = None
    is_resolved: bool = False
    resolved_by: Optional[UUID] = None
    resolved_at: Optional[str] = None
    created_at: Optional[str] = None
