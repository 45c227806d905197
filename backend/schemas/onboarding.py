from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class OnboardingRead(BaseModel):
    id: UUID
    user_id: UUID
    restaurant_id: Optional[UUID] = None
    current_step: int
    completed_steps: List[int] = []
    setup_health_score: int = 0
    data: dict = {}
    completed_at: Optional[str] = None


class OnboardingUpdate(BaseModel):
    current_step: Optional[int] = None
    restaurant_id: Optional[UUID] = None
    # Shallow-merged into the stored data
    data: Optional[dict] = None


class CompleteStepRequest(BaseModel):
    step: int
    health_delta: int = Field(default=0)
    data: Optional[dict] = None
