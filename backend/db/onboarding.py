import uuid
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from .database import Base


class OnboardingProgress(Base):
    """Where a user is in the setup wizard, persisted so it survives reloads"""
    __tablename__ = "onboarding_progress"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    restaurant_id = Column(UUID(as_uuid=True), ForeignKey("restaurants.id", ondelete="SET NULL"), nullable=True)
    current_step = Column(Integer, nullable=False, default=1)
    completed_steps = Column(JSON, nullable=False, default=list)
    setup_health_score = Column(Integer, nullable=False, default=0)
    data = Column(JSON, nullable=False, default=dict)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "restaurant_id": self.restaurant_id,
            "current_step": int(self.current_step),
            "completed_steps": sorted(int(s) for s in (self.completed_steps or [])),
            "setup_health_score": int(self.setup_health_score or 0),
            "data": dict(self.data or {}),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
