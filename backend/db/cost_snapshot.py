import uuid
from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from .database import Base


class CostSnapshot(Base):
    """Cost of one recipe on the day a snapshot was taken."""
    __tablename__ = "cost_snapshots"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    snapshot_date = Column(Date, nullable=False, index=True)
    recipe_id = Column(UUID(as_uuid=True), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True)
    recipe_name = Column(String, nullable=False)
    total_cost = Column(Float, nullable=False, default=0)
    menu_price = Column(Float, nullable=True)
    food_cost_pct = Column(Float, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "snapshot_date": self.snapshot_date,
            "recipe_id": self.recipe_id,
            "recipe_name": self.recipe_name,
            "total_cost": float(self.total_cost or 0),
            "menu_price": float(self.menu_price) if self.menu_price is not None else None,
            "food_cost_pct": float(self.food_cost_pct) if self.food_cost_pct is not None else None,
        }


class CostSnapshotSummary(Base):
    """One row per week (Monday), overwritten by later snapshots in the same week."""
    __tablename__ = "cost_snapshot_summaries"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    week_start = Column(Date, nullable=False, unique=True)
    avg_food_cost_pct = Column(Float, nullable=False, default=0)
    total_recipes = Column(Integer, nullable=False, default=0)
    recipes_on_target = Column(Integer, nullable=False, default=0)
    recipes_warning = Column(Integer, nullable=False, default=0)
    recipes_high = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "week_start": self.week_start,
            "avg_food_cost_pct": float(self.avg_food_cost_pct or 0),
            "total_recipes": self.total_recipes,
            "recipes_on_target": self.recipes_on_target,
            "recipes_warning": self.recipes_warning,
            "recipes_high": self.recipes_high,
        }
