"""Weekly food-cost snapshots of the active menu."""
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from db.cost_snapshot import CostSnapshot, CostSnapshotSummary
from db.recipe import Recipe
from schemas.recipes import RecipeCostBreakdown
from services.costing import cost_breakdown, recipe_with_costs_query
from services.forecast import today

logger = get_logger("cost_snapshots")

ON_TARGET_PCT = 30
WARNING_PCT = 35


def week_start(day: date) -> date:
    """Monday of the week `day` falls in."""
    return day - timedelta(days=day.weekday())


def summarize(breakdowns: Iterable[RecipeCostBreakdown]) -> Dict[str, float]:
    """Counts and average food cost over the recipes that have a menu price."""
    priced = [b.food_cost_pct for b in breakdowns if b.menu_price and b.food_cost_pct is not None]
    return {
        "avg_food_cost_pct": sum(priced) / len(priced) if priced else 0.0,
        "total_recipes": len(priced),
        "recipes_on_target": sum(1 for pct in priced if pct <= ON_TARGET_PCT),
        "recipes_warning": sum(1 for pct in priced if ON_TARGET_PCT < pct <= WARNING_PCT),
        "recipes_high": sum(1 for pct in priced if pct > WARNING_PCT),
    }


async def take_snapshot(db: AsyncSession, on: Optional[date] = None) -> CostSnapshotSummary:
    """
    Record today's cost of every active recipe and refresh the summary for
    the current week. Nothing is committed.
    """
    on = on or today()
    res = await db.execute(recipe_with_costs_query().where(Recipe.is_active.is_(True)).order_by(Recipe.name))
    breakdowns = [cost_breakdown(recipe) for recipe in res.scalars().all()]

    for b in breakdowns:
        db.add(
            CostSnapshot(
                snapshot_date=on,
                recipe_id=b.recipe_id,
                recipe_name=b.name,
                total_cost=b.total_cost,
                menu_price=b.menu_price,
                food_cost_pct=b.food_cost_pct,
            )
        )

    monday = week_start(on)
    res = await db.execute(select(CostSnapshotSummary).where(CostSnapshotSummary.week_start == monday))
    summary = res.scalar_one_or_none()
    if summary is None:
        summary = CostSnapshotSummary(week_start=monday)
        db.add(summary)
    for field, value in summarize(breakdowns).items():
        setattr(summary, field, value)

    await db.flush()
    logger.info(
        "Cost snapshot for week of %s: %d recipe(s), avg food cost %.1f%%",
        monday, summary.total_recipes, summary.avg_food_cost_pct,
    )
    return summary


async def list_summaries(db: AsyncSession, weeks: int = 4, on: Optional[date] = None) -> List[CostSnapshotSummary]:
    since = (on or today()) - timedelta(weeks=weeks)
    res = await db.execute(
        select(CostSnapshotSummary)
        .where(CostSnapshotSummary.week_start >= since)
        .order_by(CostSnapshotSummary.week_start.desc())
    )
    return res.scalars().all()


async def recipe_history(db: AsyncSession, recipe_id: UUID, limit: int = 52) -> List[CostSnapshot]:
    res = await db.execute(
        select(CostSnapshot)
        .where(CostSnapshot.recipe_id == recipe_id)
        .order_by(CostSnapshot.snapshot_date.desc(), CostSnapshot.created_at.desc())
        .limit(limit)
    )
    return res.scalars().all()
