from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user
from core.logger import get_logger
from db.database import get_async_session
from db.users import User
from schemas.cost_snapshots import CostSnapshotRead, CostSnapshotSummaryRead
from services import cost_snapshots as snapshots

router = APIRouter()
logger = get_logger("routers.cost_snapshots")


@router.get("/", response_model=List[CostSnapshotSummaryRead])
async def list_weekly_summaries(
    weeks: int = Query(default=4, ge=1, le=52),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """Weekly food-cost trend, latest week first"""
    return [CostSnapshotSummaryRead(**s.to_schema) for s in await snapshots.list_summaries(db, weeks)]


@router.post("/", response_model=CostSnapshotSummaryRead, status_code=status.HTTP_201_CREATED)
async def take_snapshot(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    try:
        summary = await snapshots.take_snapshot(db)
        await db.commit()
        await db.refresh(summary)
    except Exception:
        await db.rollback()
        logger.exception("Failed to take cost snapshot")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to take cost snapshot")
    return CostSnapshotSummaryRead(**summary.to_schema)


@router.get("/recipes/{recipe_id}", response_model=List[CostSnapshotRead])
async def recipe_cost_history(
    recipe_id: UUID,
    limit: int = Query(default=52, ge=1, le=520),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    return [CostSnapshotRead(**s.to_schema) for s in await snapshots.recipe_history(db, recipe_id, limit)]
