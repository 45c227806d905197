from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.auth import current_active_user
from core.exceptions import InventoryError, to_http_exception
from core.logger import get_logger
from db.database import get_async_session
from db.ingredient import Ingredient as IngredientModel
from db.inventory.event import InventoryEvent as InventoryEventModel
from db.users import User
from schemas.inventory import InventoryEventCreate, InventoryEventRead, InventoryEventType
from services.ledger import apply_delta, apply_stock_change, set_count

router = APIRouter()
logger = get_logger("routers.inventory")


def _events_query():
    return select(InventoryEventModel).options(selectinload(InventoryEventModel.ingredient))


@router.get("/events", response_model=List[InventoryEventRead])
async def list_inventory_events(
    limit: int = Query(default=50, ge=1, le=500),
    event_type: Optional[InventoryEventType] = None,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """Latest inventory events, newest first"""
    stmt = _events_query().order_by(InventoryEventModel.created_at.desc()).limit(limit)
    if event_type:
        stmt = stmt.where(InventoryEventModel.event_type == event_type)
    res = await db.execute(stmt)
    return [InventoryEventRead(**e.to_schema) for e in res.scalars().all()]


@router.get("/events/ingredient/{ingredient_id}", response_model=List[InventoryEventRead])
async def list_ingredient_events(
    ingredient_id: UUID,
    limit: int = Query(default=50, ge=1, le=500),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    if await db.get(IngredientModel, ingredient_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Ingredient with id {ingredient_id} not found")
    res = await db.execute(
        _events_query()
        .where(InventoryEventModel.ingredient_id == ingredient_id)
        .order_by(InventoryEventModel.created_at.desc())
        .limit(limit)
    )
    return [InventoryEventRead(**e.to_schema) for e in res.scalars().all()]


@router.post("/events", response_model=InventoryEventRead, status_code=status.HTTP_201_CREATED)
async def create_inventory_event(
    payload: InventoryEventCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """
    Record a manual stock change.

    - count sets the on-hand amount; the event stores the derived delta
    - every other type applies `quantity` as a signed delta, never below zero
    """
    try:
        if payload.event_type == "count":
            compute = set_count(payload.quantity)
        else:
            compute = apply_delta(payload.quantity)
        change = await apply_stock_change(
            db,
            payload.ingredient_id,
            compute,
            event_type=payload.event_type,
            source=payload.source or "Manual entry",
            notes=payload.notes,
            user_id=user.id,
        )
        await db.commit()
    except InventoryError as e:
        await db.rollback()
        raise to_http_exception(e)
    except Exception:
        await db.rollback()
        logger.exception("Failed to record %s for ingredient %s", payload.event_type, payload.ingredient_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to record inventory event")

    res = await db.execute(_events_query().where(InventoryEventModel.id == change.event.id))
    return InventoryEventRead(**res.scalar_one().to_schema)
