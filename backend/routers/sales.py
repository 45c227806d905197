from datetime import timezone
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user
from core.event_bus import SALES_EVENT_INSERTED, AsyncEventBus, get_event_bus
from core.exceptions import RecipeNotFoundError, to_http_exception
from core.logger import get_logger
from db.database import get_async_session
from db.restaurant import Restaurant as RestaurantModel
from db.sales_event import SalesEvent as SalesEventModel
from db.users import User
from schemas.sales import ProcessSaleRequest, ProcessSaleResult, SalesEventCreate, SalesEventRead
from services.depletion import DepletionProcessor
from services.sales_listener import sales_event_payload

router = APIRouter()
logger = get_logger("routers.sales")


@router.post("/", response_model=SalesEventRead, status_code=status.HTTP_201_CREATED)
async def record_sale(
    payload: SalesEventCreate,
    db: AsyncSession = Depends(get_async_session),
    bus: AsyncEventBus = Depends(get_event_bus),
    user: User = Depends(current_active_user),
):
    """Store a sale and publish it; inventory is depleted by the sales listener"""
    if await db.get(RestaurantModel, payload.restaurant_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Restaurant not found")

    items = [item.model_dump(mode="json") for item in payload.items]
    event = SalesEventModel(
        restaurant_id=payload.restaurant_id,
        external_order_id=payload.external_order_id,
        items=items,
    )
    if payload.occurred_at is not None:
        occurred = payload.occurred_at
        if occurred.tzinfo is not None:
            occurred = occurred.astimezone(timezone.utc).replace(tzinfo=None)
        event.occurred_at = occurred
    try:
        db.add(event)
        await db.commit()
        await db.refresh(event)
    except Exception:
        await db.rollback()
        logger.exception("Failed to record sale")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to record sale")

    await bus.publish(SALES_EVENT_INSERTED, sales_event_payload(event))
    return SalesEventRead(**event.to_schema)


@router.get("/", response_model=List[SalesEventRead])
async def list_sales(
    restaurant_id: Optional[UUID] = None,
    limit: int = Query(default=50, ge=1, le=500),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    stmt = select(SalesEventModel).order_by(SalesEventModel.occurred_at.desc()).limit(limit)
    if restaurant_id:
        stmt = stmt.where(SalesEventModel.restaurant_id == restaurant_id)
    res = await db.execute(stmt)
    return [SalesEventRead(**e.to_schema) for e in res.scalars().all()]


@router.post("/process", response_model=ProcessSaleResult)
async def process_sale(
    payload: ProcessSaleRequest,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """Deplete inventory for the given items right away (manual entry)"""
    try:
        return await DepletionProcessor(db).process_sale(payload.items, user_id=user.id)
    except RecipeNotFoundError as e:
        raise to_http_exception(e)
    except Exception:
        logger.exception("Failed to process sale")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to process sale")


@router.post("/{event_id}/reprocess", response_model=SalesEventRead, status_code=status.HTTP_202_ACCEPTED)
async def reprocess_sale(
    event_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    bus: AsyncEventBus = Depends(get_event_bus),
    user: User = Depends(current_active_user),
):
    """Publish a stored sale again when its depletion never went through"""
    event = await db.get(SalesEventModel, event_id)
    if event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Sales event with id {event_id} not found")
    if event.processed_at is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Sales event was already processed")

    await bus.publish(SALES_EVENT_INSERTED, sales_event_payload(event))
    logger.info("Sales event %s queued for reprocessing", event_id)
    return SalesEventRead(**event.to_schema)
