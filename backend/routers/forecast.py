from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user
from core.exceptions import InventoryError, to_http_exception
from core.logger import get_logger
from db.database import get_async_session
from db.forecast_event import ForecastEvent as ForecastEventModel
from db.restaurant import Restaurant as RestaurantModel
from db.users import User
from schemas.forecast import (
    DEFAULT_IMPACT,
    ClosureCreate,
    ForecastEventCreate,
    ForecastEventRead,
    ForecastEventUpdate,
    ForecastResponse,
    HolidayPreset,
)
from services.forecast import get_forecast, today, upcoming_holidays

router = APIRouter()
logger = get_logger("routers.forecast")


async def _restaurant_or_404(db: AsyncSession, restaurant_id: UUID, user: User) -> RestaurantModel:
    restaurant = await db.get(RestaurantModel, restaurant_id)
    if restaurant is None or (restaurant.owner_id != user.id and not user.is_superuser):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Restaurant with id {restaurant_id} not found")
    return restaurant


async def _event_or_404(db: AsyncSession, event_id: UUID, user: User) -> ForecastEventModel:
    event = await db.get(ForecastEventModel, event_id)
    if event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Forecast event with id {event_id} not found")
    await _restaurant_or_404(db, event.restaurant_id, user)
    return event


async def _save(db: AsyncSession, event: ForecastEventModel) -> ForecastEventRead:
    try:
        db.add(event)
        await db.commit()
        await db.refresh(event)
    except Exception:
        await db.rollback()
        logger.exception("Failed to save forecast event %s", event.name)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to save forecast event")
    return ForecastEventRead(**event.to_schema)


@router.get("/", response_model=ForecastResponse)
async def forecast(
    days: int = Query(default=3, ge=1, le=28),
    restaurant_id: Optional[UUID] = None,
    start_date: Optional[date] = None,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """Predicted dishes and ingredient needs for the next few days"""
    try:
        return await get_forecast(db, days=days, restaurant_id=restaurant_id, start=start_date)
    except InventoryError as e:
        raise to_http_exception(e)


@router.get("/holidays", response_model=List[HolidayPreset])
async def holidays(user: User = Depends(current_active_user)):
    """Common holidays with a suggested impact, to add as events"""
    return upcoming_holidays()


@router.get("/events", response_model=List[ForecastEventRead])
async def list_events(
    restaurant_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    await _restaurant_or_404(db, restaurant_id, user)
    stmt = select(ForecastEventModel).where(ForecastEventModel.restaurant_id == restaurant_id)
    if start_date:
        stmt = stmt.where(ForecastEventModel.event_date >= start_date)
    if end_date:
        stmt = stmt.where(ForecastEventModel.event_date <= end_date)
    res = await db.execute(stmt.order_by(ForecastEventModel.event_date))
    return [ForecastEventRead(**e.to_schema) for e in res.scalars().all()]


@router.post("/events", response_model=ForecastEventRead, status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: ForecastEventCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    await _restaurant_or_404(db, payload.restaurant_id, user)
    return await _save(db, ForecastEventModel(**payload.model_dump()))


@router.patch("/events/{event_id}", response_model=ForecastEventRead)
async def update_event(
    event_id: UUID,
    payload: ForecastEventUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    event = await _event_or_404(db, event_id, user)
    data = payload.model_dump(exclude_unset=True)
    for field in ("name", "event_date", "event_type"):
        if field in data and data[field] is None:
            del data[field]
    if data.get("impact_percent", 0) is None:
        data["impact_percent"] = DEFAULT_IMPACT[data.get("event_type", event.event_type)]

    for field, value in data.items():
        setattr(event, field, value)
    if event.event_type == "closure":
        event.impact_percent = -100
    return await _save(db, event)


@router.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    event = await _event_or_404(db, event_id, user)
    await db.delete(event)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/closures", response_model=List[ForecastEventRead])
async def list_closures(
    restaurant_id: UUID,
    include_past: bool = False,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """Upcoming closure days, soonest first"""
    await _restaurant_or_404(db, restaurant_id, user)
    stmt = select(ForecastEventModel).where(
        ForecastEventModel.restaurant_id == restaurant_id,
        ForecastEventModel.event_type == "closure",
    )
    if not include_past:
        stmt = stmt.where(ForecastEventModel.event_date >= today())
    res = await db.execute(stmt.order_by(ForecastEventModel.event_date))
    return [ForecastEventRead(**e.to_schema) for e in res.scalars().all()]


@router.post("/closures", response_model=ForecastEventRead, status_code=status.HTTP_201_CREATED)
async def create_closure(
    payload: ClosureCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """A day the restaurant is shut; the forecast predicts nothing for it"""
    await _restaurant_or_404(db, payload.restaurant_id, user)
    if payload.event_date < today():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Closure date is in the past")
    event = ForecastEventModel(event_type="closure", impact_percent=-100, **payload.model_dump())
    logger.info("Closure on %s for restaurant %s", payload.event_date, payload.restaurant_id)
    return await _save(db, event)
