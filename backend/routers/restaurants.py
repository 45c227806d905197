from typing import List
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user
from core.exceptions import WebSearchError, to_http_exception
from core.logger import get_logger
from db.database import get_async_session
from db.restaurant import Restaurant as RestaurantModel
from db.users import User
from schemas.restaurants import (
    BusinessHoursResult,
    HoursLookupRequest,
    HoursLookupResponse,
    RestaurantCreate,
    RestaurantRead,
    RestaurantUpdate,
)
from services.business_hours import extract_business_hours, lookup_business_hours

router = APIRouter()
logger = get_logger("routers.restaurants")


async def _get_owned_or_404(db: AsyncSession, restaurant_id: UUID, user: User) -> RestaurantModel:
    restaurant = await db.get(RestaurantModel, restaurant_id)
    if restaurant is None or (restaurant.owner_id != user.id and not user.is_superuser):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Restaurant with id {restaurant_id} not found")
    return restaurant


@router.get("/", response_model=List[RestaurantRead])
async def list_my_restaurants(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    res = await db.execute(
        select(RestaurantModel).where(RestaurantModel.owner_id == user.id).order_by(RestaurantModel.created_at)
    )
    return [RestaurantRead(**r.to_schema) for r in res.scalars().all()]


@router.post("/", response_model=RestaurantRead, status_code=status.HTTP_201_CREATED)
async def create_restaurant(
    payload: RestaurantCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    restaurant = RestaurantModel(owner_id=user.id, **payload.model_dump())
    try:
        db.add(restaurant)
        await db.commit()
        await db.refresh(restaurant)
    except Exception:
        await db.rollback()
        logger.exception("Failed to create restaurant %s", payload.name)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create restaurant")
    return RestaurantRead(**restaurant.to_schema)


@router.post("/hours/lookup", response_model=HoursLookupResponse)
async def lookup_hours(
    payload: HoursLookupRequest,
    user: User = Depends(current_active_user),
):
    """Find opening hours on the web for the onboarding wizard"""
    try:
        result = await lookup_business_hours(payload.restaurant_name, payload.location)
    except WebSearchError as e:
        raise to_http_exception(e)
    return HoursLookupResponse(**result)


@router.post("/hours/extract", response_model=BusinessHoursResult)
async def extract_hours(
    content: str = Body(..., embed=True),
    user: User = Depends(current_active_user),
):
    """Run the hours extractor over pasted text"""
    return extract_business_hours(content)


@router.get("/{restaurant_id}", response_model=RestaurantRead)
async def get_restaurant(
    restaurant_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    return RestaurantRead(**(await _get_owned_or_404(db, restaurant_id, user)).to_schema)


@router.patch("/{restaurant_id}", response_model=RestaurantRead)
async def update_restaurant(
    restaurant_id: UUID,
    payload: RestaurantUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    restaurant = await _get_owned_or_404(db, restaurant_id, user)

    data = payload.model_dump(exclude_unset=True)
    if "name" in data:
        name = (data["name"] or "").strip()
        if not name:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="name is required")
        data["name"] = name
    for field in ("address", "services", "hours", "cuisine_tags", "timezone", "currency"):
        if field in data and data[field] is None:
            del data[field]

    for field, value in data.items():
        setattr(restaurant, field, value)
    await db.commit()
    await db.refresh(restaurant)
    return RestaurantRead(**restaurant.to_schema)
