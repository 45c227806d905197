from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user
from core.exceptions import InventoryError, to_http_exception
from db.database import get_async_session
from db.restaurant import Restaurant as RestaurantModel
from db.users import User
from schemas.onboarding import CompleteStepRequest, OnboardingRead, OnboardingUpdate
from services.onboarding import complete_step, get_or_create_progress, update_progress

router = APIRouter()


@router.get("/", response_model=OnboardingRead)
async def get_onboarding(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """Current user's wizard progress; created on first access"""
    progress = await get_or_create_progress(db, user.id)
    return OnboardingRead(**progress.to_schema)


@router.patch("/", response_model=OnboardingRead)
async def patch_onboarding(
    payload: OnboardingUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    progress = await get_or_create_progress(db, user.id)

    if payload.restaurant_id is not None:
        restaurant = await db.get(RestaurantModel, payload.restaurant_id)
        if restaurant is None or restaurant.owner_id != user.id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Restaurant not found")

    try:
        update_progress(
            progress,
            current_step=payload.current_step,
            restaurant_id=payload.restaurant_id,
            data=payload.data,
        )
        await db.commit()
    except InventoryError as e:
        await db.rollback()
        raise to_http_exception(e)

    await db.refresh(progress)
    return OnboardingRead(**progress.to_schema)


@router.post("/complete-step", response_model=OnboardingRead)
async def complete_onboarding_step(
    payload: CompleteStepRequest,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """Mark a step done, move to the next one and adjust the setup health score"""
    progress = await get_or_create_progress(db, user.id)
    try:
        complete_step(progress, payload.step, payload.health_delta, payload.data)
        await db.commit()
    except InventoryError as e:
        await db.rollback()
        raise to_http_exception(e)

    await db.refresh(progress)
    return OnboardingRead(**progress.to_schema)
