"""Setup-wizard progress per user."""
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import OnboardingStepError
from core.logger import get_logger
from db.onboarding import OnboardingProgress

logger = get_logger("onboarding")

STEPS = {
    1: "restaurant_basics",
    2: "menu_import",
    3: "recipe_approval",
    4: "storage_setup",
    5: "vendor_setup",
    6: "pos_connect",
    7: "automation",
    8: "go_live",
}
FIRST_STEP = min(STEPS)
LAST_STEP = max(STEPS)


def _check_step(step: int):
    if step not in STEPS:
        raise OnboardingStepError(f"Step must be between {FIRST_STEP} and {LAST_STEP}, got {step}")


async def get_or_create_progress(db: AsyncSession, user_id: UUID) -> OnboardingProgress:
    res = await db.execute(select(OnboardingProgress).where(OnboardingProgress.user_id == user_id))
    progress = res.scalar_one_or_none()
    if progress is not None:
        return progress

    progress = OnboardingProgress(
        user_id=user_id,
        current_step=FIRST_STEP,
        completed_steps=[],
        setup_health_score=0,
        data={},
    )
    db.add(progress)
    try:
        await db.commit()
    except IntegrityError:
        # Created concurrently; use the existing row
        await db.rollback()
        res = await db.execute(select(OnboardingProgress).where(OnboardingProgress.user_id == user_id))
        return res.scalar_one()
    await db.refresh(progress)
    logger.info("Started onboarding for user %s", user_id)
    return progress


def update_progress(
    progress: OnboardingProgress,
    *,
    current_step: Optional[int] = None,
    restaurant_id: Optional[UUID] = None,
    data: Optional[dict] = None,
) -> OnboardingProgress:
    if current_step is not None:
        _check_step(current_step)
        progress.current_step = current_step
    if restaurant_id is not None:
        progress.restaurant_id = restaurant_id
    if data:
        progress.data = {**(progress.data or {}), **data}
    return progress


def complete_step(
    progress: OnboardingProgress,
    step: int,
    health_delta: int = 0,
    data: Optional[dict] = None,
) -> OnboardingProgress:
    _check_step(step)
    progress.completed_steps = sorted({int(s) for s in (progress.completed_steps or [])} | {step})
    progress.current_step = min(step + 1, LAST_STEP)
    progress.setup_health_score = max(0, min(100, int(progress.setup_health_score or 0) + health_delta))
    if data:
        progress.data = {**(progress.data or {}), **data}
    if step == LAST_STEP and progress.completed_at is None:
        progress.completed_at = datetime.now(timezone.utc).replace(tzinfo=None)
        logger.info("User %s finished onboarding", progress.user_id)
    return progress
