from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user
from core.exceptions import AIGatewayError, InventoryError, to_http_exception
from core.logger import get_logger
from db.database import get_async_session
from db.ingredient import Ingredient as IngredientModel
from db.users import User
from schemas.ai import (
    MarginOptimization,
    ParLevelApplyRequest,
    ParLevelIngredient,
    ParLevelRequest,
    ParLevelResponse,
)
from schemas.ingredient import IngredientRead
from services.ai_suggestions import optimize_margins, suggest_par_levels
from services.costing import get_cost_breakdown

router = APIRouter()
logger = get_logger("routers.ai")


@router.post("/par-levels", response_model=ParLevelResponse)
async def par_level_suggestions(
    payload: ParLevelRequest,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """Ask the AI gateway for par levels and reorder points; nothing is saved"""
    stmt = select(IngredientModel).order_by(IngredientModel.name)
    if payload.ingredient_ids:
        stmt = stmt.where(IngredientModel.id.in_(payload.ingredient_ids))
    else:
        stmt = stmt.where(IngredientModel.is_active.is_(True))
    res = await db.execute(stmt)
    ingredients = [
        ParLevelIngredient(
            id=i.id,
            name=i.name,
            category=i.category,
            unit=i.unit,
            current_stock=float(i.current_stock or 0),
            storage_location=i.storage_location,
        )
        for i in res.scalars().all()
    ]

    try:
        suggestions = await suggest_par_levels(ingredients, payload.concept_type)
    except AIGatewayError as e:
        raise to_http_exception(e)
    return ParLevelResponse(suggestions=suggestions)


@router.post("/par-levels/apply", response_model=List[IngredientRead])
async def apply_par_levels(
    payload: ParLevelApplyRequest,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """Save accepted par level suggestions"""
    ids = [item.ingredient_id for item in payload.items]
    res = await db.execute(select(IngredientModel).where(IngredientModel.id.in_(ids)))
    by_id = {i.id: i for i in res.scalars().all()}
    missing = [i for i in ids if i not in by_id]
    if missing:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Ingredient with id {missing[0]} not found")

    for item in payload.items:
        ingredient = by_id[item.ingredient_id]
        ingredient.par_level = item.par_level
        ingredient.reorder_point = item.reorder_point
    await db.commit()

    res = await db.execute(
        select(IngredientModel).where(IngredientModel.id.in_(ids)).execution_options(populate_existing=True)
    )
    logger.info("Applied par levels to %d ingredients", len(ids))
    return [IngredientRead(**i.to_schema) for i in res.scalars().all()]


@router.post("/optimize-margins/{recipe_id}", response_model=MarginOptimization)
async def optimize_recipe_margins(
    recipe_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    try:
        breakdown = await get_cost_breakdown(db, recipe_id)
        return await optimize_margins(breakdown)
    except (InventoryError, AIGatewayError) as e:
        raise to_http_exception(e)
