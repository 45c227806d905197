from fastapi import APIRouter, Depends, HTTPException, Query, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import List, Optional
from uuid import UUID

from core.auth import current_active_user
from core.exceptions import InventoryError, AIGatewayError, to_http_exception
from core.logger import get_logger
from db.database import get_async_session
from db.ingredient import Ingredient as IngredientModel
from db.recipe import Recipe as RecipeModel
from db.recipe_ingredient import RecipeIngredient as RecipeIngredientModel
from db.users import User
from schemas.recipes import (
    MenuEngineeringReport,
    RecipeCostBreakdown,
    RecipeCreate,
    RecipeImageUpdate,
    RecipeIngredientIn,
    RecipeRead,
    RecipeStepsResponse,
    RecipeUpdate,
)
from schemas.ai import RecipeStepsRequest
from services.ai_suggestions import generate_recipe_steps, steps_to_instructions
from services.costing import get_cost_breakdown, menu_engineering, recipe_with_costs_query

router = APIRouter()
logger = get_logger("routers.recipes")


async def _get_recipe_or_404(db: AsyncSession, recipe_id: UUID) -> RecipeModel:
    result = await db.execute(
        recipe_with_costs_query()
        .where(RecipeModel.id == recipe_id)
        .execution_options(populate_existing=True)
    )
    recipe = result.scalar_one_or_none()
    if not recipe:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Recipe with id {recipe_id} not found"
        )
    return recipe


async def _build_lines(db: AsyncSession, lines: List[RecipeIngredientIn]) -> List[RecipeIngredientModel]:
    ids = {line.ingredient_id for line in lines}
    if ids:
        result = await db.execute(select(IngredientModel.id).where(IngredientModel.id.in_(ids)))
        missing = ids - set(result.scalars().all())
        if missing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Ingredient with id {sorted(missing, key=str)[0]} not found",
            )
    return [
        RecipeIngredientModel(
            ingredient_id=line.ingredient_id,
            quantity=line.quantity,
            unit=line.unit,
            sort_order=index,
        )
        for index, line in enumerate(lines)
    ]


@router.get("/", response_model=List[RecipeRead])
async def get_recipes(
    category: Optional[str] = None,
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_async_session),
):
    """Get all recipes with their ingredients"""
    stmt = recipe_with_costs_query().order_by(func.lower(RecipeModel.name))
    if category:
        stmt = stmt.where(RecipeModel.category == category)
    if not include_inactive:
        stmt = stmt.where(RecipeModel.is_active.is_(True))
    result = await db.execute(stmt)
    return [RecipeRead(**r.to_schema) for r in result.scalars().all()]


@router.get("/menu-engineering", response_model=MenuEngineeringReport)
async def get_menu_engineering(
    days: Optional[int] = Query(default=None, ge=1),
    db: AsyncSession = Depends(get_async_session),
):
    """Classify priced recipes into stars, plowhorses, puzzles and dogs"""
    return await menu_engineering(db, days)


@router.get("/{recipe_id}", response_model=RecipeRead)
async def get_recipe(recipe_id: UUID, db: AsyncSession = Depends(get_async_session)):
    recipe = await _get_recipe_or_404(db, recipe_id)
    return RecipeRead(**recipe.to_schema)


@router.get("/{recipe_id}/cost", response_model=RecipeCostBreakdown)
async def get_recipe_cost(recipe_id: UUID, db: AsyncSession = Depends(get_async_session)):
    """Ingredient cost breakdown and food cost percentage"""
    try:
        return await get_cost_breakdown(db, recipe_id)
    except InventoryError as e:
        raise to_http_exception(e)


@router.post("/", response_model=RecipeRead, status_code=status.HTTP_201_CREATED)
async def create_recipe(
    payload: RecipeCreate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Create a recipe with its ingredient lines"""
    lines = await _build_lines(db, payload.ingredients)
    try:
        recipe = RecipeModel(**payload.model_dump(exclude={"ingredients"}))
        recipe.recipe_ingredients = lines
        db.add(recipe)
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Failed to create recipe %s", payload.name)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create recipe")

    recipe = await _get_recipe_or_404(db, recipe.id)
    return RecipeRead(**recipe.to_schema)


@router.put("/{recipe_id}", response_model=RecipeRead)
async def update_recipe(
    recipe_id: UUID,
    payload: RecipeUpdate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    recipe = await _get_recipe_or_404(db, recipe_id)
    data = payload.model_dump(exclude_unset=True, exclude={"ingredients"})
    lines = await _build_lines(db, payload.ingredients) if payload.ingredients is not None else None

    try:
        for field, value in data.items():
            if field in ("name", "category", "yield_amount", "yield_unit") and value is None:
                continue
            setattr(recipe, field, value)
        if lines is not None:
            # delete-orphan removes the old lines
            recipe.recipe_ingredients = lines
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Failed to update recipe %s", recipe_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update recipe")

    recipe = await _get_recipe_or_404(db, recipe_id)
    return RecipeRead(**recipe.to_schema)


@router.put("/{recipe_id}/image", response_model=RecipeRead)
async def set_recipe_image(
    recipe_id: UUID,
    payload: RecipeImageUpdate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Attach an uploaded image (see /images/upload) to a recipe"""
    recipe = await _get_recipe_or_404(db, recipe_id)
    recipe.image_url = payload.image_url.strip() or None
    await db.commit()
    recipe = await _get_recipe_or_404(db, recipe_id)
    return RecipeRead(**recipe.to_schema)


@router.post("/{recipe_id}/steps", response_model=RecipeStepsResponse)
async def generate_steps(
    recipe_id: UUID,
    payload: Optional[RecipeStepsRequest] = None,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Generate cooking steps with AI, optionally saving them as the recipe instructions"""
    recipe = await _get_recipe_or_404(db, recipe_id)
    ingredients = [
        {"name": ri.ingredient.name, "quantity": float(ri.quantity), "unit": ri.unit}
        for ri in recipe.recipe_ingredients
        if ri.ingredient is not None
    ]
    try:
        steps = await generate_recipe_steps(
            recipe.name,
            recipe.category,
            ingredients,
            float(recipe.yield_amount or 1),
            recipe.yield_unit,
            recipe.prep_time_minutes,
        )
    except AIGatewayError as e:
        raise to_http_exception(e)

    saved = False
    if payload is not None and payload.save and steps:
        recipe.instructions = steps_to_instructions(steps)
        await db.commit()
        saved = True
    return RecipeStepsResponse(steps=steps, saved=saved)


@router.delete("/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_recipe(
    recipe_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    if not user.is_superuser:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not allowed to delete this recipe"
        )
    recipe = await _get_recipe_or_404(db, recipe_id)
    await db.delete(recipe)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
