from fastapi import APIRouter, Depends, HTTPException, Query, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy import select, func
from schemas.ingredient import IngredientCreate, IngredientRead, IngredientUpdate
from db.database import get_async_session
from db.ingredient import Ingredient as IngredientModel
from db.vendor import Vendor as VendorModel
from typing import List, Optional
from uuid import UUID
from core.auth import current_active_user
from core.exceptions import to_http_exception, InventoryError
from core.logger import get_logger
from db.users import User
from services.ledger import apply_stock_change, set_count

router = APIRouter()
logger = get_logger("routers.ingredients")


async def _get_ingredient_or_404(db: AsyncSession, ingredient_id: UUID) -> IngredientModel:
    result = await db.execute(
        select(IngredientModel)
        .where(IngredientModel.id == ingredient_id)
        .execution_options(populate_existing=True)
    )
    ingredient = result.scalar_one_or_none()
    if not ingredient:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Ingredient with id {ingredient_id} not found"
        )
    return ingredient


async def _check_vendor(db: AsyncSession, vendor_id: Optional[UUID]):
    if vendor_id is not None and await db.get(VendorModel, vendor_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Vendor with id {vendor_id} not found")


@router.get("/", response_model=List[IngredientRead])
async def get_ingredients(
    category: Optional[str] = None,
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_async_session),
):
    """Get all ingredients"""
    stmt = select(IngredientModel).order_by(func.lower(IngredientModel.name))
    if category:
        stmt = stmt.where(IngredientModel.category == category)
    if not include_inactive:
        stmt = stmt.where(IngredientModel.is_active.is_(True))
    result = await db.execute(stmt)
    return [IngredientRead(**i.to_schema) for i in result.scalars().all()]


@router.get("/low-stock", response_model=List[IngredientRead])
async def get_low_stock_ingredients(db: AsyncSession = Depends(get_async_session)):
    """Ingredients at or below their reorder point"""
    result = await db.execute(
        select(IngredientModel)
        .where(
            IngredientModel.is_active.is_(True),
            IngredientModel.current_stock <= IngredientModel.reorder_point,
        )
        .order_by(IngredientModel.current_stock.asc())
    )
    return [IngredientRead(**i.to_schema) for i in result.scalars().all()]


@router.get("/{ingredient_id}", response_model=IngredientRead)
async def get_ingredient(ingredient_id: UUID, db: AsyncSession = Depends(get_async_session)):
    """Get an ingredient by ID"""
    ingredient = await _get_ingredient_or_404(db, ingredient_id)
    return IngredientRead(**ingredient.to_schema)


@router.post("/", response_model=IngredientRead, status_code=status.HTTP_201_CREATED)
async def create_ingredient(
    payload: IngredientCreate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Create a new ingredient; an opening stock is recorded as a count event"""
    result = await db.execute(
        select(IngredientModel).where(func.lower(IngredientModel.name) == payload.name.lower())
    )
    if result.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Ingredient already exists")
    await _check_vendor(db, payload.vendor_id)

    data = payload.model_dump(exclude={"current_stock"})
    ingredient = IngredientModel(**data, current_stock=0, stock_version=0)
    try:
        db.add(ingredient)
        await db.flush()
        if payload.current_stock > 0:
            await apply_stock_change(
                db,
                ingredient.id,
                set_count(payload.current_stock),
                event_type="count",
                source="Initial stock",
                user_id=user.id,
            )
        await db.commit()
    except InventoryError as e:
        await db.rollback()
        raise to_http_exception(e)
    except Exception:
        await db.rollback()
        logger.exception("Failed to create ingredient %s", payload.name)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create ingredient")

    ingredient = await _get_ingredient_or_404(db, ingredient.id)
    return IngredientRead(**ingredient.to_schema)


@router.put("/{ingredient_id}", response_model=IngredientRead)
async def update_ingredient(
    ingredient_id: UUID,
    payload: IngredientUpdate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Update an existing ingredient"""
    ingredient = await _get_ingredient_or_404(db, ingredient_id)

    data = payload.model_dump(exclude_unset=True)
    if "vendor_id" in data:
        await _check_vendor(db, data["vendor_id"])
    for field, value in data.items():
        if field in ("name", "unit", "category") and value is None:
            continue
        setattr(ingredient, field, value)

    await db.commit()
    ingredient = await _get_ingredient_or_404(db, ingredient_id)
    return IngredientRead(**ingredient.to_schema)


@router.delete("/{ingredient_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ingredient(
    ingredient_id: UUID,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Delete an ingredient that no recipe uses"""
    # Only superusers can delete ingredients (ingredients are shared resources)
    if not user.is_superuser:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not allowed to delete this ingredient"
        )
    ingredient = await _get_ingredient_or_404(db, ingredient_id)
    try:
        await db.delete(ingredient)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Ingredient is used by a recipe or purchase order; deactivate it instead",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
