"""Reorder suggestions from current stock levels and the sales forecast."""
import math
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.ingredient import Ingredient
from db.vendor import Vendor
from schemas.forecast import IngredientRequirement
from schemas.purchase_orders import SuggestedOrder, SuggestedOrderItem, SuggestedOrdersResponse
from services.forecast import get_forecast

UNASSIGNED_VENDOR_NAME = "No Vendor Assigned"
_URGENCY_ORDER = {"high": 0, "medium": 1, "low": 2}


def _item(ingredient) -> Optional[SuggestedOrderItem]:
    current = float(ingredient.current_stock or 0)
    reorder = float(ingredient.reorder_point or 0)
    par = float(ingredient.par_level or 0)
    if current > reorder:
        return None
    quantity = par - current
    if quantity <= 0:
        return None
    return SuggestedOrderItem(
        ingredient_id=ingredient.id,
        ingredient_name=ingredient.name,
        current_stock=current,
        par_level=par,
        reorder_point=reorder,
        unit=ingredient.unit,
        unit_cost=float(ingredient.unit_cost or 0),
        suggested_quantity=quantity,
    )


def _forecast_item(requirement: IngredientRequirement, ingredient, shortage: float) -> SuggestedOrderItem:
    return SuggestedOrderItem(
        ingredient_id=requirement.ingredient_id,
        ingredient_name=requirement.ingredient_name,
        current_stock=requirement.current_stock,
        par_level=float(ingredient.par_level or 0) if ingredient is not None else 0,
        reorder_point=float(ingredient.reorder_point or 0) if ingredient is not None else 0,
        unit=requirement.unit,
        unit_cost=float(ingredient.unit_cost or 0) if ingredient is not None else 0,
        suggested_quantity=shortage,
        reason="forecast_demand",
        needed_for_forecast=requirement.needed_quantity,
    )


def _total(items: List[SuggestedOrderItem]) -> float:
    return sum(i.suggested_quantity * i.unit_cost for i in items)


def _reason(items: List[SuggestedOrderItem]) -> str:
    parts = []
    low = sum(1 for i in items if i.reason == "low_stock")
    forecast = sum(1 for i in items if i.reason == "forecast_demand")
    if low:
        parts.append(f"{low} below reorder point")
    if forecast:
        parts.append(f"{forecast} needed for forecast")
    return ", ".join(parts)


def build_suggested_orders(
    ingredients: Iterable,
    vendor_names: Dict[UUID, str],
    forecast: Iterable[IngredientRequirement] = (),
) -> List[SuggestedOrder]:
    """
    Group every ingredient at or below its reorder point into one suggested
    order per vendor, topping it up to par. Forecast requirements with less
    than full coverage add their shortage, or raise an existing line to it.
    Ingredients without a vendor end up in a separate group.
    """
    ingredients = list(ingredients)
    by_id = {i.id: i for i in ingredients}
    # ingredient id -> (vendor id, line)
    needs: Dict[UUID, Tuple[Optional[UUID], SuggestedOrderItem]] = {}

    for ingredient in ingredients:
        item = _item(ingredient)
        if item is not None:
            needs[ingredient.id] = (ingredient.vendor_id, item)

    for requirement in forecast:
        if requirement.coverage >= 100:
            continue
        shortage = math.ceil(requirement.needed_quantity - requirement.current_stock)
        if shortage <= 0:
            continue
        if requirement.ingredient_id in needs:
            item = needs[requirement.ingredient_id][1]
            item.needed_for_forecast = requirement.needed_quantity
            item.suggested_quantity = max(item.suggested_quantity, shortage)
        else:
            ingredient = by_id.get(requirement.ingredient_id)
            vendor_id = ingredient.vendor_id if ingredient is not None else None
            needs[requirement.ingredient_id] = (vendor_id, _forecast_item(requirement, ingredient, shortage))

    by_vendor: Dict[UUID, List[SuggestedOrderItem]] = {}
    unassigned: List[SuggestedOrderItem] = []
    for vendor_id, item in needs.values():
        if vendor_id:
            by_vendor.setdefault(vendor_id, []).append(item)
        else:
            unassigned.append(item)

    orders: List[SuggestedOrder] = []
    for vendor_id, items in by_vendor.items():
        if any(i.current_stock <= i.reorder_point * 0.5 for i in items):
            urgency = "high"
        elif any(i.reason == "forecast_demand" for i in items):
            urgency = "medium"
        else:
            urgency = "low"
        orders.append(
            SuggestedOrder(
                vendor_id=vendor_id,
                vendor_name=vendor_names.get(vendor_id, "Unknown Vendor"),
                items=items,
                total_amount=_total(items),
                urgency=urgency,
                reason=_reason(items),
            )
        )

    if unassigned:
        orders.append(
            SuggestedOrder(
                vendor_id=None,
                vendor_name=UNASSIGNED_VENDOR_NAME,
                items=unassigned,
                total_amount=_total(unassigned),
                urgency="medium",
                reason=f"{len(unassigned)} items need vendor assignment",
            )
        )

    # stable sort keeps vendor order within an urgency
    orders.sort(key=lambda o: _URGENCY_ORDER[o.urgency])
    return orders


async def get_suggested_orders(
    db: AsyncSession,
    *,
    forecast_days: int = 3,
    restaurant_id: Optional[UUID] = None,
) -> SuggestedOrdersResponse:
    res = await db.execute(select(Ingredient).where(Ingredient.is_active.is_(True)).order_by(Ingredient.name))
    ingredients = res.scalars().all()

    res = await db.execute(select(Vendor.id, Vendor.name))
    vendor_names = {row.id: row.name for row in res.all()}

    requirements: List[IngredientRequirement] = []
    if forecast_days > 0:
        forecast = await get_forecast(db, days=forecast_days, restaurant_id=restaurant_id)
        requirements = forecast.ingredients

    suggestions = build_suggested_orders(ingredients, vendor_names, requirements)
    return SuggestedOrdersResponse(
        suggestions=suggestions,
        total_items=sum(len(s.items) for s in suggestions),
        total_amount=sum(s.total_amount for s in suggestions),
    )
