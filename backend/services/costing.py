"""Recipe cost breakdown and menu-engineering classification."""
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.exceptions import RecipeNotFoundError
from db.recipe import Recipe
from db.recipe_ingredient import RecipeIngredient
from db.sales_event import SalesEvent
from schemas.recipes import CostLine, MenuEngineeringItem, MenuEngineeringReport, RecipeCostBreakdown


def food_cost_status(pct: float) -> str:
    if pct <= 28:
        return "Excellent"
    if pct <= 32:
        return "Good"
    if pct <= 38:
        return "Fair"
    return "High"


def recipe_total_cost(recipe: Recipe) -> float:
    return sum(
        float(ri.quantity) * float(ri.ingredient.unit_cost or 0)
        for ri in recipe.recipe_ingredients
        if ri.ingredient is not None
    )


def cost_breakdown(recipe: Recipe) -> RecipeCostBreakdown:
    """Expects recipe_ingredients and their ingredients loaded."""
    lines: List[CostLine] = []
    for ri in recipe.recipe_ingredients:
        if ri.ingredient is None:
            continue
        unit_cost = float(ri.ingredient.unit_cost or 0)
        lines.append(
            CostLine(
                ingredient_id=ri.ingredient_id,
                name=ri.ingredient.name,
                quantity=float(ri.quantity),
                unit=ri.unit,
                unit_cost=unit_cost,
                line_cost=float(ri.quantity) * unit_cost,
                percentage=0,
            )
        )

    total = sum(line.line_cost for line in lines)
    for line in lines:
        line.percentage = (line.line_cost / total) * 100 if total > 0 else 0
    lines.sort(key=lambda line: line.line_cost, reverse=True)

    menu_price = float(recipe.menu_price) if recipe.menu_price is not None else None
    food_cost_pct = (total / menu_price) * 100 if menu_price else None

    return RecipeCostBreakdown(
        recipe_id=recipe.id,
        name=recipe.name,
        category=recipe.category,
        yield_amount=float(recipe.yield_amount or 0),
        yield_unit=recipe.yield_unit,
        menu_price=menu_price,
        total_cost=total,
        cost_per_unit=total / (float(recipe.yield_amount or 0) or 1),
        food_cost_pct=food_cost_pct,
        status=food_cost_status(food_cost_pct) if food_cost_pct is not None else None,
        lines=lines,
    )


def recipe_with_costs_query():
    return select(Recipe).options(
        selectinload(Recipe.recipe_ingredients).selectinload(RecipeIngredient.ingredient)
    )


async def get_cost_breakdown(db: AsyncSession, recipe_id: UUID) -> RecipeCostBreakdown:
    res = await db.execute(recipe_with_costs_query().where(Recipe.id == recipe_id))
    recipe = res.scalar_one_or_none()
    if recipe is None:
        raise RecipeNotFoundError(recipe_id)
    return cost_breakdown(recipe)


def classify_menu(recipes: Iterable[Recipe], units_sold: Dict[UUID, float]) -> MenuEngineeringReport:
    """
    Profit is menu price minus cost per portion; popularity is units sold.
    Each axis is split at its average over the priced recipes.
    """
    rows = []
    for recipe in recipes:
        price = float(recipe.menu_price or 0)
        if price <= 0:
            continue
        total = recipe_total_cost(recipe)
        yield_amount = float(recipe.yield_amount or 0)
        per_portion = total / yield_amount if yield_amount > 0 else total
        rows.append((recipe, price, per_portion, price - per_portion, float(units_sold.get(recipe.id, 0))))

    if not rows:
        return MenuEngineeringReport(average_profit=0, average_units_sold=0, items=[])

    avg_profit = sum(r[3] for r in rows) / len(rows)
    avg_sold = sum(r[4] for r in rows) / len(rows)

    items = []
    for recipe, price, per_portion, profit, sold in rows:
        high_profit = profit >= avg_profit
        popular = sold >= avg_sold
        if high_profit and popular:
            classification = "star"
        elif popular:
            classification = "plowhorse"
        elif high_profit:
            classification = "puzzle"
        else:
            classification = "dog"
        items.append(
            MenuEngineeringItem(
                recipe_id=recipe.id,
                name=recipe.name,
                category=recipe.category,
                menu_price=price,
                cost_per_portion=per_portion,
                profit=profit,
                units_sold=sold,
                classification=classification,
            )
        )
    return MenuEngineeringReport(average_profit=avg_profit, average_units_sold=avg_sold, items=items)


async def units_sold_by_recipe(db: AsyncSession, days: Optional[int] = None) -> Dict[UUID, float]:
    stmt = select(SalesEvent.items)
    if days:
        since = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(days=days)
        stmt = stmt.where(SalesEvent.occurred_at >= since)
    res = await db.execute(stmt)

    totals: Dict[UUID, float] = defaultdict(float)
    for (items,) in res.all():
        for item in items or []:
            try:
                totals[UUID(str(item["recipe_id"]))] += float(item.get("quantity") or 0)
            except (KeyError, TypeError, ValueError):
                continue
    return dict(totals)


async def menu_engineering(db: AsyncSession, days: Optional[int] = None) -> MenuEngineeringReport:
    res = await db.execute(recipe_with_costs_query().where(Recipe.is_active.is_(True)).order_by(Recipe.name))
    recipes = res.scalars().all()
    return classify_menu(recipes, await units_sold_by_recipe(db, days))
