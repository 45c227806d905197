"""
Short-range demand forecast.

Past sales are turned into an average per recipe and weekday (averaged over
the days that recipe actually sold), then projected over the next few days:

- days the restaurant is regularly closed, or has a closure event, are skipped
- other forecast events scale that day's prediction by their impact percent
- with a seat count, the total is capped at seats x 2 turns x 1.5 dishes per day

Predicted dishes are expanded through recipe compositions into ingredient
requirements, compared against stock plus what is still to arrive on open
purchase orders.
"""
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Set, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import RestaurantNotFoundError
from core.logger import get_logger
from db.forecast_event import ForecastEvent
from db.purchase_order import PurchaseOrder, PurchaseOrderItem
from db.recipe import Recipe
from db.restaurant import Restaurant
from db.sales_event import SalesEvent
from schemas.forecast import DishForecast, ForecastResponse, HolidayPreset, IngredientRequirement, RecipeUsage
from services.costing import recipe_with_costs_query

logger = get_logger("forecast")

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
AVG_TURNS_PER_DAY = 2
AVG_DISHES_PER_COVER = 1.5
PENDING_PO_STATUSES = ("draft", "approved", "sent", "partial")
_RISK_ORDER = {"high": 0, "medium": 1, "low": 2}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class SalesPattern:
    recipe_id: UUID
    weekday: int
    total: float = 0.0
    days: int = 0

    @property
    def average(self) -> float:
        return self.total / self.days if self.days else 0.0


def sales_patterns(rows: Iterable[Tuple[datetime, list]]) -> Dict[Tuple[UUID, int], SalesPattern]:
    """rows: (occurred_at, items). Keyed by (recipe_id, weekday) with Monday = 0."""
    daily: Dict[Tuple[UUID, date], float] = defaultdict(float)
    for occurred_at, items in rows:
        if occurred_at is None:
            continue
        for item in items or []:
            try:
                recipe_id = UUID(str(item["recipe_id"]))
                quantity = item.get("quantity")
                quantity = 1.0 if quantity is None else float(quantity)
            except (KeyError, TypeError, ValueError, AttributeError):
                continue
            daily[(recipe_id, occurred_at.date())] += quantity

    patterns: Dict[Tuple[UUID, int], SalesPattern] = {}
    for (recipe_id, day), quantity in daily.items():
        key = (recipe_id, day.weekday())
        pattern = patterns.setdefault(key, SalesPattern(recipe_id, day.weekday()))
        pattern.total += quantity
        pattern.days += 1
    return patterns


def closed_weekdays(hours: Optional[dict]) -> Set[int]:
    closed = set()
    for day, config in (hours or {}).items():
        name = str(day).lower()
        if name in WEEKDAYS and isinstance(config, dict) and config.get("closed"):
            closed.add(WEEKDAYS.index(name))
    return closed


def event_impacts(events: Iterable) -> Tuple[Dict[date, float], Set[date]]:
    """Summed impact percent per date, and the dates with a closure."""
    impacts: Dict[date, float] = defaultdict(float)
    closures: Set[date] = set()
    for event in events:
        if event.event_type == "closure":
            closures.add(event.event_date)
        else:
            impacts[event.event_date] += float(event.impact_percent or 0)
    return dict(impacts), closures


def _risk(coverage: float) -> str:
    if coverage < 50:
        return "high"
    if coverage < 80:
        return "medium"
    return "low"


def build_forecast(
    recipes: Iterable,
    patterns: Dict[Tuple[UUID, int], SalesPattern],
    *,
    start: date,
    days: int,
    closed: Optional[Set[int]] = None,
    events: Iterable = (),
    seats: Optional[int] = None,
    pending: Optional[Dict[UUID, float]] = None,
) -> ForecastResponse:
    """Recipes need `recipe_ingredients` and their ingredients loaded."""
    closed = closed or set()
    pending = pending or {}
    impacts, closures = event_impacts(events)

    window = [start + timedelta(days=i) for i in range(days)]
    open_days = [d for d in window if d.weekday() not in closed and d not in closures]

    dishes: List[DishForecast] = []
    needs: Dict[UUID, dict] = {}

    for recipe in recipes:
        total = 0.0
        confidence_sum = 0
        impact_sum = 0.0
        for day in open_days:
            impact = impacts.get(day, 0.0)
            pattern = patterns.get((recipe.id, day.weekday()))
            if pattern is not None and pattern.days > 0:
                base = pattern.average
                confidence_sum += min(95, 50 + pattern.days * 5)
            else:
                base = 0.0
            total += max(0.0, base * (1 + impact / 100))
            impact_sum += impact

        predicted = round_half_up(total)
        if predicted <= 0:
            continue

        avg_impact = round_half_up(impact_sum / len(open_days))
        dishes.append(
            DishForecast(
                recipe_id=recipe.id,
                recipe_name=recipe.name,
                category=recipe.category,
                predicted_quantity=predicted,
                confidence=round_half_up(confidence_sum / len(open_days)),
                menu_price=float(recipe.menu_price) if recipe.menu_price is not None else None,
                event_impact=avg_impact or None,
            )
        )

        for ri in recipe.recipe_ingredients:
            ingredient = ri.ingredient
            if ingredient is None:
                continue
            needed = float(ri.quantity) * predicted
            need = needs.setdefault(ingredient.id, {
                "ingredient_id": ingredient.id,
                "ingredient_name": ingredient.name,
                "unit": ri.unit or ingredient.unit,
                "current_stock": float(ingredient.current_stock or 0),
                "needed_quantity": 0.0,
                "recipes": [],
            })
            need["needed_quantity"] += needed
            need["recipes"].append(RecipeUsage(name=recipe.name, quantity=needed))

    max_daily_covers = seats * AVG_TURNS_PER_DAY if seats else None
    max_daily_dishes = round_half_up(max_daily_covers * AVG_DISHES_PER_COVER) if max_daily_covers else None
    capacity_constrained = False
    predicted_total = sum(d.predicted_quantity for d in dishes)
    if max_daily_dishes and predicted_total > max_daily_dishes * days:
        scale = (max_daily_dishes * days) / predicted_total
        capacity_constrained = True
        for dish in dishes:
            dish.predicted_quantity = round_half_up(dish.predicted_quantity * scale)
        for need in needs.values():
            need["needed_quantity"] *= scale
            for usage in need["recipes"]:
                usage.quantity *= scale

    dishes.sort(key=lambda d: d.predicted_quantity, reverse=True)

    requirements: List[IngredientRequirement] = []
    for need in needs.values():
        pending_quantity = float(pending.get(need["ingredient_id"], 0))
        effective = need["current_stock"] + pending_quantity
        needed = need["needed_quantity"]
        coverage = (effective / needed) * 100 if needed > 0 else 100.0
        requirements.append(
            IngredientRequirement(
                **{**need, "current_stock": effective},
                pending_quantity=pending_quantity,
                coverage=coverage,
                risk=_risk(coverage),
            )
        )
    requirements.sort(key=lambda r: (_RISK_ORDER[r.risk], -r.needed_quantity))

    return ForecastResponse(
        start_date=start,
        days=days,
        dishes=dishes,
        ingredients=requirements,
        has_event_impact=bool(impacts or closures),
        capacity_constrained=capacity_constrained,
        max_daily_covers=max_daily_covers,
    )


async def pending_order_quantities(db: AsyncSession) -> Dict[UUID, float]:
    """Still-to-arrive quantity per ingredient over open purchase orders."""
    outstanding = PurchaseOrderItem.quantity - func.coalesce(PurchaseOrderItem.received_quantity, 0)
    res = await db.execute(
        select(PurchaseOrderItem.ingredient_id, func.sum(outstanding))
        .join(PurchaseOrder, PurchaseOrder.id == PurchaseOrderItem.purchase_order_id)
        .where(PurchaseOrder.status.in_(PENDING_PO_STATUSES))
        .group_by(PurchaseOrderItem.ingredient_id)
    )
    return {ingredient_id: max(0.0, float(qty or 0)) for ingredient_id, qty in res.all()}


def today() -> date:
    return datetime.now(timezone.utc).date()


async def get_forecast(
    db: AsyncSession,
    *,
    days: int = 3,
    restaurant_id: Optional[UUID] = None,
    start: Optional[date] = None,
) -> ForecastResponse:
    start = start or today()

    restaurant = None
    events: List[ForecastEvent] = []
    if restaurant_id is not None:
        restaurant = await db.get(Restaurant, restaurant_id)
        if restaurant is None:
            raise RestaurantNotFoundError(restaurant_id)
        res = await db.execute(
            select(ForecastEvent).where(
                ForecastEvent.restaurant_id == restaurant_id,
                ForecastEvent.event_date >= start,
                ForecastEvent.event_date < start + timedelta(days=days),
            )
        )
        events = res.scalars().all()

    stmt = select(SalesEvent.occurred_at, SalesEvent.items)
    if restaurant_id is not None:
        stmt = stmt.where(SalesEvent.restaurant_id == restaurant_id)
    res = await db.execute(stmt)
    patterns = sales_patterns(res.all())

    res = await db.execute(recipe_with_costs_query().where(Recipe.is_active.is_(True)).order_by(Recipe.name))
    recipes = res.scalars().all()

    forecast = build_forecast(
        recipes,
        patterns,
        start=start,
        days=days,
        closed=closed_weekdays(restaurant.hours) if restaurant is not None else None,
        events=events,
        seats=restaurant.seats if restaurant is not None else None,
        pending=await pending_order_quantities(db),
    )
    logger.debug(
        "Forecast from %s over %d day(s): %d dish(es), %d ingredient(s)",
        start, days, len(forecast.dishes), len(forecast.ingredients),
    )
    return forecast


# name, month, day, impact percent
PRESET_HOLIDAYS = (
    ("New Year's Day", 1, 1, -30),
    ("Valentine's Day", 2, 14, 40),
    ("Mother's Day", 5, 12, 50),
    ("Father's Day", 6, 15, 30),
    ("Independence Day", 7, 4, 25),
    ("Halloween", 10, 31, 15),
    ("Thanksgiving", 11, 28, 60),
    ("Christmas Eve", 12, 24, 35),
    ("Christmas Day", 12, 25, -50),
    ("New Year's Eve", 12, 31, 75),
)


def upcoming_holidays(on: Optional[date] = None) -> List[HolidayPreset]:
    """Next occurrence of each preset holiday, soonest first."""
    on = on or today()
    presets = []
    for name, month, day, impact in PRESET_HOLIDAYS:
        when = date(on.year, month, day)
        if when < on:
            when = date(on.year + 1, month, day)
        presets.append(HolidayPreset(name=name, event_date=when, impact_percent=impact))
    presets.sort(key=lambda p: p.event_date)
    return presets
