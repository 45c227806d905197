"""
Stock writer shared by sales depletion, receiving and manual entries.

Every change reads the ingredient's stock together with its `stock_version`,
computes the new value and writes it back with an UPDATE conditioned on the
version it read. If another writer got in between, the UPDATE matches no row
and the cycle is retried. Stock never goes below zero; the part of a decrease
that could not be applied is kept as `shortfall` on the audit row.

Nothing here commits. Callers own the transaction.
"""
from dataclasses import dataclass
from typing import Callable, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import IngredientNotFoundError, InvalidStockChangeError, StockConflictError
from core.logger import get_logger
from db.ingredient import Ingredient
from db.inventory.event import InventoryEvent
from services.alerts import sync_low_stock_alert

logger = get_logger("ledger")

# previous_stock -> (new_stock, shortfall)
StockCompute = Callable[[float], Tuple[float, float]]


@dataclass
class StockChange:
    ingredient_id: UUID
    ingredient_name: str
    previous_stock: float
    new_stock: float
    shortfall: float
    event: InventoryEvent

    @property
    def applied(self) -> float:
        return self.new_stock - self.previous_stock


def decrease(amount: float) -> StockCompute:
    if amount < 0:
        raise InvalidStockChangeError(f"Cannot decrease stock by a negative amount ({amount})")

    def _compute(previous: float) -> Tuple[float, float]:
        if previous >= amount:
            return previous - amount, 0.0
        return 0.0, amount - previous
    return _compute


def apply_delta(delta: float) -> StockCompute:
    if delta < 0:
        return decrease(-delta)

    def _compute(previous: float) -> Tuple[float, float]:
        return previous + delta, 0.0
    return _compute


def set_count(counted: float) -> StockCompute:
    if counted < 0:
        raise InvalidStockChangeError(f"Counted stock cannot be negative ({counted})")

    def _compute(previous: float) -> Tuple[float, float]:
        return max(0.0, counted), 0.0
    return _compute


async def _read_stock(db: AsyncSession, ingredient_id: UUID):
    res = await db.execute(
        select(
            Ingredient.name,
            Ingredient.unit,
            Ingredient.current_stock,
            Ingredient.reorder_point,
            Ingredient.stock_version,
        ).where(Ingredient.id == ingredient_id)
    )
    return res.one_or_none()


async def apply_stock_change(
    db: AsyncSession,
    ingredient_id: UUID,
    compute: StockCompute,
    *,
    event_type: str,
    source: Optional[str] = None,
    notes: Optional[str] = None,
    user_id: Optional[UUID] = None,
) -> StockChange:
    max_attempts = max(1, settings.stock_cas_max_retries)

    for attempt in range(1, max_attempts + 1):
        row = await _read_stock(db, ingredient_id)
        if row is None:
            raise IngredientNotFoundError(ingredient_id)

        previous = float(row.current_stock or 0)
        new_stock, shortfall = compute(previous)
        new_stock = max(0.0, float(new_stock))

        res = await db.execute(
            update(Ingredient)
            .where(Ingredient.id == ingredient_id, Ingredient.stock_version == row.stock_version)
            .values(
                current_stock=new_stock,
                stock_version=Ingredient.stock_version + 1,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        if res.rowcount == 1:
            break
        logger.warning(
            "Stock of %s changed concurrently (attempt %d/%d), retrying",
            row.name, attempt, max_attempts,
        )
    else:
        raise StockConflictError(ingredient_id, max_attempts)

    event = InventoryEvent(
        ingredient_id=ingredient_id,
        event_type=event_type,
        quantity=new_stock - previous,
        previous_stock=previous,
        new_stock=new_stock,
        shortfall=float(shortfall),
        source=source,
        notes=notes,
        user_id=user_id,
    )
    db.add(event)

    await sync_low_stock_alert(
        db,
        ingredient_id=ingredient_id,
        ingredient_name=row.name,
        unit=row.unit,
        current_stock=new_stock,
        reorder_point=float(row.reorder_point or 0),
    )
    await db.flush()

    return StockChange(
        ingredient_id=ingredient_id,
        ingredient_name=row.name,
        previous_stock=previous,
        new_stock=new_stock,
        shortfall=float(shortfall),
        event=event,
    )
