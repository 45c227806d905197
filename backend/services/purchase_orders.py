"""
Purchase-order lifecycle.

    draft -> approved -> sent -> partial -> received
      any state but received -> cancelled

Receiving goes through the ledger so each received quantity shows up as a
`receiving` inventory event.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.exceptions import (
    IngredientNotFoundError,
    PurchaseOrderNotFoundError,
    PurchaseOrderStateError,
    VendorNotFoundError,
)
from core.logger import get_logger
from db.ingredient import Ingredient
from db.purchase_order import PurchaseOrder, PurchaseOrderItem
from db.vendor import Vendor
from schemas.purchase_orders import PurchaseOrderCreate, ReceiveLine
from services.ledger import apply_delta, apply_stock_change
from services.suggested_orders import get_suggested_orders

logger = get_logger("purchase_orders")


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def order_query():
    return select(PurchaseOrder).options(
        selectinload(PurchaseOrder.vendor),
        selectinload(PurchaseOrder.items).selectinload(PurchaseOrderItem.ingredient),
    )


def serialize_order(order: PurchaseOrder) -> dict:
    return {
        "id": order.id,
        "vendor_id": order.vendor_id,
        "vendor_name": order.vendor.name if order.vendor else None,
        "status": order.status,
        "total_amount": float(order.total_amount or 0),
        "expected_delivery": order.expected_delivery,
        "notes": order.notes,
        "created_by": order.created_by,
        "approved_by": order.approved_by,
        "received_at": order.received_at.isoformat() if order.received_at else None,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "items": [
            {
                "id": item.id,
                "ingredient_id": item.ingredient_id,
                "ingredient_name": item.ingredient.name if item.ingredient else None,
                "quantity": float(item.quantity),
                "unit": item.unit,
                "unit_cost": float(item.unit_cost or 0),
                "received_quantity": float(item.received_quantity) if item.received_quantity is not None else None,
            }
            for item in order.items
        ],
    }


async def get_order(db: AsyncSession, order_id: UUID) -> PurchaseOrder:
    res = await db.execute(order_query().where(PurchaseOrder.id == order_id).execution_options(populate_existing=True))
    order = res.scalar_one_or_none()
    if order is None:
        raise PurchaseOrderNotFoundError(order_id)
    return order


async def create_order(db: AsyncSession, payload: PurchaseOrderCreate, user_id: Optional[UUID]) -> UUID:
    vendor = await db.get(Vendor, payload.vendor_id)
    if vendor is None:
        raise VendorNotFoundError(payload.vendor_id)

    ids = {line.ingredient_id for line in payload.items}
    res = await db.execute(select(Ingredient).where(Ingredient.id.in_(ids)))
    ingredients: Dict[UUID, Ingredient] = {i.id: i for i in res.scalars().all()}
    missing = ids - set(ingredients)
    if missing:
        raise IngredientNotFoundError(sorted(missing, key=str)[0])

    order = PurchaseOrder(
        vendor_id=vendor.id,
        status="draft",
        expected_delivery=payload.expected_delivery,
        notes=payload.notes,
        created_by=user_id,
    )
    total = 0.0
    for line in payload.items:
        ingredient = ingredients[line.ingredient_id]
        unit_cost = line.unit_cost if line.unit_cost is not None else float(ingredient.unit_cost or 0)
        order.items.append(
            PurchaseOrderItem(
                ingredient_id=ingredient.id,
                quantity=line.quantity,
                unit=line.unit or ingredient.unit,
                unit_cost=unit_cost,
            )
        )
        total += line.quantity * unit_cost
    order.total_amount = total

    db.add(order)
    await db.flush()
    return order.id


def _require_status(order: PurchaseOrder, allowed: tuple, action: str):
    if order.status not in allowed:
        raise PurchaseOrderStateError(f"Cannot {action} a purchase order in status '{order.status}'")


async def approve_order(db: AsyncSession, order_id: UUID, user_id: Optional[UUID]) -> PurchaseOrder:
    order = await get_order(db, order_id)
    _require_status(order, ("draft",), "approve")
    order.status = "approved"
    order.approved_by = user_id
    return order


async def send_order(db: AsyncSession, order_id: UUID) -> PurchaseOrder:
    order = await get_order(db, order_id)
    _require_status(order, ("approved",), "send")
    order.status = "sent"
    return order


async def cancel_order(db: AsyncSession, order_id: UUID) -> PurchaseOrder:
    order = await get_order(db, order_id)
    _require_status(order, ("draft", "approved", "sent", "partial"), "cancel")
    order.status = "cancelled"
    return order


async def receive_order(
    db: AsyncSession,
    order_id: UUID,
    lines: Optional[List[ReceiveLine]],
    user_id: Optional[UUID],
) -> PurchaseOrder:
    """
    Record deliveries against an order. `received_quantity` on a line is the
    cumulative amount received; only the increase since the last delivery is
    added to stock. Without explicit lines everything outstanding is received.
    """
    order = await get_order(db, order_id)
    _require_status(order, ("sent", "partial"), "receive")

    items_by_id = {item.id: item for item in order.items}
    if lines is None:
        targets = {item.id: float(item.quantity) for item in order.items}
    else:
        targets = {}
        for line in lines:
            if line.item_id not in items_by_id:
                raise PurchaseOrderStateError(f"Item {line.item_id} is not part of this purchase order")
            targets[line.item_id] = float(line.received_quantity)

    vendor_name = order.vendor.name if order.vendor else "vendor"
    for item_id, received in targets.items():
        item = items_by_id[item_id]
        already = float(item.received_quantity or 0)
        if received < already:
            raise PurchaseOrderStateError("Received quantity cannot go down")
        delta = received - already
        if delta > 0:
            await apply_stock_change(
                db,
                item.ingredient_id,
                apply_delta(delta),
                event_type="receiving",
                source=f"PO: {vendor_name}",
                notes=f"Received {delta:g} {item.unit} on purchase order {order.id}",
                user_id=user_id,
            )
        item.received_quantity = received

    fully = all(float(i.received_quantity or 0) >= float(i.quantity) for i in order.items)
    order.status = "received" if fully else "partial"
    if fully:
        order.received_at = _now()
    logger.info("Purchase order %s is now %s", order.id, order.status)
    return order


async def create_orders_from_suggestions(db: AsyncSession, user_id: Optional[UUID]) -> List[UUID]:
    """One draft purchase order per vendor that currently has suggestions."""
    suggestions = await get_suggested_orders(db)
    created: List[UUID] = []
    for suggestion in suggestions.suggestions:
        if suggestion.vendor_id is None:
            continue
        order = PurchaseOrder(
            vendor_id=suggestion.vendor_id,
            status="draft",
            total_amount=suggestion.total_amount,
            notes=f"Auto-generated: {suggestion.reason}",
            created_by=user_id,
        )
        for item in suggestion.items:
            order.items.append(
                PurchaseOrderItem(
                    ingredient_id=item.ingredient_id,
                    quantity=item.suggested_quantity,
                    unit=item.unit,
                    unit_cost=item.unit_cost,
                )
            )
        db.add(order)
        await db.flush()
        created.append(order.id)
    logger.info("Created %d draft purchase order(s) from suggestions", len(created))
    return created
