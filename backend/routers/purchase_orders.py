from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status, Response
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user, current_active_superuser
from core.exceptions import InventoryError, PurchaseOrderStateError, to_http_exception
from core.logger import get_logger
from db.database import get_async_session
from db.purchase_order import PurchaseOrder as PurchaseOrderModel
from db.users import User
from schemas.purchase_orders import (
    PurchaseOrderCreate,
    PurchaseOrderRead,
    PurchaseOrderReceive,
    PurchaseOrderStatus,
    PurchaseOrderUpdate,
    SuggestedOrdersResponse,
)
from services import purchase_orders as po_service
from services.suggested_orders import get_suggested_orders

router = APIRouter()
logger = get_logger("routers.purchase_orders")


async def _read(db: AsyncSession, order_id: UUID) -> PurchaseOrderRead:
    order = await po_service.get_order(db, order_id)
    return PurchaseOrderRead(**po_service.serialize_order(order))


async def _run(db: AsyncSession, action: str, coro) -> UUID:
    """Await a service call, commit, and translate failures into HTTP errors."""
    try:
        result = await coro
        await db.commit()
    except InventoryError as e:
        await db.rollback()
        raise to_http_exception(e)
    except Exception:
        await db.rollback()
        logger.exception("Failed to %s purchase order", action)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to {action} purchase order")
    return result


@router.get("/suggestions", response_model=SuggestedOrdersResponse)
async def suggested_orders(
    forecast_days: int = Query(default=3, ge=0, le=28),
    restaurant_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """What to reorder now, grouped by vendor, including what the forecast will need"""
    try:
        return await get_suggested_orders(db, forecast_days=forecast_days, restaurant_id=restaurant_id)
    except InventoryError as e:
        raise to_http_exception(e)


@router.post("/from-suggestions", response_model=List[PurchaseOrderRead], status_code=status.HTTP_201_CREATED)
async def create_from_suggestions(
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """Draft one purchase order per vendor from the current suggestions"""
    ids = await _run(db, "generate", po_service.create_orders_from_suggestions(db, user.id))
    return [await _read(db, order_id) for order_id in ids]


@router.get("/", response_model=List[PurchaseOrderRead])
async def list_purchase_orders(
    status_filter: Optional[PurchaseOrderStatus] = Query(default=None, alias="status"),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    stmt = po_service.order_query().order_by(PurchaseOrderModel.created_at.desc())
    if status_filter:
        stmt = stmt.where(PurchaseOrderModel.status == status_filter)
    res = await db.execute(stmt)
    return [PurchaseOrderRead(**po_service.serialize_order(o)) for o in res.scalars().all()]


@router.post("/", response_model=PurchaseOrderRead, status_code=status.HTTP_201_CREATED)
async def create_purchase_order(
    payload: PurchaseOrderCreate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    order_id = await _run(db, "create", po_service.create_order(db, payload, user.id))
    return await _read(db, order_id)


@router.get("/{order_id}", response_model=PurchaseOrderRead)
async def get_purchase_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    try:
        return await _read(db, order_id)
    except InventoryError as e:
        raise to_http_exception(e)


@router.patch("/{order_id}", response_model=PurchaseOrderRead)
async def update_purchase_order(
    order_id: UUID,
    payload: PurchaseOrderUpdate,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    async def _update():
        order = await po_service.get_order(db, order_id)
        if order.status != "draft":
            raise PurchaseOrderStateError("Only draft purchase orders can be edited")
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(order, field, value)
        return order.id

    await _run(db, "update", _update())
    return await _read(db, order_id)


@router.post("/{order_id}/approve", response_model=PurchaseOrderRead)
async def approve_purchase_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    await _run(db, "approve", po_service.approve_order(db, order_id, user.id))
    return await _read(db, order_id)


@router.post("/{order_id}/send", response_model=PurchaseOrderRead)
async def send_purchase_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    await _run(db, "send", po_service.send_order(db, order_id))
    return await _read(db, order_id)


@router.post("/{order_id}/cancel", response_model=PurchaseOrderRead)
async def cancel_purchase_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    await _run(db, "cancel", po_service.cancel_order(db, order_id))
    return await _read(db, order_id)


@router.post("/{order_id}/receive", response_model=PurchaseOrderRead)
async def receive_purchase_order(
    order_id: UUID,
    payload: Optional[PurchaseOrderReceive] = None,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """Receive a delivery; stock goes up through receiving events"""
    lines = payload.items if payload is not None else None
    await _run(db, "receive", po_service.receive_order(db, order_id, lines, user.id))
    return await _read(db, order_id)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_purchase_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_superuser),
):
    """Delete a draft or cancelled purchase order"""
    async def _delete():
        order = await po_service.get_order(db, order_id)
        if order.status not in ("draft", "cancelled"):
            raise PurchaseOrderStateError("Only draft or cancelled purchase orders can be deleted")
        await db.delete(order)

    await _run(db, "delete", _delete())
    return Response(status_code=status.HTTP_204_NO_CONTENT)
