"""Reacts to recorded sales events by depleting inventory."""
from typing import List, Optional
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.event_bus import SALES_EVENT_INSERTED, AsyncEventBus
from core.logger import get_logger
from db.sales_event import SalesEvent
from schemas.sales import SaleItem
from services.depletion import DepletionProcessor

logger = get_logger("sales_listener")


def sales_event_payload(event: SalesEvent) -> dict:
    """Bus payload for a stored sales event."""
    return {
        "id": str(event.id),
        "restaurant_id": str(event.restaurant_id),
        "external_order_id": event.external_order_id,
        "items": list(event.items or []),
    }


def sale_source(data: dict) -> Optional[str]:
    if data.get("external_order_id"):
        return f"POS order {data['external_order_id']}"
    if data.get("id") is not None:
        return f"Sales event {data['id']}"
    return None


def parse_sale_items(raw) -> List[SaleItem]:
    """Validated sale items, or [] when the payload is missing or malformed."""
    if not isinstance(raw, list) or not raw:
        return []
    try:
        return [SaleItem.model_validate(i) for i in raw]
    except ValidationError:
        return []


class SalesEventListener:
    def __init__(
        self,
        bus: AsyncEventBus,
        session_maker: async_sessionmaker,
        restaurant_id: Optional[UUID] = None,
    ):
        self.bus = bus
        self.session_maker = session_maker
        self.restaurant_id = restaurant_id

    async def start(self):
        await self.bus.subscribe(SALES_EVENT_INSERTED, self.handle)
        logger.info("Listening for %s", SALES_EVENT_INSERTED)

    async def _claim(self, db: AsyncSession, event_id: UUID) -> bool:
        """Mark the sales event processed unless someone already did. Not committed."""
        res = await db.execute(
            update(SalesEvent)
            .where(SalesEvent.id == event_id, SalesEvent.processed_at.is_(None))
            .values(processed_at=func.now())
            .execution_options(synchronize_session=False)
        )
        return res.rowcount == 1

    async def handle(self, topic: str, data: dict):
        if not isinstance(data, dict):
            logger.debug("Ignoring non-dict payload on %s", topic)
            return

        if self.restaurant_id is not None and str(data.get("restaurant_id")) != str(self.restaurant_id):
            return

        items = parse_sale_items(data.get("items"))
        if not items:
            logger.debug("Sales event %s has no usable items, skipping", data.get("id"))
            return

        event_id = None
        if data.get("id") is not None:
            try:
                event_id = UUID(str(data["id"]))
            except ValueError:
                logger.debug("Sales event id %r is not a UUID, skipping", data.get("id"))
                return

        async with self.session_maker() as db:
            try:
                if event_id is not None and not await self._claim(db, event_id):
                    await db.rollback()
                    logger.info("Sales event %s already processed, skipping", event_id)
                    return
                # The claim commits or rolls back together with the depletion
                result = await DepletionProcessor(db).process_sale(items, source=sale_source(data))
            except Exception:
                logger.exception("Failed to deplete inventory for sales event %s", event_id)
                return

        logger.info(
            "Inventory depleted for sales event %s (%d line(s))",
            event_id, len(result.depleted_ingredients),
        )


async def redrive_unprocessed(
    bus: AsyncEventBus,
    session_maker: async_sessionmaker,
    restaurant_id: Optional[UUID] = None,
) -> int:
    """
    Publish every stored sales event that was never depleted (dropped at
    shutdown, or released after a failed depletion). Returns how many went out.
    """
    async with session_maker() as db:
        stmt = (
            select(SalesEvent)
            .where(SalesEvent.processed_at.is_(None))
            .order_by(SalesEvent.occurred_at, SalesEvent.created_at)
        )
        if restaurant_id is not None:
            stmt = stmt.where(SalesEvent.restaurant_id == restaurant_id)
        res = await db.execute(stmt)
        events = res.scalars().all()

    for event in events:
        await bus.publish(SALES_EVENT_INSERTED, sales_event_payload(event))
    if events:
        logger.info("Re-published %d unprocessed sales event(s)", len(events))
    return len(events)
