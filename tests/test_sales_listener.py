"""Sales events flowing from the bus into inventory depletion."""
import asyncio
from datetime import datetime
from uuid import uuid4

import pytest
from sqlalchemy import select

from core.event_bus import SALES_EVENT_INSERTED, AsyncEventBus
from db.inventory.event import InventoryEvent
from db.restaurant import Restaurant
from db.sales_event import SalesEvent
from services.sales_listener import SalesEventListener, parse_sale_items, redrive_unprocessed, sales_event_payload


@pytest.fixture
async def restaurant(session_maker, user):
    async with session_maker() as session:
        r = Restaurant(owner_id=user.id, name="Trattoria")
        session.add(r)
        await session.commit()
        return r


@pytest.fixture
async def burger(make_ingredient, make_recipe):
    beef = await make_ingredient("Ground Beef", stock=10)
    recipe = await make_recipe("Burger", [(beef, 1)])
    return recipe, beef


async def _store_sale(session_maker, restaurant, items, **kwargs):
    async with session_maker() as session:
        event = SalesEvent(restaurant_id=restaurant.id, external_order_id="pos-1", items=items, **kwargs)
        session.add(event)
        await session.commit()
        return event


class TestParseSaleItems:
    def test_valid_items(self):
        rid = str(uuid4())
        [item] = parse_sale_items([{"recipe_id": rid, "recipe_name": "Burger", "quantity": 2}])
        assert str(item.recipe_id) == rid
        assert item.quantity == 2

    @pytest.mark.parametrize("raw", [
        None, [], "burger", {"recipe_id": "x"}, [{"quantity": 1}], [{"recipe_id": "nope", "quantity": 1}],
        [{"recipe_id": str(uuid4()), "quantity": -1}],
    ])
    def test_malformed_payloads_become_empty(self, raw):
        assert parse_sale_items(raw) == []


class TestSalesEventListener:
    async def test_published_sale_depletes_inventory(self, bus, session_maker, restaurant, burger, stock_of):
        recipe, beef = burger
        event = await _store_sale(session_maker, restaurant, [{"recipe_id": str(recipe.id), "quantity": 3}])

        await SalesEventListener(bus, session_maker).start()
        await bus.start()
        await bus.publish(SALES_EVENT_INSERTED, sales_event_payload(event))
        await bus.join(SALES_EVENT_INSERTED)

        assert await stock_of(beef.id) == pytest.approx(7)
        async with session_maker() as session:
            stored = await session.get(SalesEvent, event.id)
            assert stored.processed_at is not None

    async def test_redelivered_event_is_processed_once(self, bus, session_maker, restaurant, burger, stock_of):
        recipe, beef = burger
        event = await _store_sale(session_maker, restaurant, [{"recipe_id": str(recipe.id), "quantity": 2}])
        listener = SalesEventListener(bus, session_maker)

        await listener.handle(SALES_EVENT_INSERTED, sales_event_payload(event))
        await listener.handle(SALES_EVENT_INSERTED, sales_event_payload(event))

        assert await stock_of(beef.id) == pytest.approx(8)
        async with session_maker() as session:
            res = await session.execute(select(InventoryEvent).where(InventoryEvent.ingredient_id == beef.id))
            assert len(res.scalars().all()) == 1

    async def test_failed_depletion_releases_the_claim(self, session_maker, bus, restaurant, burger, stock_of):
        recipe, beef = burger
        event = await _store_sale(session_maker, restaurant, [
            {"recipe_id": str(recipe.id), "quantity": 1},
            {"recipe_id": str(uuid4()), "quantity": 1},
        ])

        # logged, not raised
        await SalesEventListener(bus, session_maker).handle(SALES_EVENT_INSERTED, sales_event_payload(event))

        assert await stock_of(beef.id) == pytest.approx(10)
        async with session_maker() as session:
            stored = await session.get(SalesEvent, event.id)
            assert stored.processed_at is None

    async def test_events_for_other_restaurants_are_ignored(self, session_maker, bus, restaurant, burger, stock_of):
        recipe, beef = burger
        event = await _store_sale(session_maker, restaurant, [{"recipe_id": str(recipe.id), "quantity": 1}])

        listener = SalesEventListener(bus, session_maker, restaurant_id=uuid4())
        await listener.handle(SALES_EVENT_INSERTED, sales_event_payload(event))

        assert await stock_of(beef.id) == pytest.approx(10)

    @pytest.mark.parametrize("items", [
        [], None, "garbage", [{"recipe_id": "not-a-uuid", "quantity": 1}],
        [{"recipe_id": str(uuid4()), "quantity": -1}],
    ])
    async def test_malformed_items_are_a_no_op(self, session_maker, bus, restaurant, burger, stock_of, items):
        _, beef = burger
        payload = {"id": str(uuid4()), "restaurant_id": str(restaurant.id), "items": items}

        await SalesEventListener(bus, session_maker).handle(SALES_EVENT_INSERTED, payload)

        assert await stock_of(beef.id) == pytest.approx(10)

    async def test_payload_without_id_is_still_depleted(self, session_maker, bus, burger, stock_of):
        recipe, beef = burger
        payload = {"items": [{"recipe_id": str(recipe.id), "quantity": 4}]}

        await SalesEventListener(bus, session_maker).handle(SALES_EVENT_INSERTED, payload)

        assert await stock_of(beef.id) == pytest.approx(6)

    async def test_audit_notes_name_the_pos_order(self, session_maker, bus, restaurant, burger):
        recipe, beef = burger
        event = await _store_sale(session_maker, restaurant, [{"recipe_id": str(recipe.id), "quantity": 1}])

        await SalesEventListener(bus, session_maker).handle(SALES_EVENT_INSERTED, sales_event_payload(event))

        async with session_maker() as session:
            res = await session.execute(select(InventoryEvent).where(InventoryEvent.ingredient_id == beef.id))
            [audit] = res.scalars().all()
        assert audit.notes.endswith("(POS order pos-1)")


class TestDelivery:
    async def test_full_queue_makes_publish_wait(self, session_maker, restaurant, burger, stock_of):
        recipe, beef = burger
        first = await _store_sale(session_maker, restaurant, [{"recipe_id": str(recipe.id), "quantity": 1}])
        second = await _store_sale(session_maker, restaurant, [{"recipe_id": str(recipe.id), "quantity": 2}])

        bus = AsyncEventBus(max_queue_size=1)
        await SalesEventListener(bus, session_maker).start()
        try:
            await bus.publish(SALES_EVENT_INSERTED, sales_event_payload(first))
            pending = asyncio.create_task(bus.publish(SALES_EVENT_INSERTED, sales_event_payload(second)))
            await asyncio.sleep(0.05)
            assert not pending.done()

            await bus.start()
            await asyncio.wait_for(pending, timeout=5)
            await bus.join(SALES_EVENT_INSERTED)
        finally:
            await bus.stop()

        # both sales made it through, nothing was dropped
        assert await stock_of(beef.id) == pytest.approx(7)

    async def test_redrive_publishes_only_unprocessed_sales(self, bus, session_maker, restaurant, burger, stock_of):
        recipe, beef = burger
        await _store_sale(session_maker, restaurant, [{"recipe_id": str(recipe.id), "quantity": 5}], processed_at=datetime(2026, 1, 5, 12, 0))
        missed = await _store_sale(session_maker, restaurant, [{"recipe_id": str(recipe.id), "quantity": 2}])

        await SalesEventListener(bus, session_maker).start()
        await bus.start()
        assert await redrive_unprocessed(bus, session_maker) == 1
        await bus.join(SALES_EVENT_INSERTED)

        assert await stock_of(beef.id) == pytest.approx(8)
        async with session_maker() as session:
            assert (await session.get(SalesEvent, missed.id)).processed_at is not None

        # nothing left to send on the next startup
        assert await redrive_unprocessed(bus, session_maker) == 0

    async def test_redrive_can_be_limited_to_one_restaurant(self, bus, session_maker, restaurant, burger):
        recipe, _ = burger
        await _store_sale(session_maker, restaurant, [{"recipe_id": str(recipe.id), "quantity": 1}])

        assert await redrive_unprocessed(bus, session_maker, restaurant_id=uuid4()) == 0
        assert await redrive_unprocessed(bus, session_maker, restaurant_id=restaurant.id) == 1
