"""HTTP surface, exercised through httpx against the ASGI app."""
import base64
from unittest.mock import AsyncMock, patch
from uuid import UUID, uuid4

import pytest

from core.event_bus import SALES_EVENT_INSERTED
from db.sales_event import SalesEvent
from services.sales_listener import SalesEventListener


async def _restaurant(client, name="Trattoria"):
    resp = await client.post("/restaurants/", json={"name": name, "concept_type": "casual"})
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestIngredientsAndInventory:
    async def test_opening_stock_is_recorded_as_a_count(self, client):
        resp = await client.post("/ingredients/", json={
            "name": "  Flour ", "unit": "kg", "current_stock": 25, "reorder_point": 5, "par_level": 30,
        })
        assert resp.status_code == 201, resp.text
        flour = resp.json()
        assert flour["name"] == "Flour"
        assert flour["current_stock"] == 25

        events = (await client.get(f"/inventory/events/ingredient/{flour['id']}")).json()
        assert [(e["event_type"], e["quantity"], e["source"]) for e in events] == [("count", 25, "Initial stock")]

    async def test_duplicate_name_conflicts(self, client):
        await client.post("/ingredients/", json={"name": "Salt", "unit": "kg"})
        resp = await client.post("/ingredients/", json={"name": "salt", "unit": "kg"})
        assert resp.status_code == 409

    async def test_waste_and_count_entries(self, client, make_ingredient):
        milk = await make_ingredient("Milk", stock=10, unit="l", reorder_point=4)

        resp = await client.post("/inventory/events", json={
            "ingredient_id": str(milk.id), "event_type": "waste", "quantity": -7, "notes": "Spoiled",
        })
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert (body["previous_stock"], body["new_stock"], body["source"]) == (10, 3, "Manual entry")

        low = (await client.get("/ingredients/low-stock")).json()
        assert [i["name"] for i in low] == ["Milk"]
        alerts = (await client.get("/alerts/")).json()
        assert [(a["type"], a["title"]) for a in alerts] == [("low_stock", "Low stock: Milk")]

        resp = await client.post("/inventory/events", json={
            "ingredient_id": str(milk.id), "event_type": "count", "quantity": 12,
        })
        assert resp.json()["quantity"] == 9
        # back above the reorder point
        assert (await client.get("/alerts/")).json() == []
        assert len((await client.get("/alerts/", params={"resolved": True})).json()) == 1

    async def test_waste_must_be_negative(self, client, make_ingredient):
        milk = await make_ingredient("Milk", stock=10, unit="l")
        resp = await client.post("/inventory/events", json={
            "ingredient_id": str(milk.id), "event_type": "waste", "quantity": 2,
        })
        assert resp.status_code == 422

    async def test_event_for_unknown_ingredient(self, client):
        resp = await client.post("/inventory/events", json={
            "ingredient_id": str(uuid4()), "event_type": "adjustment", "quantity": 1,
        })
        assert resp.status_code == 404


class TestSales:
    async def test_recorded_sale_is_depleted_by_the_listener(self, client, bus, session_maker, make_ingredient, make_recipe, stock_of):
        beef = await make_ingredient("Ground Beef", stock=10)
        burger = await make_recipe("Burger", [(beef, 0.5)])
        restaurant = await _restaurant(client)
        await SalesEventListener(bus, session_maker).start()
        await bus.start()

        resp = await client.post("/sales/", json={
            "restaurant_id": restaurant["id"],
            "external_order_id": "square-42",
            "items": [{"recipe_id": str(burger.id), "recipe_name": "Burger", "quantity": 4}],
        })
        assert resp.status_code == 201, resp.text
        await bus.join(SALES_EVENT_INSERTED)

        assert await stock_of(beef.id) == pytest.approx(8)
        [sale] = (await client.get("/sales/", params={"restaurant_id": restaurant["id"]})).json()
        assert sale["external_order_id"] == "square-42"
        assert sale["processed_at"] is not None

    async def test_sale_for_unknown_restaurant(self, client, make_ingredient, make_recipe):
        beef = await make_ingredient("Ground Beef", stock=10)
        burger = await make_recipe("Burger", [(beef, 0.5)])
        resp = await client.post("/sales/", json={
            "restaurant_id": str(uuid4()),
            "items": [{"recipe_id": str(burger.id), "quantity": 1}],
        })
        assert resp.status_code == 404

    async def test_manual_processing(self, client, make_ingredient, make_recipe, stock_of):
        flour = await make_ingredient("Flour", stock=500, unit="g")
        pizza = await make_recipe("Pizza", [(flour, 250)])

        resp = await client.post("/sales/process", json={"items": [{"recipe_id": str(pizza.id), "quantity": 3}]})

        assert resp.status_code == 200, resp.text
        [line] = resp.json()["depleted_ingredients"]
        assert (line["quantity_depleted"], line["new_stock"], line["shortfall"]) == (750, 0, 250)
        assert await stock_of(flour.id) == 0

    async def test_manual_processing_of_unknown_recipe(self, client):
        resp = await client.post("/sales/process", json={"items": [{"recipe_id": str(uuid4()), "quantity": 1}]})
        assert resp.status_code == 404

    @pytest.mark.parametrize("quantity", [-1, -0.25])
    async def test_manual_processing_rejects_negative_quantities(self, client, make_ingredient, make_recipe, stock_of, quantity):
        flour = await make_ingredient("Flour", stock=500, unit="g")
        pizza = await make_recipe("Pizza", [(flour, 250)])

        resp = await client.post("/sales/process", json={"items": [{"recipe_id": str(pizza.id), "quantity": quantity}]})

        assert resp.status_code == 422
        assert await stock_of(flour.id) == pytest.approx(500)

    async def test_reprocessing_a_sale_that_was_never_depleted(self, client, bus, session_maker, make_ingredient, make_recipe, stock_of):
        beef = await make_ingredient("Ground Beef", stock=10)
        burger = await make_recipe("Burger", [(beef, 0.5)])
        restaurant = await _restaurant(client)
        # stored while nothing was listening
        async with session_maker() as session:
            sale = SalesEvent(
                restaurant_id=UUID(restaurant["id"]),
                external_order_id="square-7",
                items=[{"recipe_id": str(burger.id), "quantity": 2}],
            )
            session.add(sale)
            await session.commit()
        await SalesEventListener(bus, session_maker).start()
        await bus.start()

        resp = await client.post(f"/sales/{sale.id}/reprocess")
        assert resp.status_code == 202, resp.text
        await bus.join(SALES_EVENT_INSERTED)
        assert await stock_of(beef.id) == pytest.approx(9)

        resp = await client.post(f"/sales/{sale.id}/reprocess")
        assert resp.status_code == 409
        assert await stock_of(beef.id) == pytest.approx(9)

    async def test_reprocessing_an_unknown_sale(self, client):
        resp = await client.post(f"/sales/{uuid4()}/reprocess")
        assert resp.status_code == 404


class TestRecipes:
    async def test_create_update_and_cost(self, client, make_ingredient):
        bun = await make_ingredient("Bun", unit="each", unit_cost=0.5)
        patty = await make_ingredient("Patty", unit="each", unit_cost=2.5)

        resp = await client.post("/recipes/", json={
            "name": "Burger", "menu_price": 12,
            "ingredients": [
                {"ingredient_id": str(bun.id), "quantity": 1, "unit": "each"},
                {"ingredient_id": str(patty.id), "quantity": 1, "unit": "each"},
            ],
        })
        assert resp.status_code == 201, resp.text
        recipe = resp.json()
        assert [i["name"] for i in recipe["ingredients"]] == ["Bun", "Patty"]

        resp = await client.put(f"/recipes/{recipe['id']}", json={
            "ingredients": [{"ingredient_id": str(patty.id), "quantity": 2, "unit": "each"}],
        })
        assert [(i["name"], i["quantity"]) for i in resp.json()["ingredients"]] == [("Patty", 2)]

        cost = (await client.get(f"/recipes/{recipe['id']}/cost")).json()
        assert cost["total_cost"] == pytest.approx(5)
        assert cost["food_cost_pct"] == pytest.approx(5 / 12 * 100)

    async def test_unknown_ingredient_line(self, client):
        resp = await client.post("/recipes/", json={
            "name": "Ghost", "ingredients": [{"ingredient_id": str(uuid4()), "quantity": 1, "unit": "kg"}],
        })
        assert resp.status_code == 400

    async def test_generated_steps_can_be_saved(self, client, make_ingredient, make_recipe):
        egg = await make_ingredient("Eggs", unit="each")
        omelette = await make_recipe("Omelette", [(egg, 3)])
        steps = [{"step": 1, "instruction": "Whisk the eggs"}, {"step": 2, "instruction": "Cook gently"}]

        from schemas.recipes import RecipeStep
        with patch("routers.recipes.generate_recipe_steps", AsyncMock(return_value=[RecipeStep(**s) for s in steps])):
            resp = await client.post(f"/recipes/{omelette.id}/steps", json={"save": True})

        assert resp.json() == {"steps": steps, "saved": True}
        recipe = (await client.get(f"/recipes/{omelette.id}")).json()
        assert recipe["instructions"] == "1. Whisk the eggs\n2. Cook gently"


class TestPurchaseOrders:
    async def test_full_lifecycle(self, client, make_vendor, make_ingredient, stock_of):
        vendor = await make_vendor("Sysco")
        flour = await make_ingredient("Flour", stock=2, reorder_point=5, par_level=20, unit_cost=0.8, vendor_id=vendor.id)

        suggestions = (await client.get("/purchase-orders/suggestions")).json()
        assert suggestions["total_items"] == 1

        resp = await client.post("/purchase-orders/from-suggestions")
        assert resp.status_code == 201, resp.text
        [order] = resp.json()
        assert order["status"] == "draft"
        assert order["items"][0]["quantity"] == 18

        for action, expected in (("approve", "approved"), ("send", "sent")):
            resp = await client.post(f"/purchase-orders/{order['id']}/{action}")
            assert resp.json()["status"] == expected

        resp = await client.post(f"/purchase-orders/{order['id']}/receive")
        assert resp.json()["status"] == "received"
        assert await stock_of(flour.id) == pytest.approx(20)

        listed = (await client.get("/purchase-orders/", params={"status": "received"})).json()
        assert [o["id"] for o in listed] == [order["id"]]

        resp = await client.delete(f"/purchase-orders/{order['id']}")
        assert resp.status_code == 409

    async def test_only_drafts_are_editable(self, client, make_vendor, make_ingredient):
        vendor = await make_vendor("Sysco")
        flour = await make_ingredient("Flour", unit_cost=1)
        order = (await client.post("/purchase-orders/", json={
            "vendor_id": str(vendor.id),
            "items": [{"ingredient_id": str(flour.id), "quantity": 5}],
        })).json()

        resp = await client.patch(f"/purchase-orders/{order['id']}", json={"notes": "Back door"})
        assert resp.json()["notes"] == "Back door"

        await client.post(f"/purchase-orders/{order['id']}/approve")
        resp = await client.patch(f"/purchase-orders/{order['id']}", json={"notes": "Front door"})
        assert resp.status_code == 409

    async def test_unknown_order(self, client):
        assert (await client.get(f"/purchase-orders/{uuid4()}")).status_code == 404


class TestRestaurantsAndOnboarding:
    async def test_hours_extract_endpoint(self, client):
        resp = await client.post("/restaurants/hours/extract", json={"content": "Monday 5:30–11 PM, Tuesday: Closed"})
        hours = resp.json()["hours"]
        assert hours["monday"] == {"open": "17:30", "close": "23:00", "closed": False}
        assert hours["tuesday"]["closed"] is True

    async def test_hours_lookup_without_search_key(self, client):
        from core.config import settings

        with patch.object(settings, "firecrawl_api_key", ""):
            resp = await client.post("/restaurants/hours/lookup", json={"restaurant_name": "Trattoria"})
        assert resp.status_code == 500

    async def test_restaurant_update(self, client):
        restaurant = await _restaurant(client)
        resp = await client.patch(f"/restaurants/{restaurant['id']}", json={"currency": "eur", "name": " Osteria "})
        assert (resp.json()["currency"], resp.json()["name"]) == ("EUR", "Osteria")
        assert [r["id"] for r in (await client.get("/restaurants/")).json()] == [restaurant["id"]]

    async def test_wizard(self, client):
        assert (await client.get("/onboarding/")).json()["current_step"] == 1

        restaurant = await _restaurant(client)
        resp = await client.patch("/onboarding/", json={"restaurant_id": restaurant["id"], "data": {"pos": "square"}})
        assert resp.json()["restaurant_id"] == restaurant["id"]

        resp = await client.post("/onboarding/complete-step", json={"step": 1, "health_delta": 20})
        body = resp.json()
        assert (body["current_step"], body["completed_steps"], body["setup_health_score"]) == (2, [1], 20)

        resp = await client.post("/onboarding/complete-step", json={"step": 12})
        assert resp.status_code == 400


class TestVendorsAndImages:
    async def test_vendor_crud(self, client):
        resp = await client.post("/vendors/", json={"name": "Sysco", "contact_email": "orders@sysco.com"})
        assert resp.status_code == 201, resp.text
        vendor = resp.json()
        assert (await client.post("/vendors/", json={"name": "sysco"})).status_code == 409

        resp = await client.patch(f"/vendors/{vendor['id']}", json={"lead_time_days": 3})
        assert resp.json()["lead_time_days"] == 3

        assert (await client.delete(f"/vendors/{vendor['id']}")).status_code == 204
        assert (await client.get(f"/vendors/{vendor['id']}")).status_code == 404

    async def test_base64_upload_and_serve(self, client):
        png = b"\x89PNG\r\n\x1a\n" + b"\x00" * 200
        data_url = "data:image/png;base64," + base64.b64encode(png).decode()

        resp = await client.post("/images/upload", data={"base64_image": data_url})
        assert resp.status_code == 201, resp.text

        served = await client.get(resp.json()["url"])
        assert served.headers["content-type"] == "image/png"
        assert served.content == png

    async def test_upload_rejects_non_images(self, client):
        resp = await client.post("/images/upload", files={"file": ("notes.txt", b"x" * 500, "text/plain")})
        assert resp.status_code == 400
