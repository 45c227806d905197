"""Sales forecast, forecast events and closures."""
from datetime import date, datetime, timedelta
from types import SimpleNamespace
from uuid import uuid4

import pytest
from pydantic import ValidationError

from core.exceptions import RestaurantNotFoundError
from db.forecast_event import ForecastEvent
from db.purchase_order import PurchaseOrder, PurchaseOrderItem
from db.restaurant import Restaurant
from db.sales_event import SalesEvent
from schemas.forecast import ForecastEventCreate
from services.forecast import (
    build_forecast,
    closed_weekdays,
    get_forecast,
    sales_patterns,
    today,
    upcoming_holidays,
)

MONDAY = date(2026, 3, 2)


def _recipe(name="Risotto", quantity=0.25, stock=4.0):
    rice = SimpleNamespace(id=uuid4(), name="Arborio", unit="kg", current_stock=stock)
    return SimpleNamespace(
        id=uuid4(), name=name, category="main", menu_price=18.0,
        recipe_ingredients=[SimpleNamespace(quantity=quantity, unit="kg", ingredient=rice)],
    )


def _history(recipe):
    """Mondays sold 4 and 6, one Tuesday sold 3 over two tickets."""
    rid = str(recipe.id)
    return sales_patterns([
        (datetime(2026, 2, 16, 19, 0), [{"recipe_id": rid, "quantity": 6}]),
        (datetime(2026, 2, 23, 12, 30), [{"recipe_id": rid, "quantity": 4}]),
        (datetime(2026, 2, 24, 12, 0), [{"recipe_id": rid, "quantity": 1}]),
        (datetime(2026, 2, 24, 20, 0), [{"recipe_id": rid, "quantity": 2}]),
    ])


def _event(day, event_type="custom", impact=0):
    return SimpleNamespace(event_date=day, event_type=event_type, impact_percent=impact)


class TestSalesPatterns:
    def test_averages_per_recipe_and_weekday(self):
        recipe = _recipe()
        patterns = _history(recipe)

        monday = patterns[(recipe.id, 0)]
        assert (monday.total, monday.days, monday.average) == (10, 2, 5)
        # two tickets on the same day count as one day of sales
        tuesday = patterns[(recipe.id, 1)]
        assert (tuesday.total, tuesday.days) == (3, 1)

    def test_missing_quantity_counts_as_one_and_junk_is_skipped(self):
        rid = uuid4()
        patterns = sales_patterns([
            (datetime(2026, 3, 4, 12, 0), [{"recipe_id": str(rid)}, {"recipe_id": "nope"}, "junk"]),
            (None, [{"recipe_id": str(rid), "quantity": 9}]),
            (datetime(2026, 3, 4, 13, 0), None),
        ])
        assert [(p.weekday, p.total) for p in patterns.values()] == [(2, 1)]

    def test_closed_weekdays_from_business_hours(self):
        hours = {
            "Monday": {"open": "", "close": "", "closed": True},
            "tuesday": {"open": "11:00", "close": "22:00", "closed": False},
            "funday": {"closed": True},
        }
        assert closed_weekdays(hours) == {0}
        assert closed_weekdays(None) == set()


class TestBuildForecast:
    def test_weekday_averages_over_the_window(self):
        recipe = _recipe()

        forecast = build_forecast([recipe], _history(recipe), start=MONDAY, days=2)

        [dish] = forecast.dishes
        assert dish.predicted_quantity == 8
        # Monday backed by 2 days (60), Tuesday by 1 (55)
        assert dish.confidence == 58
        assert dish.event_impact is None
        [need] = forecast.ingredients
        assert need.needed_quantity == pytest.approx(2)
        assert (need.coverage, need.risk) == (pytest.approx(200), "low")
        assert [(r.name, r.quantity) for r in need.recipes] == [("Risotto", pytest.approx(2))]
        assert not forecast.has_event_impact

    def test_regularly_closed_weekday_is_skipped(self):
        recipe = _recipe()
        forecast = build_forecast([recipe], _history(recipe), start=MONDAY, days=2, closed={0})
        [dish] = forecast.dishes
        assert (dish.predicted_quantity, dish.confidence) == (3, 55)

    def test_closure_event_removes_the_day(self):
        recipe = _recipe()
        tuesday = MONDAY + timedelta(days=1)

        forecast = build_forecast(
            [recipe], _history(recipe), start=MONDAY, days=2, events=[_event(tuesday, "closure", -100)]
        )

        assert [d.predicted_quantity for d in forecast.dishes] == [5]
        assert forecast.has_event_impact

    def test_event_impact_scales_that_day(self):
        recipe = _recipe()

        forecast = build_forecast(
            [recipe], _history(recipe), start=MONDAY, days=2, events=[_event(MONDAY, "promotion", 20)]
        )

        [dish] = forecast.dishes
        # 5 x 1.2 on Monday, 3 on Tuesday
        assert dish.predicted_quantity == 9
        assert dish.event_impact == 10

    def test_negative_impact_never_predicts_below_zero(self):
        recipe = _recipe()
        forecast = build_forecast(
            [recipe], _history(recipe), start=MONDAY, days=1, events=[_event(MONDAY, "weather", -100)]
        )
        assert forecast.dishes == []
        assert forecast.ingredients == []

    def test_seats_cap_the_prediction(self):
        recipe = _recipe()

        # 1 seat: 2 covers, 3 dishes a day
        forecast = build_forecast([recipe], _history(recipe), start=MONDAY, days=2, seats=1)

        assert forecast.capacity_constrained
        assert forecast.max_daily_covers == 2
        assert [d.predicted_quantity for d in forecast.dishes] == [6]
        assert forecast.ingredients[0].needed_quantity == pytest.approx(1.5)

    def test_open_orders_count_toward_coverage(self):
        recipe = _recipe(stock=0.5)
        rice_id = recipe.recipe_ingredients[0].ingredient.id

        forecast = build_forecast(
            [recipe], _history(recipe), start=MONDAY, days=2, pending={rice_id: 0.5}
        )

        [need] = forecast.ingredients
        assert (need.current_stock, need.pending_quantity) == (1.0, 0.5)
        assert (need.coverage, need.risk) == (50, "medium")

    def test_requirements_sorted_by_risk(self):
        short = _recipe("Paella", stock=0.1)
        plenty = _recipe("Risotto", stock=100)
        patterns = {**_history(short), **_history(plenty)}

        forecast = build_forecast([plenty, short], patterns, start=MONDAY, days=2)

        assert [r.risk for r in forecast.ingredients] == ["high", "low"]

    def test_recipes_without_history_are_left_out(self):
        forecast = build_forecast([_recipe()], {}, start=MONDAY, days=7)
        assert forecast.dishes == []


class TestForecastEventSchema:
    def test_default_impact_by_type(self):
        event = ForecastEventCreate(restaurant_id=uuid4(), name=" Valentine's ", event_date=MONDAY, event_type="holiday")
        assert (event.name, event.impact_percent) == ("Valentine's", 25)

    def test_closure_always_removes_the_day(self):
        event = ForecastEventCreate(
            restaurant_id=uuid4(), name="Staff party", event_date=MONDAY, event_type="closure", impact_percent=10,
        )
        assert event.impact_percent == -100

    @pytest.mark.parametrize("impact", [-101, 501])
    def test_impact_bounds(self, impact):
        with pytest.raises(ValidationError):
            ForecastEventCreate(restaurant_id=uuid4(), name="Gala", event_date=MONDAY, impact_percent=impact)


class TestHolidays:
    def test_next_occurrence_soonest_first(self):
        presets = upcoming_holidays(date(2026, 12, 26))
        assert presets[0].name == "New Year's Eve"
        assert presets[0].event_date == date(2026, 12, 31)
        assert presets[1].event_date == date(2027, 1, 1)
        assert len(presets) == 10


@pytest.fixture
async def trattoria(session_maker, user):
    async with session_maker() as session:
        r = Restaurant(owner_id=user.id, name="Trattoria", hours={"sunday": {"open": "", "close": "", "closed": True}})
        session.add(r)
        await session.commit()
        return r


@pytest.fixture
async def risotto(session_maker, trattoria, make_ingredient, make_recipe):
    rice = await make_ingredient("Arborio", stock=1)
    recipe = await make_recipe("Risotto", [(rice, 0.25)], menu_price=18)
    async with session_maker() as session:
        session.add_all([
            SalesEvent(
                restaurant_id=trattoria.id,
                items=[{"recipe_id": str(recipe.id), "quantity": qty}],
                occurred_at=when,
            )
            for when, qty in [(datetime(2026, 2, 23, 19, 0), 4), (datetime(2026, 2, 24, 19, 0), 2)]
        ])
        await session.commit()
    return SimpleNamespace(rice=rice, recipe=recipe)


class TestForecastFromDatabase:
    async def test_history_events_and_open_orders(self, session_maker, db, trattoria, risotto, make_vendor):
        vendor = await make_vendor()
        async with session_maker() as session:
            other = Restaurant(owner_id=trattoria.owner_id, name="Elsewhere")
            session.add(other)
            await session.flush()
            session.add_all([
                # another restaurant's sales stay out of this forecast
                SalesEvent(
                    restaurant_id=other.id,
                    items=[{"recipe_id": str(risotto.recipe.id), "quantity": 50}],
                    occurred_at=datetime(2026, 2, 23, 20, 0),
                ),
                ForecastEvent(
                    restaurant_id=trattoria.id, name="Private hire", event_date=MONDAY + timedelta(days=1),
                    event_type="closure", impact_percent=-100,
                ),
                PurchaseOrder(
                    vendor_id=vendor.id, status="sent",
                    items=[PurchaseOrderItem(ingredient_id=risotto.rice.id, quantity=2, unit="kg", received_quantity=1.5)],
                ),
                PurchaseOrder(
                    vendor_id=vendor.id, status="received",
                    items=[PurchaseOrderItem(ingredient_id=risotto.rice.id, quantity=9, unit="kg", received_quantity=9)],
                ),
            ])
            await session.commit()

        forecast = await get_forecast(db, days=2, restaurant_id=trattoria.id, start=MONDAY)

        assert [(d.recipe_name, d.predicted_quantity) for d in forecast.dishes] == [("Risotto", 4)]
        [need] = forecast.ingredients
        assert need.pending_quantity == pytest.approx(0.5)
        assert need.current_stock == pytest.approx(1.5)
        assert need.needed_quantity == pytest.approx(1)
        assert forecast.has_event_impact

    async def test_without_a_restaurant_all_sales_count(self, db, risotto):
        forecast = await get_forecast(db, days=2, start=MONDAY)
        assert [d.predicted_quantity for d in forecast.dishes] == [6]
        assert not forecast.has_event_impact

    async def test_unknown_restaurant(self, db):
        with pytest.raises(RestaurantNotFoundError):
            await get_forecast(db, restaurant_id=uuid4())


class TestForecastApi:
    async def test_forecast_endpoint(self, client, trattoria, risotto):
        resp = await client.get("/forecast/", params={
            "days": 7, "restaurant_id": str(trattoria.id), "start_date": MONDAY.isoformat(),
        })
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["days"] == 7
        assert [d["predicted_quantity"] for d in body["dishes"]] == [6]
        assert body["ingredients"][0]["ingredient_name"] == "Arborio"

    async def test_forecast_for_unknown_restaurant(self, client):
        resp = await client.get("/forecast/", params={"restaurant_id": str(uuid4())})
        assert resp.status_code == 404

    async def test_days_are_bounded(self, client):
        assert (await client.get("/forecast/", params={"days": 0})).status_code == 422
        assert (await client.get("/forecast/", params={"days": 29})).status_code == 422

    async def test_event_crud(self, client, trattoria):
        resp = await client.post("/forecast/events", json={
            "restaurant_id": str(trattoria.id), "name": "Jazz night",
            "event_date": "2026-03-06", "event_type": "special_event",
        })
        assert resp.status_code == 201, resp.text
        event = resp.json()
        assert event["impact_percent"] == 15

        resp = await client.patch(f"/forecast/events/{event['id']}", json={"impact_percent": 40})
        assert resp.json()["impact_percent"] == 40

        resp = await client.patch(f"/forecast/events/{event['id']}", json={"event_type": "closure"})
        assert (resp.json()["event_type"], resp.json()["impact_percent"]) == ("closure", -100)

        listed = (await client.get("/forecast/events", params={
            "restaurant_id": str(trattoria.id), "start_date": "2026-03-01", "end_date": "2026-03-31",
        })).json()
        assert [e["name"] for e in listed] == ["Jazz night"]

        assert (await client.delete(f"/forecast/events/{event['id']}")).status_code == 204
        assert (await client.get("/forecast/events", params={"restaurant_id": str(trattoria.id)})).json() == []

    async def test_event_for_unknown_restaurant(self, client):
        resp = await client.post("/forecast/events", json={
            "restaurant_id": str(uuid4()), "name": "Gala", "event_date": "2026-03-06",
        })
        assert resp.status_code == 404

    async def test_closures(self, client, trattoria):
        upcoming = (today() + timedelta(days=10)).isoformat()
        resp = await client.post("/forecast/closures", json={
            "restaurant_id": str(trattoria.id), "name": "Renovation", "event_date": upcoming,
        })
        assert resp.status_code == 201, resp.text
        assert (resp.json()["event_type"], resp.json()["impact_percent"]) == ("closure", -100)

        past = (today() - timedelta(days=3)).isoformat()
        resp = await client.post("/forecast/closures", json={
            "restaurant_id": str(trattoria.id), "name": "Too late", "event_date": past,
        })
        assert resp.status_code == 400

        closures = (await client.get("/forecast/closures", params={"restaurant_id": str(trattoria.id)})).json()
        assert [(c["name"], c["event_date"]) for c in closures] == [("Renovation", upcoming)]

    async def test_holiday_presets(self, client):
        presets = (await client.get("/forecast/holidays")).json()
        assert len(presets) == 10
        assert presets == sorted(presets, key=lambda p: p["event_date"])
