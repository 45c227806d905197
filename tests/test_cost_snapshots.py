"""Weekly food-cost snapshots."""
from datetime import date
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select

from db.cost_snapshot import CostSnapshot, CostSnapshotSummary
from services.cost_snapshots import list_summaries, recipe_history, summarize, take_snapshot, week_start


def _breakdown(pct, menu_price=10.0):
    return SimpleNamespace(food_cost_pct=pct, menu_price=menu_price)


class TestSummarize:
    def test_thresholds(self):
        summary = summarize([_breakdown(25), _breakdown(30), _breakdown(32), _breakdown(35), _breakdown(40)])

        assert summary["total_recipes"] == 5
        assert (summary["recipes_on_target"], summary["recipes_warning"], summary["recipes_high"]) == (2, 2, 1)
        assert summary["avg_food_cost_pct"] == pytest.approx(32.4)

    def test_unpriced_recipes_are_left_out(self):
        summary = summarize([_breakdown(None, menu_price=None), _breakdown(20)])
        assert (summary["total_recipes"], summary["avg_food_cost_pct"]) == (1, 20)

    def test_empty_menu(self):
        assert summarize([]) == {
            "avg_food_cost_pct": 0.0,
            "total_recipes": 0,
            "recipes_on_target": 0,
            "recipes_warning": 0,
            "recipes_high": 0,
        }

    def test_week_starts_on_monday(self):
        assert week_start(date(2026, 3, 8)) == date(2026, 3, 2)
        assert week_start(date(2026, 3, 2)) == date(2026, 3, 2)


@pytest.fixture
async def menu(make_ingredient, make_recipe):
    beef = await make_ingredient("Ground Beef", stock=10, unit_cost=8.0)
    # 2.4 / 10 = 24%
    burger = await make_recipe("Burger", [(beef, 0.3)], menu_price=10)
    # 3.2 / 8 = 40%
    steak = await make_recipe("Steak Sandwich", [(beef, 0.4)], menu_price=8)
    await make_recipe("Staff Meal", [(beef, 0.2)])
    await make_recipe("Old Special", [(beef, 1)], menu_price=5, is_active=False)
    return SimpleNamespace(burger=burger, steak=steak)


class TestTakeSnapshot:
    async def test_records_every_active_recipe(self, session_maker, menu):
        async with session_maker() as session:
            summary = await take_snapshot(session, on=date(2026, 3, 4))
            await session.commit()

        assert summary.week_start == date(2026, 3, 2)
        assert (summary.total_recipes, summary.recipes_on_target, summary.recipes_high) == (2, 1, 1)
        assert summary.avg_food_cost_pct == pytest.approx(32)

        async with session_maker() as session:
            [row] = await recipe_history(session, menu.burger.id)
            assert (row.recipe_name, row.total_cost, row.food_cost_pct) == ("Burger", pytest.approx(2.4), pytest.approx(24))
            count = await session.scalar(select(func.count()).select_from(CostSnapshot))
            assert count == 3

    async def test_same_week_overwrites_the_summary(self, session_maker, menu):
        for day in (date(2026, 3, 2), date(2026, 3, 6), date(2026, 3, 10)):
            async with session_maker() as session:
                await take_snapshot(session, on=day)
                await session.commit()

        async with session_maker() as session:
            summaries = await list_summaries(session, weeks=4, on=date(2026, 3, 10))
            assert [s.week_start for s in summaries] == [date(2026, 3, 9), date(2026, 3, 2)]
            assert await session.scalar(select(func.count()).select_from(CostSnapshotSummary)) == 2
            assert len(await recipe_history(session, menu.steak.id)) == 3


class TestCostSnapshotApi:
    async def test_snapshot_and_trend(self, client, menu):
        resp = await client.post("/cost-snapshots/")
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert (body["total_recipes"], body["recipes_on_target"], body["recipes_warning"], body["recipes_high"]) == (2, 1, 0, 1)

        [week] = (await client.get("/cost-snapshots/")).json()
        assert week["week_start"] == body["week_start"]

        history = (await client.get(f"/cost-snapshots/recipes/{menu.steak.id}")).json()
        assert [(h["recipe_name"], h["food_cost_pct"]) for h in history] == [("Steak Sandwich", pytest.approx(40))]
