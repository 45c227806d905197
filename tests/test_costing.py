"""Recipe cost breakdown and menu-engineering classification."""
import pytest

from core.exceptions import RecipeNotFoundError
from db.restaurant import Restaurant
from db.sales_event import SalesEvent
from services.costing import food_cost_status, get_cost_breakdown, menu_engineering


@pytest.mark.parametrize("pct,status", [(20, "Excellent"), (28, "Excellent"), (30, "Good"), (35, "Fair"), (45, "High")])
def test_food_cost_status(pct, status):
    assert food_cost_status(pct) == status


class TestCostBreakdown:
    async def test_lines_sorted_by_cost_with_shares(self, db, make_ingredient, make_recipe):
        ribeye = await make_ingredient("Ribeye", unit_cost=32)
        potato = await make_ingredient("Potatoes", unit_cost=4)
        steak = await make_recipe("Steak Frites", [(potato, 0.4), (ribeye, 0.3)], menu_price=32, yield_amount=2)

        breakdown = await get_cost_breakdown(db, steak.id)

        assert breakdown.total_cost == pytest.approx(11.2)
        assert breakdown.cost_per_unit == pytest.approx(5.6)
        assert breakdown.food_cost_pct == pytest.approx(35.0)
        assert breakdown.status == "Fair"
        assert [line.name for line in breakdown.lines] == ["Ribeye", "Potatoes"]
        assert sum(line.percentage for line in breakdown.lines) == pytest.approx(100)

    async def test_unpriced_recipe_has_no_food_cost(self, db, make_ingredient, make_recipe):
        stock = await make_ingredient("Chicken Stock", unit="l", unit_cost=2)
        recipe = await make_recipe("Stock", [(stock, 1)])

        breakdown = await get_cost_breakdown(db, recipe.id)

        assert breakdown.food_cost_pct is None
        assert breakdown.status is None

    async def test_unknown_recipe(self, db):
        from uuid import uuid4

        with pytest.raises(RecipeNotFoundError):
            await get_cost_breakdown(db, uuid4())


class TestMenuEngineering:
    async def test_four_quadrants(self, session_maker, db, user, make_ingredient, make_recipe):
        base = await make_ingredient("Base", unit_cost=1)
        star = await make_recipe("Burger", [(base, 5)], menu_price=20)
        plowhorse = await make_recipe("Fries", [(base, 6)], menu_price=12)
        puzzle = await make_recipe("Lobster", [(base, 10)], menu_price=30)
        dog = await make_recipe("Soup", [(base, 8)], menu_price=10)
        await make_recipe("Staff Meal", [(base, 3)])

        async with session_maker() as session:
            restaurant = Restaurant(owner_id=user.id, name="Diner")
            session.add(restaurant)
            await session.flush()
            session.add(SalesEvent(restaurant_id=restaurant.id, items=[
                {"recipe_id": str(star.id), "quantity": 15},
                {"recipe_id": str(plowhorse.id), "quantity": 20},
                {"recipe_id": str(puzzle.id), "quantity": 1},
            ]))
            await session.commit()

        report = await menu_engineering(db)

        by_name = {item.name: item.classification for item in report.items}
        assert by_name == {"Burger": "star", "Fries": "plowhorse", "Lobster": "puzzle", "Soup": "dog"}
        assert report.average_units_sold == pytest.approx(9)
        assert report.average_profit == pytest.approx(10.75)

    async def test_empty_menu(self, db):
        report = await menu_engineering(db)
        assert report.items == []
