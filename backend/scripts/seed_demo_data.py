import asyncio
import sys
from pathlib import Path

"""
Seed a demo kitchen (user, restaurant, vendors, ingredients, recipes) into the DB.

This script can be run from either:
- backend/: `python scripts/seed_demo_data.py`
- repo root: `python backend/scripts/seed_demo_data.py`
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import func, select

from db.database import async_session_maker, create_db_and_tables
from db.users import User
from db.restaurant import Restaurant
from db.vendor import Vendor
from db.ingredient import Ingredient
from db.recipe import Recipe
from db.recipe_ingredient import RecipeIngredient
from services.ledger import apply_stock_change, set_count

from fastapi_users.password import PasswordHelper


password_helper = PasswordHelper()

DEMO_EMAIL = "chef@example.com"
DEMO_PASSWORD = "demo-password"

VENDORS = [
    {"name": "Sysco", "contact_email": "orders@sysco.example.com", "lead_time_days": 2, "delivery_days": ["monday", "thursday"]},
    {"name": "Local Farms Co", "contact_email": "hello@localfarms.example.com", "lead_time_days": 1, "delivery_days": ["tuesday", "friday"]},
]

# name, category, unit, storage, stock, reorder point, par level, unit cost, vendor
INGREDIENTS = [
    ("Spaghetti", "dry_goods", "kg", "dry_storage", 12, 4, 15, 2.40, "Sysco"),
    ("Olive Oil", "dry_goods", "l", "dry_storage", 6, 2, 8, 9.50, "Sysco"),
    ("Parmesan", "dairy", "kg", "walk_in_cooler", 3, 1, 4, 22.00, "Sysco"),
    ("Guanciale", "protein", "kg", "walk_in_cooler", 2, 1, 4, 18.00, "Local Farms Co"),
    ("Eggs", "dairy", "each", "walk_in_cooler", 60, 24, 90, 0.35, "Local Farms Co"),
    ("San Marzano Tomatoes", "produce", "kg", "dry_storage", 10, 4, 12, 4.20, "Sysco"),
    ("Basil", "produce", "bunch", "walk_in_cooler", 5, 3, 10, 1.80, "Local Farms Co"),
    ("Mozzarella", "dairy", "kg", "walk_in_cooler", 4, 2, 6, 11.00, "Local Farms Co"),
]

# name, category, menu price, lines (ingredient, quantity, unit)
RECIPES = [
    ("Spaghetti Carbonara", "main", 19.00, [
        ("Spaghetti", 0.12, "kg"),
        ("Guanciale", 0.06, "kg"),
        ("Eggs", 2, "each"),
        ("Parmesan", 0.03, "kg"),
    ]),
    ("Spaghetti al Pomodoro", "main", 16.00, [
        ("Spaghetti", 0.12, "kg"),
        ("San Marzano Tomatoes", 0.15, "kg"),
        ("Olive Oil", 0.02, "l"),
        ("Basil", 0.2, "bunch"),
    ]),
    ("Caprese", "appetizer", 12.00, [
        ("Mozzarella", 0.125, "kg"),
        ("San Marzano Tomatoes", 0.1, "kg"),
        ("Basil", 0.1, "bunch"),
        ("Olive Oil", 0.015, "l"),
    ]),
]


async def get_or_create_user(session, email: str, password: str) -> User:
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user:
        return user

    user = User(
        email=email,
        hashed_password=password_helper.hash(password),
        is_active=True,
        is_superuser=True,
        is_verified=True,
    )
    session.add(user)
    await session.flush()
    return user


async def get_or_create_restaurant(session, owner: User) -> Restaurant:
    result = await session.execute(select(Restaurant).where(Restaurant.owner_id == owner.id))
    restaurant = result.scalars().first()
    if restaurant:
        return restaurant

    open_day = {"open": "11:30", "close": "22:00", "closed": False}
    restaurant = Restaurant(
        owner_id=owner.id,
        name="Trattoria Demo",
        address={"street": "1 Main St", "city": "Springfield", "country": "US"},
        concept_type="casual",
        seats=40,
        services=["lunch", "dinner"],
        hours={
            **{d: open_day for d in ("tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")},
            "monday": {"open": "", "close": "", "closed": True},
        },
        cuisine_tags=["italian"],
    )
    session.add(restaurant)
    await session.flush()
    return restaurant


async def get_or_create_vendor(session, data: dict) -> Vendor:
    result = await session.execute(select(Vendor).where(func.lower(Vendor.name) == data["name"].lower()))
    vendor = result.scalar_one_or_none()
    if vendor:
        return vendor

    vendor = Vendor(**data)
    session.add(vendor)
    await session.flush()
    return vendor


async def get_or_create_ingredient(session, row, vendors) -> Ingredient:
    name, category, unit, storage, stock, reorder, par, cost, vendor_name = row
    result = await session.execute(select(Ingredient).where(func.lower(Ingredient.name) == name.lower()))
    ingredient = result.scalar_one_or_none()
    if ingredient:
        return ingredient

    ingredient = Ingredient(
        name=name,
        category=category,
        unit=unit,
        storage_location=storage,
        current_stock=0,
        reorder_point=reorder,
        par_level=par,
        unit_cost=cost,
        vendor_id=vendors[vendor_name].id,
    )
    session.add(ingredient)
    await session.flush()
    # Opening stock goes through the ledger so it shows up as a count
    await apply_stock_change(session, ingredient.id, set_count(stock), event_type="count", source="Demo seed")
    return ingredient


async def get_or_create_recipe(session, name, category, price, lines, ingredients) -> Recipe:
    result = await session.execute(select(Recipe).where(func.lower(Recipe.name) == name.lower()))
    recipe = result.scalar_one_or_none()
    if recipe:
        return recipe

    recipe = Recipe(name=name, category=category, menu_price=price, yield_amount=1, yield_unit="portion")
    recipe.recipe_ingredients = [
        RecipeIngredient(ingredient_id=ingredients[ing].id, quantity=qty, unit=unit, sort_order=i)
        for i, (ing, qty, unit) in enumerate(lines)
    ]
    session.add(recipe)
    await session.flush()
    return recipe


async def main():
    await create_db_and_tables()
    async with async_session_maker() as session:
        user = await get_or_create_user(session, DEMO_EMAIL, DEMO_PASSWORD)
        restaurant = await get_or_create_restaurant(session, user)

        vendors = {}
        for data in VENDORS:
            vendors[data["name"]] = await get_or_create_vendor(session, data)

        ingredients = {}
        for row in INGREDIENTS:
            ingredients[row[0]] = await get_or_create_ingredient(session, row, vendors)

        for name, category, price, lines in RECIPES:
            await get_or_create_recipe(session, name, category, price, lines, ingredients)

        await session.commit()

    print(f"Seeded demo kitchen '{restaurant.name}' for {DEMO_EMAIL}")
    print(f"- {len(vendors)} vendors, {len(ingredients)} ingredients, {len(RECIPES)} recipes")


if __name__ == "__main__":
    asyncio.run(main())
