"""
Shared fixtures.

Every test gets its own SQLite file (aiosqlite) with all tables created, a
session factory bound to it, a persisted superuser, a private event bus and an
httpx client talking to the FastAPI app with auth and DB dependencies overridden.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./backhouse-test.db")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from core.auth import current_active_superuser, current_active_user
from core.event_bus import AsyncEventBus, get_event_bus
from db.database import Base, get_async_session, load_models
from db.ingredient import Ingredient
from db.recipe import Recipe
from db.recipe_ingredient import RecipeIngredient
from db.users import User
from db.vendor import Vendor
from main import app


@pytest.fixture
async def engine(tmp_path):
    load_models()
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'backhouse.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def user(session_maker):
    async with session_maker() as session:
        u = User(
            email="chef@example.com",
            hashed_password="not-a-real-hash",
            is_active=True,
            is_superuser=True,
            is_verified=True,
        )
        session.add(u)
        await session.commit()
        return u


@pytest.fixture
async def bus():
    b = AsyncEventBus()
    yield b
    await b.stop()


@pytest.fixture
async def client(session_maker, user, bus):
    async def _session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = _session
    app.dependency_overrides[current_active_user] = lambda: user
    app.dependency_overrides[current_active_superuser] = lambda: user
    app.dependency_overrides[get_event_bus] = lambda: bus
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_vendor(session_maker):
    async def _make(name="Sysco", **kwargs):
        async with session_maker() as session:
            vendor = Vendor(name=name, **kwargs)
            session.add(vendor)
            await session.commit()
            return vendor
    return _make


@pytest.fixture
def make_ingredient(session_maker):
    async def _make(name, *, stock=0.0, unit="kg", **kwargs):
        async with session_maker() as session:
            ingredient = Ingredient(name=name, unit=unit, current_stock=stock, stock_version=0, **kwargs)
            session.add(ingredient)
            await session.commit()
            return ingredient
    return _make


@pytest.fixture
def make_recipe(session_maker):
    """lines: [(ingredient, quantity), ...]"""
    async def _make(name, lines, **kwargs):
        async with session_maker() as session:
            recipe = Recipe(name=name, **kwargs)
            recipe.recipe_ingredients = [
                RecipeIngredient(ingredient_id=ing.id, quantity=qty, unit=ing.unit, sort_order=i)
                for i, (ing, qty) in enumerate(lines)
            ]
            session.add(recipe)
            await session.commit()
            return recipe
    return _make


@pytest.fixture
def stock_of(session_maker):
    async def _stock(ingredient_id):
        async with session_maker() as session:
            ingredient = await session.get(Ingredient, ingredient_id)
            return ingredient.current_stock
    return _stock
