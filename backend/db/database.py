from collections.abc import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from core.config import settings


class Base(DeclarativeBase):
    pass


engine = create_async_engine(settings.database_url, echo=settings.database_echo)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


def load_models():
    """Import every model module so Base.metadata knows all tables."""
    from db import (  # noqa: F401
        alert,
        cost_snapshot,
        forecast_event,
        image,
        ingredient,
        onboarding,
        purchase_order,
        recipe,
        recipe_ingredient,
        restaurant,
        sales_event,
        users,
        vendor,
    )
    from db.inventory import event  # noqa: F401


async def create_db_and_tables():
    load_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session
