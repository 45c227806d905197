from fastapi import FastAPI
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from db.database import create_db_and_tables, async_session_maker
from core.auth import fastapi_users, auth_backend
from core.config import settings
from core.event_bus import event_bus
from core.logger import get_logger
from contextlib import asynccontextmanager
from routers.ai import router as ai_router
from routers.alerts import router as alerts_router
from routers.cost_snapshots import router as cost_snapshots_router
from routers.forecast import router as forecast_router
from routers.images import router as images_router
from routers.ingredients import router as ingredients_router
from routers.inventory import router as inventory_router
from routers.onboarding import router as onboarding_router
from routers.purchase_orders import router as purchase_orders_router
from routers.recipes import router as recipes_router
from routers.restaurants import router as restaurants_router
from routers.sales import router as sales_router
from routers.vendors import router as vendors_router
from schemas.users import UserRead, UserCreate, UserUpdate
from services.sales_listener import SalesEventListener, redrive_unprocessed

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_db_and_tables()
    await SalesEventListener(event_bus, async_session_maker).start()
    await event_bus.start()
    await redrive_unprocessed(event_bus, async_session_maker)
    yield
    await event_bus.stop()


app = FastAPI(
    title="Back-of-House API",
    description="Inventory, recipes, purchasing and POS sale depletion for restaurant kitchens",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Authentication routes (fastapi-users)
app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"],)
app.include_router(fastapi_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_reset_password_router(), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_verify_router(UserRead), prefix="/auth", tags=["auth"])
app.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"])

# Image upload routes
app.include_router(images_router, prefix="/images", tags=["images"])

# Kitchen
app.include_router(ingredients_router, prefix="/ingredients", tags=["ingredients"])
app.include_router(recipes_router, prefix="/recipes", tags=["recipes"])
app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
app.include_router(sales_router, prefix="/sales", tags=["sales"])

# Purchasing
app.include_router(vendors_router, prefix="/vendors", tags=["vendors"])
app.include_router(purchase_orders_router, prefix="/purchase-orders", tags=["purchase-orders"])
app.include_router(alerts_router, prefix="/alerts", tags=["alerts"])

# Planning
app.include_router(forecast_router, prefix="/forecast", tags=["forecast"])
app.include_router(cost_snapshots_router, prefix="/cost-snapshots", tags=["cost-snapshots"])

# Setup and assistants
app.include_router(restaurants_router, prefix="/restaurants", tags=["restaurants"])
app.include_router(onboarding_router, prefix="/onboarding", tags=["onboarding"])
app.include_router(ai_router, prefix="/ai", tags=["ai"])

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
