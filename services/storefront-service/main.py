"""Main application entry point."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session
import redis
import httpx
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from config import REDIS_URL, API_VERSION, MEDIA_ROOT, STORE_NAME
import database
import schemas
import auth
import dependencies
from database import init_db, engine, SessionLocal
from logging_config import setup_logging
from monitoring import init_profiling
from models import UserProfile
from routers import (
    addresses,
    admin_coupons,
    admin_orders,
    admin_products,
    auth as auth_router,
    cart,
    orders,
    payments,
    products,
    webhooks
)
from security import RouteProtectionMiddleware
from services.cart_service import CartRegistry, RedisCartSnapshotStore
from services.checkout_service import CheckoutService

# Setup structured logging
setup_logging()
logger = logging.getLogger(__name__)

# Sync client; cart snapshots are written on the request path
redis_client = redis.from_url(REDIS_URL, decode_responses=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info("Starting application...")

    init_db()

    RedisInstrumentor().instrument(redis_client=redis_client)
    app.state.cart_registry = CartRegistry(RedisCartSnapshotStore(redis_client))
    logger.info("Redis client and cart registry initialized")

    http_client = httpx.AsyncClient(timeout=30.0)
    HTTPXClientInstrumentor().instrument_client(http_client)
    app.state.http_client = http_client
    logger.info("HTTP client initialized")

    init_profiling()

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    await http_client.aclose()
    redis_client.close()
    logger.info("Application shutdown complete")


app = FastAPI(
    title=f"{STORE_NAME} Storefront Service",
    version=API_VERSION,
    lifespan=lifespan
)

# Admin and auth page protection
app.add_middleware(RouteProtectionMiddleware, session_factory=SessionLocal)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Instrument FastAPI and SQLAlchemy
FastAPIInstrumentor.instrument_app(app)
SQLAlchemyInstrumentor().instrument(engine=engine)

# Uploaded product images
Path(MEDIA_ROOT).mkdir(parents=True, exist_ok=True)
app.mount("/media", StaticFiles(directory=MEDIA_ROOT), name="media")


@app.get("/")
async def root():
    return {"name": STORE_NAME, "version": API_VERSION}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(auth_router.router)
app.include_router(products.router)
app.include_router(cart.router)
app.include_router(addresses.router)
app.include_router(orders.router)
app.include_router(payments.router)
app.include_router(webhooks.router)
app.include_router(admin_products.router)
app.include_router(admin_coupons.router)
app.include_router(admin_orders.router)


# Storefront clients post to /checkout
@app.post("/checkout", response_model=schemas.CheckoutResponse)
async def checkout_compat(
    request: schemas.CheckoutRequest,
    db: Session = Depends(database.get_db),
    user: UserProfile = Depends(auth.get_current_user),
    carts: CartRegistry = Depends(dependencies.get_cart_registry),
    checkout_service: CheckoutService = Depends(dependencies.get_checkout_service)
):
    """Alias of /orders/checkout."""
    return await orders.checkout(request, db, user, carts, checkout_service)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
