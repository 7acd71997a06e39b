"""Main FastAPI application for Padel Booking."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app import db
from app.config import BUSINESS_TIMEZONE_NAME, ENVIRONMENT
from app.rate_limit import limiter
from app.routers import availability, health, reservations, resources, unavailabilities

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await db.init_db()
    logger.info(
        "Padel Booking started (%s, business timezone %s)",
        ENVIRONMENT,
        BUSINESS_TIMEZONE_NAME,
    )
    try:
        yield
    finally:
        await db.close_db()


app = FastAPI(
    title="Padel Booking API",
    description="Court and gym equipment availability, pricing and reservations",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(health.router)
app.include_router(resources.router)
app.include_router(availability.router)
app.include_router(reservations.router)
app.include_router(unavailabilities.router)
