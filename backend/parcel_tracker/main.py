"""
FastAPI application entrypoint
- CORS
- Router registration and TrackingError -> HTTP mapping
- Scheduled event executor started in the background
- Health check endpoint
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from parcel_tracker.config import settings
from parcel_tracker.database import engine, Base, SessionLocal
from parcel_tracker.api import dashboard, deliveries, simulation, tracking, webhooks
from parcel_tracker.exceptions import EXCEPTION_STATUS_CODES, create_exception_handler
from parcel_tracker.schemas.common import HealthResponse
from parcel_tracker.simulator.clock import local_now
from parcel_tracker.simulator.event_bus import event_bus
from parcel_tracker.simulator.simulation_manager import simulation_manager

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ── 1. Tables ──
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")

    # ── 2. Executor ──
    if settings.EXECUTOR_ENABLED:
        await simulation_manager.start()
    else:
        logger.info("Executor disabled (EXECUTOR_ENABLED=false)")

    yield

    await simulation_manager.stop()


app = FastAPI(
    title="Parcel Tracker",
    description="Parcel delivery tracking with simulated scheduled events",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for exc_class, status_code in EXCEPTION_STATUS_CODES.items():
    app.add_exception_handler(exc_class, create_exception_handler(status_code))

app.include_router(deliveries.router)
app.include_router(tracking.router)
app.include_router(simulation.router)
app.include_router(webhooks.router)
app.include_router(dashboard.router)


@app.get("/api/health", response_model=HealthResponse)
def health_check():
    db_ok = False
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
    finally:
        db.close()

    return HealthResponse(
        status="ok" if db_ok else "degraded",
        db_connected=db_ok,
        redis_connected=event_bus.is_redis,
        executor_running=simulation_manager.is_running,
        timestamp=local_now(),
    )
