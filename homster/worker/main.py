"""
Homster Worker - Cloud Tasks receiver for booking dispatch.

Each alert wave schedules a task that lands here once its window has passed.
The worker expires the wave and sends the next one, so it needs the database
and, for its socket events to reach connected apps, the shared Redis manager.
"""

import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

from homster import config
from homster.api.cloud_tasks import QUEUE_NAME
from homster.db import DatabaseConnection
from homster.utils.logging import setup_logging

load_dotenv()

setup_logging("homster-worker")

SERVICE_NAME = "homster-worker"
VERSION = "0.1.0"


def dispatch_settings() -> dict:
    """Wave settings the worker dispatches with."""
    return {
        "alert_window_seconds": config.ALERT_WINDOW_SECONDS,
        "wave_size": config.ALERT_WAVE_SIZE,
        "search_radius_km": config.VENDOR_SEARCH_RADIUS_KM,
        "queue": QUEUE_NAME,
    }


def socket_manager() -> str:
    return "redis" if config.REDIS_URL else "in-memory"


@asynccontextmanager
async def lifespan(app: FastAPI):
    print("🔨 Starting Homster dispatch worker...")
    settings = dispatch_settings()
    print(
        f"   Waves: {settings['wave_size']} vendors within "
        f"{settings['search_radius_km']} km, {settings['alert_window_seconds']}s each"
    )
    print(f"   Queue: {settings['queue']}")
    if not config.REDIS_URL:
        print("   Sockets: REDIS_URL not set, alerts reach no connected app")

    connected = False
    if DatabaseConnection.is_configured():
        try:
            DatabaseConnection.initialize()
            connected = True
            print("   Database: Connected")
        except Exception as e:
            print(f"   Database: Failed to connect - {e}, tasks will fail and retry")
    else:
        print("   Database: Not configured, tasks will fail and retry")

    yield

    if connected:
        DatabaseConnection.close()
    print("👋 Dispatch worker stopped")


app = FastAPI(
    title="Homster Worker API",
    description="Closes booking alert waves and dispatches the next one via Cloud Tasks",
    version=VERSION,
    lifespan=lifespan,
)


@app.get("/")
async def root():
    return {
        "service": "Homster Worker API",
        "version": VERSION,
        "status": "operational",
        "tasks": ["/tasks/alert-expiry"],
        "dispatch": dispatch_settings(),
    }


@app.get("/health")
async def health_check():
    """
    Health check for Cloud Run.

    Reports degraded while the database is unreachable, since every task
    would fail until it is back.
    """
    database = DatabaseConnection.is_initialized()
    return {
        "status": "healthy" if database else "degraded",
        "service": SERVICE_NAME,
        "database": "connected" if database else "unavailable",
        "socket_manager": socket_manager(),
        "environment": os.getenv("GOOGLE_CLOUD_PROJECT", "local"),
    }


from homster.worker.routes import tasks

app.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
