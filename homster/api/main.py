"""
Homster API - Main FastAPI Application.

Provides the REST API for the user, vendor, worker and admin apps, with the
Socket.IO server mounted alongside it.
"""

import os
from contextlib import asynccontextmanager

import socketio
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi

from homster import config
from homster.realtime import sio
from homster.utils.logging import setup_logging

# Load environment variables
load_dotenv()

# Configure logging early
setup_logging("homster-api")


def _init_database():
    """Initialize database connection if configured."""
    from homster.db import DatabaseConnection

    if not DatabaseConnection.is_configured():
        print("   Database: Not configured (DATABASE_URL / INSTANCE_CONNECTION_NAME not set)")
        return False

    try:
        DatabaseConnection.initialize()
        print("   Database: Connected")
        return True
    except Exception as e:
        print(f"   Database: Failed to connect - {e}")
        return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    print("🚀 Starting Homster API...")
    print(f"   Environment: {os.getenv('GOOGLE_CLOUD_PROJECT', 'local')}")
    print(f"   Socket manager: {'redis' if config.REDIS_URL else 'in-memory'}")

    db_initialized = _init_database()

    yield

    # Shutdown
    if db_initialized:
        from homster.db import DatabaseConnection

        DatabaseConnection.close()
        print("   Database: Connection closed")

    print("👋 Shutting down Homster API...")


# OpenAPI tag descriptions (shown in /docs and /openapi.json)
OPENAPI_TAGS = [
    {
        "name": "auth",
        "description": "Registration, login and token refresh for every role",
    },
    {
        "name": "bookings",
        "description": "Customer bookings, cancellation, reviews and online payment",
    },
    {
        "name": "vendor-bookings",
        "description": "Booking alerts and the vendor side of the booking lifecycle",
    },
    {
        "name": "vendor-workers",
        "description": "Vendor worker roster management",
    },
    {
        "name": "worker-jobs",
        "description": "Jobs assigned to workers",
    },
    {
        "name": "cash",
        "description": "OTP-confirmed on-site cash collection",
    },
    {
        "name": "wallets",
        "description": "User, vendor and worker wallets, transactions and payouts",
    },
    {
        "name": "scrap",
        "description": "Scrap pickup listings",
    },
    {
        "name": "notifications",
        "description": "In-app notifications for the authenticated account",
    },
    {
        "name": "admin",
        "description": "Platform administration (requires the admin role)",
    },
    {
        "name": "system",
        "description": "System health and information endpoints",
    },
]

# Create FastAPI application
app = FastAPI(
    title="Homster API",
    description=(
        "Home-services marketplace API.\n\n"
        "Users book services, nearby vendors are alerted and accept jobs, vendors "
        "assign their workers, and payments settle by wallet, Razorpay or cash.\n\n"
        "**Authentication:** Include the access token from `/api/v1/auth/login` in the "
        "`Authorization: Bearer <token>` header.\n\n"
        "**Real-time:** Socket.IO is served at `/socket.io` with the same token."
    ),
    version="0.1.0",
    lifespan=lifespan,
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["system"], operation_id="getServiceInfo")
async def root():
    """Return basic information about the API service."""
    return {
        "service": "Homster API",
        "version": "0.1.0",
        "status": "operational",
        "description": "Home-services marketplace",
    }


@app.get("/health", tags=["system"], operation_id="healthCheck")
async def health_check():
    """Check service health status (used by Cloud Run monitoring)."""
    from homster.db import DatabaseConnection

    return {
        "status": "healthy",
        "service": "homster-api",
        "environment": os.getenv("GOOGLE_CLOUD_PROJECT", "local"),
        "database": DatabaseConnection.is_initialized(),
    }


# Import and include routers
from homster.api.routes import (
    admin,
    auth,
    bookings,
    cash,
    notifications,
    scrap,
    vendor_bookings,
    vendor_workers,
    wallets,
    worker_jobs,
)

app.include_router(auth.router, prefix="/api/v1", tags=["auth"])
app.include_router(cash.router, prefix="/api/v1", tags=["cash"])
app.include_router(bookings.router, prefix="/api/v1", tags=["bookings"])
app.include_router(vendor_bookings.router, prefix="/api/v1", tags=["vendor-bookings"])
app.include_router(vendor_workers.router, prefix="/api/v1", tags=["vendor-workers"])
app.include_router(worker_jobs.router, prefix="/api/v1", tags=["worker-jobs"])
app.include_router(wallets.router, prefix="/api/v1", tags=["wallets"])
app.include_router(scrap.router, prefix="/api/v1", tags=["scrap"])
app.include_router(notifications.router, prefix="/api/v1", tags=["notifications"])
app.include_router(admin.router, prefix="/api/v1", tags=["admin"])


def custom_openapi():
    """Override OpenAPI schema to add security schemes."""
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
        tags=app.openapi_tags,
    )

    openapi_schema["components"]["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": (
                "Access token issued by the login endpoint.\n\n"
                "```bash\n"
                "TOKEN=$(curl -s -X POST $API/api/v1/auth/login \\\n"
                "  -d '{\"role\": \"USER\", \"phone\": \"...\", \"password\": \"...\"}' "
                "| jq -r .access_token)\n"
                "```"
            ),
        },
    }

    openapi_schema["security"] = [{"BearerAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

# ASGI entrypoint serving both the REST API and Socket.IO
asgi_app = socketio.ASGIApp(sio, other_asgi_app=app)
