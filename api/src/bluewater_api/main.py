"""FastAPI application for the Bluewater booking REST API.

This package provides REST endpoints for:
- Health checks
- Course and trip bookings
- Rental bookings paid through Stripe, and the Stripe webhook
- Course enrollments
- Course display order

Settings are resolved in the lifespan hook: a missing Stripe secret stops
the application from starting instead of failing individual requests.
"""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from bluewater import __version__
from bluewater.config import get_settings
from bluewater.utils.logging import configure_logging
from bluewater_api.exceptions import register_exception_handlers
from bluewater_api.middleware.correlation import CorrelationIdMiddleware
from bluewater_api.routes import (
    bookings_router,
    courses_router,
    enrollments_router,
    rental_bookings_router,
)

logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def _cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ORIGINS")
    if not raw:
        return DEFAULT_CORS_ORIGINS
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging(os.environ.get("LOG_LEVEL", "INFO").upper())
    settings = get_settings()
    logger.info("Bluewater API starting (environment=%s)", settings.environment)
    yield


app = FastAPI(
    title="Bluewater Booking API",
    description="REST API for bookings, rentals, enrollments and payments",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

# Register exception handlers for consistent error responses
register_exception_handlers(app)

# Include routers under /api prefix
# This matches CloudFront routing: /api/* → API Gateway
app.include_router(bookings_router, prefix="/api")
app.include_router(rental_bookings_router, prefix="/api")
app.include_router(enrollments_router, prefix="/api")
app.include_router(courses_router, prefix="/api")


@app.get("/api/ping", tags=["health"])
async def ping() -> dict[str, Any]:
    """Health check endpoint at /api/ping."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": "bluewater-api",
        "version": __version__,
    }


# Lambda handler - Mangum wraps FastAPI for AWS Lambda + API Gateway.
# lifespan="auto" so a cold start fails fast on missing configuration.
handler = Mangum(app, lifespan="auto")


def run_server(host: str = "0.0.0.0", port: int = 8080, reload: bool = True) -> None:
    """Run the FastAPI server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: 8080)
        reload: Enable hot reload for development (default: True)
    """
    import uvicorn

    if reload:
        # Use string reference for reload mode (uvicorn requirement)
        uvicorn.run(
            "bluewater_api.main:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=["api/src", "shared/src"],
        )
    else:
        uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
