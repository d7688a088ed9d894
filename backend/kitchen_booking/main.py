# backend/kitchen_booking/main.py
"""
FastAPI application for the kitchen booking engine.

Run with:
    uvicorn kitchen_booking.main:app --reload
"""

import logging
from typing import Dict

from fastapi import FastAPI

from . import __version__
from .core.config import settings
from .errors import register_error_handlers
from .routes import availability, bookings, overstays, prometheus, storage_extensions

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

API_TITLE = "Kitchen Booking Engine"
API_DESCRIPTION = "Kitchen, storage and equipment booking with dynamic pricing"


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

register_error_handlers(app)

app.include_router(availability.router)
app.include_router(bookings.router)
app.include_router(storage_extensions.router)
app.include_router(overstays.router)
app.include_router(prometheus.router)


@app.get("/health")
def health_check() -> Dict[str, str]:
    return {"status": "healthy", "service": "kitchen-booking-engine", "environment": settings.environment}


logger.info(f"{API_TITLE} {__version__} started in {settings.environment} mode")
