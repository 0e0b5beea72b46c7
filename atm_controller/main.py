"""
ATM Controller — FastAPI Application.

This is the entry point for the application.
All routers are registered here.
"""

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from atm_controller.config import get_settings
from atm_controller.api.atm import router as atm_router, request_validation_handler
from atm_controller.api.health import router as health_router

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Card sessions, PIN lockout and single-operation ATM transactions",
)

# Register routers
app.include_router(health_router)
app.include_router(atm_router)

app.add_exception_handler(RequestValidationError, request_validation_handler)


def run() -> None:
    """Serve the application with uvicorn using HOST and PORT."""
    uvicorn.run(
        "atm_controller.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
