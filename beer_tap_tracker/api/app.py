"""
HTTP application for the dispenser API.

Builds a FastAPI app around a DispenserManager and maps domain errors to
JSON responses of the form {"error": "<message>"}.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config.loader import Settings
from ..core import errors
from ..core.manager import DispenserManager
from ..storage.ledger import UsageLedger
from .routers.dispenser import router as dispenser_router

logger = logging.getLogger(__name__)


def create_app(
    manager: Optional[DispenserManager] = None,
    settings: Optional[Settings] = None
) -> FastAPI:
    """Create the API application.

    Each app owns its manager, so separate apps never share dispensers.

    Args:
        manager: Manager to serve (a fresh one is built if omitted)
        settings: Settings used to build the default manager

    Returns:
        Configured FastAPI application
    """
    settings = settings or Settings()
    if manager is None:
        manager = DispenserManager(ledger=UsageLedger(settings.pricing.price_per_litre))

    app = FastAPI(title="Beer Tap Tracker API")
    app.state.manager = manager

    # Browser clients on any origin may call the API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(errors.ValidationError, _validation_error)
    app.add_exception_handler(errors.NotFoundError, _not_found_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(Exception, _internal_error)

    app.include_router(dispenser_router, prefix="/api")
    return app


async def _validation_error(request: Request, exc: errors.ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": exc.message})


async def _not_found_error(request: Request, exc: errors.NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": exc.message})


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Malformed request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": errors.INVALID_REQUEST_BODY})


async def _internal_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": errors.INTERNAL_SERVER_ERROR})
