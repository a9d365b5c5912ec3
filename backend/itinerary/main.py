"""FastAPI application - itinerary job service."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.itinerary.api.deps import build_orchestrator
from backend.itinerary.api.routes.health import router as health_router
from backend.itinerary.api.routes.itineraries import router as itineraries_router
from backend.itinerary.api.routes.metrics import router as metrics_router
from backend.itinerary.config import get_settings
from backend.itinerary.errors import ClientInputError
from backend.itinerary.utils.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build shared clients at startup; drain background work at shutdown."""
    settings = get_settings()
    configure_logging(settings.log_level)

    http_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
    orchestrator, scheduler = build_orchestrator(settings, http_client)
    app.state.orchestrator = orchestrator
    app.state.scheduler = scheduler
    logger.info("Itinerary service started")

    try:
        yield
    finally:
        if scheduler.pending:
            logger.info(f"Waiting for {scheduler.pending} background job(s) to finish")
        await scheduler.drain()
        await http_client.aclose()


app = FastAPI(title="Itinerary Job API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.exception_handler(ClientInputError)
async def client_input_error_handler(request: Request, exc: ClientInputError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Request body must be a JSON object with destination and durationDays"},
    )


# Register routes; fixed paths before the "/{job_id}" status route
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(itineraries_router, tags=["itineraries"])
