"""Itinerary job endpoints - submission (POST /) and status checks (GET /)."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from backend.itinerary.api.deps import get_orchestrator
from backend.itinerary.config import Settings, get_settings
from backend.itinerary.errors import ClientInputError
from backend.itinerary.orchestration.jobs import JobOrchestrator
from backend.itinerary.orchestration.scheduler import BackgroundTasksScheduler

logger = logging.getLogger(__name__)

router = APIRouter()


class SubmitItineraryRequest(BaseModel):
    """Request body for POST /.

    Types are checked by the orchestrator so every input problem becomes a 400.
    """

    model_config = ConfigDict(populate_by_name=True)

    destination: Any = None
    duration_days: Any = Field(None, alias="durationDays")


class SubmitItineraryResponse(BaseModel):
    """Response for POST /."""

    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(..., serialization_alias="jobId")
    message: str


def _error_response(status_code: int, error: str, exc: Exception, settings: Settings) -> JSONResponse:
    body: dict[str, str] = {"error": error}
    if settings.expose_error_details:
        body["details"] = str(exc)
    return JSONResponse(status_code=status_code, content=body)


@router.post("/", status_code=status.HTTP_202_ACCEPTED, response_model=None)
async def submit_itinerary(
    request: SubmitItineraryRequest,
    background_tasks: BackgroundTasks,
    orchestrator: Annotated[JobOrchestrator, Depends(get_orchestrator)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> JSONResponse:
    """Create an itinerary job and start generation in the background.

    Returns:
        202 with the job id; the itinerary is fetched later via GET
    """
    try:
        job_id = await orchestrator.submit(
            request.destination,
            request.duration_days,
            scheduler=BackgroundTasksScheduler(background_tasks),
        )
    except ClientInputError:
        raise
    except Exception as e:
        logger.error(f"Request processing error: {e}", exc_info=True)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", e, settings)

    response = SubmitItineraryResponse(job_id=job_id, message="Itinerary generation started")
    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content=response.model_dump(by_alias=True),
    )


async def _job_status(job_id: str | None, orchestrator: JobOrchestrator, settings: Settings) -> JSONResponse:
    if not job_id or not job_id.strip():
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "jobId is required", "usage": "GET /?jobId=YOUR_JOB_ID"},
        )

    try:
        job = await orchestrator.get_job(job_id.strip())
    except Exception as e:
        logger.error(f"Status check error: {e}", exc_info=True)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to check status", e, settings)

    if job is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Job not found"})

    return JSONResponse(status_code=status.HTTP_200_OK, content=job.model_dump(mode="json", by_alias=True))


@router.get("/", response_model=None)
async def get_job_status(
    orchestrator: Annotated[JobOrchestrator, Depends(get_orchestrator)],
    settings: Annotated[Settings, Depends(get_settings)],
    job_id: Annotated[str | None, Query(alias="jobId")] = None,
) -> JSONResponse:
    """Get a job document by `?jobId=`."""
    return await _job_status(job_id, orchestrator, settings)


@router.get("/{job_id}", response_model=None)
async def get_job_status_by_path(
    job_id: str,
    orchestrator: Annotated[JobOrchestrator, Depends(get_orchestrator)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> JSONResponse:
    """Get a job document by path suffix."""
    return await _job_status(job_id, orchestrator, settings)
