"""Application wiring and FastAPI dependencies.

The orchestrator and its collaborators are built once at startup and shared
across requests; no component holds per-job state.
"""

import logging

import httpx
from fastapi import Request

from backend.itinerary.auth.tokens import (
    ServiceAccountCredentials,
    ServiceAccountTokenProvider,
    StaticTokenProvider,
    TokenProvider,
)
from backend.itinerary.config import Settings
from backend.itinerary.llm.client import get_text_generator
from backend.itinerary.orchestration.jobs import JobOrchestrator
from backend.itinerary.orchestration.scheduler import AsyncioTaskScheduler
from backend.itinerary.resilience.retry import RetryConfig, RetryPolicy
from backend.itinerary.store.documents import (
    DocumentStore,
    FirestoreDocumentStore,
    InMemoryDocumentStore,
)
from backend.itinerary.utils.logging import StructuredRetryLogger
from backend.itinerary.utils.metrics import PrometheusRetryMetrics
from backend.itinerary.validation.itinerary import ItineraryValidator

logger = logging.getLogger(__name__)


def build_orchestrator(
    settings: Settings, http_client: httpx.AsyncClient
) -> tuple[JobOrchestrator, AsyncioTaskScheduler]:
    """Build the orchestrator and its default scheduler from settings.

    Without service account credentials the in-memory store and a static
    token are used (local development).
    """
    retry_policy = RetryPolicy(
        RetryConfig.from_settings(settings),
        metrics=PrometheusRetryMetrics(),
        logger=StructuredRetryLogger(),
    )

    credentials: ServiceAccountCredentials | None = None
    store: DocumentStore
    token_provider: TokenProvider
    if settings.firebase_service_account_key is not None:
        credentials = ServiceAccountCredentials.from_json(
            settings.firebase_service_account_key.get_secret_value()
        )
        store = FirestoreDocumentStore(
            http_client,
            credentials.project_id,
            retry_policy,
            base_url=settings.firestore_base_url,
        )
        token_provider = ServiceAccountTokenProvider(
            http_client,
            retry_policy,
            scope=settings.token_scope,
            token_uri=settings.token_uri,
            lifetime_seconds=settings.token_lifetime_seconds,
        )
        logger.info(f"Using Firestore project {credentials.project_id}")
    else:
        logger.warning("No service account configured, using in-memory document store")
        store = InMemoryDocumentStore()
        token_provider = StaticTokenProvider()

    scheduler = AsyncioTaskScheduler()
    orchestrator = JobOrchestrator(
        store,
        token_provider,
        get_text_generator(settings, retry_policy),
        ItineraryValidator(settings.min_description_length),
        retry_policy,
        scheduler,
        credentials=credentials,
        collection=settings.jobs_collection,
        min_destination_length=settings.min_destination_length,
        min_days=settings.min_duration_days,
        max_days=settings.max_duration_days,
        deadline_seconds=settings.generation_deadline_seconds,
    )
    return orchestrator, scheduler


def get_orchestrator(request: Request) -> JobOrchestrator:
    """Orchestrator built in the application lifespan."""
    return request.app.state.orchestrator
