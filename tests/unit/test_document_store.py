"""Tests for the Firestore REST and in-memory document stores."""

import json
from datetime import UTC, datetime

import httpx
import pytest

from backend.itinerary.errors import (
    DocumentConflictError,
    DocumentNotFoundError,
    DocumentStoreError,
    RetryExhaustedError,
)
from backend.itinerary.resilience.retry import RetryPolicy
from backend.itinerary.store.documents import FirestoreDocumentStore, InMemoryDocumentStore
from backend.itinerary.store.marshal import encode_fields
from tests.fakes import RecordingSleep

BASE_URL = "https://firestore.example.test/v1"
DOCUMENTS_PATH = "/v1/projects/demo/databases/(default)/documents"
CREATED = datetime(2025, 6, 10, 9, 30, tzinfo=UTC)


class FirestoreEndpoint:
    """MockTransport handler replaying a queue of responses."""

    def __init__(self, responses: list[httpx.Response]) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)


def make_store(endpoint: FirestoreEndpoint, policy: RetryPolicy) -> FirestoreDocumentStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(endpoint))
    return FirestoreDocumentStore(client, "demo", policy, base_url=BASE_URL)


def document_response(fields: dict) -> httpx.Response:
    return httpx.Response(200, json={"name": "doc", "fields": encode_fields(fields)})


class TestFirestoreDocumentStore:
    @pytest.mark.asyncio
    async def test_create_posts_to_collection_with_document_id(self, retry_policy: RetryPolicy) -> None:
        fields = {"status": "processing", "durationDays": 3, "createdAt": CREATED, "error": None}
        endpoint = FirestoreEndpoint([document_response(fields)])
        store = make_store(endpoint, retry_policy)

        result = await store.create("itineraries", "job-1", fields, token="tok")

        assert result == fields
        request = endpoint.requests[0]
        assert request.method == "POST"
        assert request.url.path == f"{DOCUMENTS_PATH}/itineraries"
        assert request.url.params["documentId"] == "job-1"
        assert request.headers["authorization"] == "Bearer tok"
        body = json.loads(request.content)
        assert body["fields"]["durationDays"] == {"integerValue": "3"}
        assert body["fields"]["error"] == {"nullValue": None}

    @pytest.mark.asyncio
    async def test_update_sends_field_mask_and_exists_precondition(
        self, retry_policy: RetryPolicy
    ) -> None:
        patch = {"status": "failed", "error": "Generation failed: boom"}
        endpoint = FirestoreEndpoint([document_response(patch)])
        store = make_store(endpoint, retry_policy)

        await store.update("itineraries", "job-1", patch, token="tok")

        request = endpoint.requests[0]
        assert request.method == "PATCH"
        assert request.url.path == f"{DOCUMENTS_PATH}/itineraries/job-1"
        assert request.url.params.get_list("updateMask.fieldPaths") == ["status", "error"]
        assert request.url.params["currentDocument.exists"] == "true"
        assert set(json.loads(request.content)["fields"]) == {"status", "error"}

    @pytest.mark.asyncio
    async def test_get_decodes_fields(self, retry_policy: RetryPolicy) -> None:
        fields = {"status": "completed", "itinerary": [{"day": 1, "activities": []}]}
        endpoint = FirestoreEndpoint([document_response(fields)])
        store = make_store(endpoint, retry_policy)

        assert await store.get("itineraries", "job-1", token="tok") == fields
        assert endpoint.requests[0].method == "GET"

    @pytest.mark.asyncio
    async def test_get_missing_document_returns_none(self, retry_policy: RetryPolicy) -> None:
        endpoint = FirestoreEndpoint([httpx.Response(404, json={"error": {"code": 404}})])
        store = make_store(endpoint, retry_policy)

        assert await store.get("itineraries", "nope", token="tok") is None
        assert len(endpoint.requests) == 1

    @pytest.mark.asyncio
    async def test_create_conflict_is_not_retried(self, retry_policy: RetryPolicy) -> None:
        endpoint = FirestoreEndpoint([httpx.Response(409, json={"error": {"status": "ALREADY_EXISTS"}})])
        store = make_store(endpoint, retry_policy)

        with pytest.raises(RetryExhaustedError) as exc_info:
            await store.create("itineraries", "job-1", {"status": "processing"}, token="tok")

        assert isinstance(exc_info.value.last_error, DocumentConflictError)
        assert len(endpoint.requests) == 1

    @pytest.mark.asyncio
    async def test_update_missing_document_is_not_retried(self, retry_policy: RetryPolicy) -> None:
        endpoint = FirestoreEndpoint([httpx.Response(404, json={"error": {"status": "NOT_FOUND"}})])
        store = make_store(endpoint, retry_policy)

        with pytest.raises(RetryExhaustedError) as exc_info:
            await store.update("itineraries", "job-1", {"status": "failed"}, token="tok")

        assert isinstance(exc_info.value.last_error, DocumentNotFoundError)

    @pytest.mark.asyncio
    async def test_unavailable_is_retried(
        self, retry_policy: RetryPolicy, recording_sleep: RecordingSleep
    ) -> None:
        endpoint = FirestoreEndpoint(
            [httpx.Response(503, text="unavailable"), document_response({"status": "processing"})]
        )
        store = make_store(endpoint, retry_policy)

        await store.create("itineraries", "job-1", {"status": "processing"}, token="tok")

        assert len(endpoint.requests) == 2
        assert recording_sleep.calls == [1.0]

    @pytest.mark.asyncio
    async def test_exhausted_server_errors_carry_status(self, retry_policy: RetryPolicy) -> None:
        endpoint = FirestoreEndpoint([httpx.Response(500, text="internal") for _ in range(4)])
        store = make_store(endpoint, retry_policy)

        with pytest.raises(RetryExhaustedError) as exc_info:
            await store.get("itineraries", "job-1", token="tok")

        assert exc_info.value.attempts == 4
        assert isinstance(exc_info.value.last_error, DocumentStoreError)
        assert exc_info.value.last_error.status_code == 500


class TestInMemoryDocumentStore:
    @pytest.mark.asyncio
    async def test_create_update_get(self) -> None:
        store = InMemoryDocumentStore()

        await store.create("jobs", "a", {"status": "processing", "createdAt": CREATED}, token="t")
        await store.update("jobs", "a", {"status": "completed"}, token="t")

        assert await store.get("jobs", "a", token="t") == {"status": "completed", "createdAt": CREATED}
        assert await store.get("jobs", "b", token="t") is None

    @pytest.mark.asyncio
    async def test_conflict_and_not_found(self) -> None:
        store = InMemoryDocumentStore()
        await store.create("jobs", "a", {"status": "processing"}, token="t")

        with pytest.raises(DocumentConflictError):
            await store.create("jobs", "a", {"status": "processing"}, token="t")
        with pytest.raises(DocumentNotFoundError):
            await store.update("jobs", "missing", {"status": "failed"}, token="t")

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        store = InMemoryDocumentStore()
        await store.create("jobs", "a", {"status": "processing"}, token="t")

        store.clear()

        assert await store.get("jobs", "a", token="t") is None
