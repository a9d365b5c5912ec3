"""Document store access for job documents.

Fields go in and come out as plain Python values; the typed wire encoding is
handled by backend.itinerary.store.marshal.
"""

import logging
from typing import Any, Protocol

import httpx

from backend.itinerary.errors import (
    DocumentConflictError,
    DocumentNotFoundError,
    DocumentStoreError,
)
from backend.itinerary.resilience.retry import RetryPolicy
from backend.itinerary.store.marshal import decode_fields, encode_fields

logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    """Protocol for the job document collection."""

    async def create(
        self, collection: str, doc_id: str, fields: dict[str, Any], *, token: str
    ) -> dict[str, Any]:
        """Create a document.

        Raises:
            DocumentConflictError: A document with this id already exists
            DocumentStoreError: Transport or server failure
        """
        ...

    async def update(
        self, collection: str, doc_id: str, fields: dict[str, Any], *, token: str
    ) -> dict[str, Any]:
        """Partially update a document; only the given fields change.

        Raises:
            DocumentNotFoundError: No document with this id
            DocumentStoreError: Transport or server failure
        """
        ...

    async def get(self, collection: str, doc_id: str, *, token: str) -> dict[str, Any] | None:
        """Get a document's fields, or None if it does not exist."""
        ...


def _raise_for_status(response: httpx.Response, action: str, path: str) -> None:
    if response.is_success:
        return
    detail = response.text[:500]
    if response.status_code == 409:
        raise DocumentConflictError(f"Document {path} already exists")
    if response.status_code == 404:
        raise DocumentNotFoundError(f"Document {path} not found")
    raise DocumentStoreError(
        f"Document store {action} failed: {response.status_code} - {detail}",
        status_code=response.status_code,
    )


class FirestoreDocumentStore:
    """Firestore REST implementation of DocumentStore."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        project_id: str,
        retry_policy: RetryPolicy,
        base_url: str = "https://firestore.googleapis.com/v1",
    ) -> None:
        self._client = http_client
        self._retry = retry_policy
        self._documents_url = f"{base_url}/projects/{project_id}/databases/(default)/documents"

    @staticmethod
    def _headers(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}

    async def create(
        self, collection: str, doc_id: str, fields: dict[str, Any], *, token: str
    ) -> dict[str, Any]:
        path = f"{collection}/{doc_id}"

        async def attempt() -> dict[str, Any]:
            response = await self._client.post(
                f"{self._documents_url}/{collection}",
                params={"documentId": doc_id},
                headers=self._headers(token),
                json={"fields": encode_fields(fields)},
            )
            _raise_for_status(response, "create", path)
            return decode_fields(response.json().get("fields", {}))

        result = await self._retry.execute(attempt, name=f"store.create {path}")
        logger.info(f"Created document {path}")
        return result

    async def update(
        self, collection: str, doc_id: str, fields: dict[str, Any], *, token: str
    ) -> dict[str, Any]:
        path = f"{collection}/{doc_id}"
        params: list[tuple[str, str]] = [("updateMask.fieldPaths", key) for key in fields]
        params.append(("currentDocument.exists", "true"))

        async def attempt() -> dict[str, Any]:
            response = await self._client.patch(
                f"{self._documents_url}/{path}",
                params=params,
                headers=self._headers(token),
                json={"fields": encode_fields(fields)},
            )
            _raise_for_status(response, "update", path)
            return decode_fields(response.json().get("fields", {}))

        result = await self._retry.execute(attempt, name=f"store.update {path}")
        logger.info(f"Updated document {path} ({', '.join(fields)})")
        return result

    async def get(self, collection: str, doc_id: str, *, token: str) -> dict[str, Any] | None:
        path = f"{collection}/{doc_id}"

        async def attempt() -> dict[str, Any] | None:
            response = await self._client.get(
                f"{self._documents_url}/{path}",
                headers=self._headers(token),
            )
            if response.status_code == 404:
                return None
            _raise_for_status(response, "get", path)
            return decode_fields(response.json().get("fields", {}))

        return await self._retry.execute(attempt, name=f"store.get {path}")


class InMemoryDocumentStore:
    """In-memory implementation of DocumentStore.

    Documents are kept in their wire encoding so reads go through the same
    codec as the REST store.
    """

    def __init__(self) -> None:
        self._documents: dict[tuple[str, str], dict[str, dict[str, Any]]] = {}

    async def create(
        self, collection: str, doc_id: str, fields: dict[str, Any], *, token: str
    ) -> dict[str, Any]:
        key = (collection, doc_id)
        if key in self._documents:
            raise DocumentConflictError(f"Document {collection}/{doc_id} already exists")
        self._documents[key] = encode_fields(fields)
        return decode_fields(self._documents[key])

    async def update(
        self, collection: str, doc_id: str, fields: dict[str, Any], *, token: str
    ) -> dict[str, Any]:
        key = (collection, doc_id)
        if key not in self._documents:
            raise DocumentNotFoundError(f"Document {collection}/{doc_id} not found")
        self._documents[key] = {**self._documents[key], **encode_fields(fields)}
        return decode_fields(self._documents[key])

    async def get(self, collection: str, doc_id: str, *, token: str) -> dict[str, Any] | None:
        stored = self._documents.get((collection, doc_id))
        if stored is None:
            return None
        return decode_fields(stored)

    def clear(self) -> None:
        """Remove all documents (useful for testing)."""
        self._documents.clear()
