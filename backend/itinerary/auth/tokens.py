"""Bearer token acquisition for the document store.

A service account signs a short-lived RS256 assertion (issuer, scope,
audience, 1-hour expiry) which is exchanged for an access token at the
OAuth token endpoint. The exchange is wrapped in RetryPolicy.
"""

import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Protocol

import httpx
import jwt
from pydantic import BaseModel, ValidationError, field_validator

from backend.itinerary.errors import TokenAcquisitionError
from backend.itinerary.resilience.retry import RetryPolicy

logger = logging.getLogger(__name__)

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"


class ServiceAccountCredentials(BaseModel):
    """Service account credential material."""

    client_email: str
    private_key: str
    project_id: str
    token_uri: str | None = None

    @field_validator("private_key")
    @classmethod
    def normalize_newlines(cls, value: str) -> str:
        # Keys pasted into env vars often carry literal "\n" sequences
        return value.replace("\\n", "\n")

    @classmethod
    def from_json(cls, raw: str) -> "ServiceAccountCredentials":
        """Parse a service account JSON document.

        Raises:
            TokenAcquisitionError: The document is not valid JSON or lacks fields
        """
        try:
            return cls.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            raise TokenAcquisitionError(
                f"Invalid service account key: {e}", retryable=False
            ) from e


class TokenProvider(Protocol):
    """Protocol for bearer token providers."""

    async def get_token(self, credentials: ServiceAccountCredentials | None) -> str:
        """Return a fresh bearer token.

        Raises:
            RetryExhaustedError: wrapping TokenAcquisitionError once retries are spent
        """
        ...


class ServiceAccountTokenProvider:
    """Exchanges a signed service-account assertion for an access token."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        retry_policy: RetryPolicy,
        *,
        scope: str = "https://www.googleapis.com/auth/datastore",
        token_uri: str = "https://oauth2.googleapis.com/token",
        lifetime_seconds: int = 3600,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._client = http_client
        self._retry = retry_policy
        self._scope = scope
        self._token_uri = token_uri
        self._lifetime_seconds = lifetime_seconds
        self._clock = clock or (lambda: datetime.now(UTC))

    def build_assertion(self, credentials: ServiceAccountCredentials) -> str:
        """Sign the JWT assertion for the token exchange.

        Raises:
            TokenAcquisitionError: The private key cannot be used for signing
        """
        issued_at = int(self._clock().timestamp())
        payload = {
            "iss": credentials.client_email,
            "scope": self._scope,
            "aud": credentials.token_uri or self._token_uri,
            "iat": issued_at,
            "exp": issued_at + self._lifetime_seconds,
        }
        try:
            return jwt.encode(payload, credentials.private_key, algorithm="RS256")
        except (ValueError, TypeError, jwt.PyJWTError) as e:
            raise TokenAcquisitionError(f"Failed to sign assertion: {e}", retryable=False) from e

    async def _exchange(self, credentials: ServiceAccountCredentials) -> str:
        assertion = self.build_assertion(credentials)
        response = await self._client.post(
            credentials.token_uri or self._token_uri,
            data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
        )

        if not response.is_success:
            raise TokenAcquisitionError(
                f"Token exchange failed: {response.status_code} - {response.text[:500]}",
                status_code=response.status_code,
            )

        access_token = response.json().get("access_token")
        if not access_token:
            raise TokenAcquisitionError("Token response did not contain access_token", retryable=False)
        return access_token

    async def get_token(self, credentials: ServiceAccountCredentials | None) -> str:
        if credentials is None:
            raise TokenAcquisitionError("No service account credentials configured", retryable=False)

        token = await self._retry.execute(
            lambda: self._exchange(credentials),
            name="token.exchange",
        )
        logger.info("Access token obtained successfully")
        return token


class StaticTokenProvider:
    """Returns a fixed token; used with the in-memory store in development."""

    def __init__(self, token: str = "local-dev-token") -> None:
        self._token = token

    async def get_token(self, credentials: ServiceAccountCredentials | None) -> str:
        return self._token
