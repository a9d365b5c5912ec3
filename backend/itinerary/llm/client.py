"""Text generation clients for itinerary content.

Security: Reads API key from settings only, never hardcoded.
Provides a deterministic stub when no key is present for local development.
"""

import logging
from typing import Any, Protocol

import openai
from openai import AsyncOpenAI

from backend.itinerary.config import Settings
from backend.itinerary.errors import ContentError, ModelCallError
from backend.itinerary.llm.parsing import parse_itinerary_json
from backend.itinerary.llm.prompts import SYSTEM_PROMPT, build_itinerary_prompt
from backend.itinerary.resilience.retry import RetryPolicy

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    """Protocol for itinerary text generators."""

    async def complete(self, destination: str, duration_days: int) -> Any:
        """Generate an itinerary and return the parsed (unvalidated) JSON.

        Args:
            destination: Trip destination
            duration_days: Number of days requested

        Returns:
            Parsed JSON value, expected to be a list of day objects

        Raises:
            RetryExhaustedError: Transport failures after retries
            ContentError: The reply could not be parsed as JSON
        """
        ...


class OpenAITextGenerator:
    """OpenAI-backed text generator."""

    def __init__(
        self,
        client: AsyncOpenAI,
        retry_policy: RetryPolicy,
        *,
        model: str = "gpt-4o",
        temperature: float = 0.7,
        max_tokens: int = 3000,
        min_description_length: int = 20,
    ) -> None:
        """Initialize generator.

        Args:
            client: AsyncOpenAI client (its own retries should be disabled)
            retry_policy: Policy wrapping each model request
            model: Chat model name
            temperature: Sampling temperature
            max_tokens: Completion token limit
            min_description_length: Minimum activity description length asked for
        """
        self.client = client
        self.model = model
        self._retry = retry_policy
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._min_description_length = min_description_length

    async def _request(self, prompt: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except openai.APIStatusError as e:
            if e.status_code == 429:
                raise ModelCallError(f"Rate limited by OpenAI API: {e}", status_code=429) from e
            if e.status_code >= 500:
                raise ModelCallError(
                    f"OpenAI server error: {e.status_code} - {e}", status_code=e.status_code
                ) from e
            raise ModelCallError(f"OpenAI API error: {e.status_code} - {e}", status_code=e.status_code) from e
        except openai.APITimeoutError as e:
            raise ModelCallError(f"OpenAI request timeout: {e}", retryable=True) from e
        except openai.APIConnectionError as e:
            raise ModelCallError(f"OpenAI connection error: {e}", retryable=True) from e

        return response.choices[0].message.content or ""

    async def complete(self, destination: str, duration_days: int) -> Any:
        prompt = build_itinerary_prompt(destination, duration_days, self._min_description_length)

        logger.info(f"Calling {self.model} for {duration_days}-day itinerary to {destination}")
        content = await self._retry.execute(lambda: self._request(prompt), name="model.complete")
        logger.debug(f"Raw response preview: {content[:200]}")

        if not content.strip():
            raise ContentError("OpenAI returned an empty response")

        return parse_itinerary_json(content)


class DeterministicStubGenerator:
    """Deterministic stub generator for local development (no API key required)."""

    SLOTS = ("Morning", "Afternoon", "Evening")

    async def complete(self, destination: str, duration_days: int) -> Any:
        days = []
        for number in range(1, duration_days + 1):
            days.append(
                {
                    "day": number,
                    "theme": f"Exploring {destination} - day {number}",
                    "activities": [
                        {
                            "time": slot,
                            "description": (
                                f"{slot} walk through a highlight of {destination} "
                                "(placeholder generated without a language model)"
                            ),
                            "location": f"{destination} city centre",
                        }
                        for slot in self.SLOTS
                    ],
                }
            )
        return days


def get_text_generator(settings: Settings, retry_policy: RetryPolicy) -> TextGenerator:
    """Factory function to get the appropriate generator based on config.

    Returns:
        OpenAITextGenerator if API key is configured, DeterministicStubGenerator otherwise
    """
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info(f"Using OpenAI generator ({settings.openai_model})")
        return OpenAITextGenerator(
            # Retries are handled by RetryPolicy, not the SDK
            AsyncOpenAI(
                api_key=api_key.get_secret_value(),
                timeout=settings.http_timeout_seconds,
                max_retries=0,
            ),
            retry_policy,
            model=settings.openai_model,
            temperature=settings.openai_temperature,
            max_tokens=settings.openai_max_tokens,
            min_description_length=settings.min_description_length,
        )

    logger.warning("No OpenAI API key configured, using deterministic stub generator")
    return DeterministicStubGenerator()
