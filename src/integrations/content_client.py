"""
HTTP client for the lesson content generation API.

Each section kind has its own endpoint:

    POST {api_url}/api/ai/generate-{section}

The request carries the topic, level and learner context; the response is
validated into a SectionContent. Timeouts, connection errors and 5xx
responses are retried with exponential backoff; 4xx responses are not.
"""

from __future__ import annotations

import time
from typing import Any

import httpx
from loguru import logger

from src.progression.content import ContentRequest, SectionContent


class HttpContentGenerator:
    """ContentGenerator backed by the generation HTTP API."""

    def __init__(
        self,
        api_url: str,
        timeout_ms: int = 30000,
        retry_attempts: int = 3,
        client: httpx.Client | None = None,
        sleep=time.sleep,
    ):
        """
        Initialize the content client.

        Args:
            api_url: Base URL of the generation API
            timeout_ms: Request timeout in milliseconds
            retry_attempts: Attempts before giving up
            client: Preconfigured httpx client (tests inject a mock transport)
            sleep: Backoff sleep function
        """
        self.api_url = api_url.rstrip("/")
        self.timeout_seconds = timeout_ms / 1000.0
        self.retry_attempts = max(1, retry_attempts)
        self._sleep = sleep
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(self.timeout_seconds),
            follow_redirects=True,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> HttpContentGenerator:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def endpoint_for(self, request: ContentRequest) -> str:
        return f"{self.api_url}/api/ai/generate-{request.section.value.replace('_', '-')}"

    @staticmethod
    def build_payload(request: ContentRequest) -> dict[str, Any]:
        """Convert a request to the API payload format."""
        payload: dict[str, Any] = {
            "section": request.section.value,
            "topic": request.topic,
            "level": request.level,
            "pastErrors": request.past_errors,
        }
        if request.profile is not None:
            payload.update(
                {
                    "targetLanguage": request.profile.target_language,
                    "proficiencyLevel": request.profile.proficiency_level.value,
                    "interfaceLanguage": request.profile.interface_language,
                    "goal": request.profile.goal,
                }
            )
        return payload

    def generate(self, request: ContentRequest) -> SectionContent:
        """
        Generate section content with retry logic.

        Raises:
            httpx.HTTPError: When every attempt failed or on a 4xx response
            pydantic.ValidationError: When the response body has the wrong shape
        """
        url = self.endpoint_for(request)
        payload = self.build_payload(request)
        last_error: Exception | None = None

        for attempt in range(self.retry_attempts):
            try:
                response = self.client.post(url, json=payload)
                response.raise_for_status()
                data = response.json()
                data.setdefault("section", request.section.value)
                data.setdefault("topic", request.topic)
                data.setdefault("level", request.level)
                return SectionContent.model_validate(data)

            except httpx.HTTPStatusError as e:
                if e.response.status_code < 500:
                    logger.error(f"Content API client error: {e.response.status_code}")
                    raise
                last_error = e
                logger.warning(
                    f"Content API server error {e.response.status_code} on attempt "
                    f"{attempt + 1}/{self.retry_attempts}"
                )

            except httpx.RequestError as e:
                # Covers timeouts and connection failures
                last_error = e
                logger.warning(
                    f"Content API request error on attempt {attempt + 1}/{self.retry_attempts}: {e}"
                )

            if attempt < self.retry_attempts - 1:
                self._sleep(2**attempt)

        logger.error(f"Content generation failed after {self.retry_attempts} attempts: {last_error}")
        raise last_error
