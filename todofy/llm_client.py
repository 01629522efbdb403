"""
Generation backends.

The summarizer talks to a GenerationBackend; GeminiBackend is the real one,
a thin wrapper around the Gemini REST API using httpx. Tests substitute a
scripted fake.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

import httpx

from .config import Config
from .models import (
    GenerationCandidate,
    GenerationContent,
    GenerationPart,
    GenerationResponse,
)

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Generic error raised by the LLM layer."""


class GenerationBackend(ABC):
    """Counts tokens and generates text for a provider-side model name."""

    @abstractmethod
    def count_tokens(self, model_name: str, text: str) -> int:
        """Return the provider's token count for `text`."""

    @abstractmethod
    def generate(self, model_name: str, text: str) -> GenerationResponse:
        """Run one generation over `text`."""

    def close(self) -> None:
        pass


BackendFactory = Callable[[str], GenerationBackend]


def _text_payload(text: str) -> Dict[str, Any]:
    return {"contents": [{"role": "user", "parts": [{"text": text}]}]}


def parse_generate_response(data: Dict[str, Any]) -> GenerationResponse:
    """Convert a generateContent JSON body into a GenerationResponse."""
    candidates = []
    for c in data.get("candidates") or []:
        content = c.get("content")
        parsed_content = None
        if content is not None:
            parts = [GenerationPart(text=p.get("text", "")) for p in content.get("parts") or []]
            parsed_content = GenerationContent(parts=parts, role=content.get("role"))
        candidates.append(
            GenerationCandidate(content=parsed_content, finish_reason=c.get("finishReason"))
        )

    usage = data.get("usageMetadata") or {}
    return GenerationResponse(
        candidates=candidates,
        usage_total=usage.get("totalTokenCount"),
    )


class GeminiBackend(GenerationBackend):
    """
    Gemini over plain HTTPS.

    One httpx.Client is kept for the lifetime of the backend so connections
    are reused across count/generate calls and across requests.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60.0,
        client: Optional[httpx.Client] = None,
    ):
        if not api_key:
            raise LLMError("GEMINI_API_KEY is not set in config.")
        self._client = client or httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers={
                "x-goog-api-key": api_key,
                "Content-Type": "application/json",
            },
        )

    def _post(self, model_name: str, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"/models/{model_name}:{method}"
        try:
            resp = self._client.post(url, json=payload)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("HTTP error calling Gemini %s for %s: %s", method, model_name, e)
            raise LLMError(f"HTTP error from Gemini API ({method}): {e}") from e

        try:
            return resp.json()
        except json.JSONDecodeError as e:
            raise LLMError(f"Invalid JSON from Gemini {method} response.") from e

    def count_tokens(self, model_name: str, text: str) -> int:
        data = self._post(model_name, "countTokens", _text_payload(text))
        try:
            return int(data["totalTokens"])
        except (KeyError, TypeError, ValueError) as e:
            raise LLMError("Unexpected structure in countTokens response.") from e

    def generate(self, model_name: str, text: str) -> GenerationResponse:
        logger.info("Calling LLM model=%s", model_name)
        data = self._post(model_name, "generateContent", _text_payload(text))
        return parse_generate_response(data)

    def close(self) -> None:
        self._client.close()


def gemini_backend_factory(config: Config) -> BackendFactory:
    """Build a factory creating GeminiBackends against the configured endpoint."""

    def factory(api_key: str) -> GenerationBackend:
        return GeminiBackend(
            api_key,
            base_url=config.gemini_base_url,
            timeout=config.request_timeout_seconds,
        )

    return factory
