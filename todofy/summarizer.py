"""
Summarization with model fallback and a token budget.

Flow for one request:
- validate the model family
- pick candidates: the requested model, or the catalog's fallback order
- for each candidate: shrink the input until it fits, check the budget,
  generate, record usage; on failure wait briefly and move to the next one
- if nothing produced text, raise AllModelsFailedError
"""

import logging
import threading
from threading import Lock
from typing import Dict, List, Optional

from .catalog import ModelCatalog
from .config import Config
from .llm_client import BackendFactory, GenerationBackend, LLMError, gemini_backend_factory
from .models import Model, ModelFamily, SummaryRequest, SummaryResult
from .usage_tracker import UsageTracker

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ConfigurationError(LLMError):
    """A request that can never succeed as configured. Never retried."""


class UnsupportedFamilyError(ConfigurationError):
    def __init__(self, family: ModelFamily):
        super().__init__(f"unsupported model family: {family.value}")
        self.family = family


class UnsupportedModelError(ConfigurationError):
    def __init__(self, model: Model):
        super().__init__(f"unsupported model: {model.value}")
        self.model = model


class MissingCredentialError(ConfigurationError):
    """No API key is configured for the backend."""


class EmptyResponseError(LLMError):
    """The backend answered without any usable content."""


class TokenBudgetExceededError(LLMError):
    def __init__(self, current_usage: int, requested: int, limit: int):
        super().__init__(
            f"token budget exceeded: current usage {current_usage}, "
            f"requested {requested}, limit {limit}"
        )
        self.current_usage = current_usage
        self.requested = requested
        self.limit = limit


class AllModelsFailedError(LLMError):
    def __init__(self, models: List[Model]):
        names = [m.value for m in models]
        super().__init__(f"failed to generate summary with all models: {names}")
        self.models = list(models)


class SummaryCancelledError(LLMError):
    """The caller cancelled the request while it was in progress."""


# ---------------------------------------------------------------------------
# Input shaping
# ---------------------------------------------------------------------------


def build_input(prompt: str, text: str) -> str:
    """The backend always sees the prompt, a newline, then the text."""
    return f"{prompt}\n{text}"


def shrink(text: str) -> str:
    """Keep the first ninety percent of `text` (by characters)."""
    return text[: len(text) // 10 * 9]


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class SummaryOrchestrator:
    """
    Produces summaries by trying models in order until one succeeds.

    Attempts run one after another on the calling thread; the usage tracker
    is the only state shared between concurrent requests.
    """

    def __init__(
        self,
        config: Config,
        tracker: Optional[UsageTracker] = None,
        catalog: Optional[ModelCatalog] = None,
        backend_factory: Optional[BackendFactory] = None,
    ):
        self.config = config
        self.tracker = tracker or UsageTracker(
            window=config.token_window,
            limit=config.daily_token_limit,
        )
        self.catalog = catalog or ModelCatalog()
        self._backend_factory = backend_factory or gemini_backend_factory(config)
        self._backends: Dict[str, GenerationBackend] = {}
        self._backends_lock = Lock()

    # -- public API --------------------------------------------------------

    def summarize(
        self,
        family: ModelFamily,
        prompt: str,
        text: str,
        model: Optional[Model] = None,
        max_tokens: int = 0,
        cancel_event: Optional[threading.Event] = None,
    ) -> SummaryResult:
        """
        Summarize `text` with `prompt`, returning the summary and the model
        that produced it.

        Raises:
            UnsupportedFamilyError, UnsupportedModelError, MissingCredentialError:
                the request cannot succeed as configured.
            TokenBudgetExceededError: the token budget would be exceeded.
            SummaryCancelledError: cancel_event was set.
            AllModelsFailedError: every candidate model failed.
        """
        if not self.catalog.is_family_supported(family):
            raise UnsupportedFamilyError(family)

        limit = max_tokens if max_tokens else self.config.token_limit

        if model is not None and model != Model.UNSPECIFIED:
            candidates = [model]
        else:
            candidates = self.catalog.preference_order()

        cancel = cancel_event or threading.Event()

        for candidate in candidates:
            if cancel.is_set():
                raise SummaryCancelledError("summary request cancelled")

            if candidate not in self.catalog:
                raise UnsupportedModelError(candidate)

            try:
                summary = self.attempt(family, prompt, text, candidate, limit)
            except (ConfigurationError, TokenBudgetExceededError):
                raise
            except Exception as e:
                logger.warning("Error generating summary with model %s: %s", candidate.value, e)
            else:
                if summary:
                    logger.info("Successfully generated summary with model %s", candidate.value)
                    return SummaryResult(summary=summary, model=candidate)
                logger.warning("Model %s returned an empty summary", candidate.value)

            if cancel.wait(self.config.fallback_backoff_seconds):
                raise SummaryCancelledError("summary request cancelled")

        logger.error("Failed to generate summary with all models")
        raise AllModelsFailedError(candidates)

    def handle(self, request: SummaryRequest) -> SummaryResult:
        return self.summarize(
            request.family,
            request.prompt,
            request.text,
            model=request.model,
            max_tokens=request.max_tokens,
        )

    def attempt(
        self,
        family: ModelFamily,
        prompt: str,
        text: str,
        model: Model,
        max_tokens: int,
    ) -> str:
        """Run a single generation against one model."""
        if family != ModelFamily.GEMINI:
            raise UnsupportedFamilyError(family)

        api_key = self.config.gemini_api_key
        if not api_key:
            raise MissingCredentialError("gemini-api-key is empty")

        descriptor = self.catalog.descriptor(model)
        if descriptor is None:
            raise UnsupportedModelError(model)

        limit = min(max_tokens, descriptor.max_input_tokens)
        backend = self._backend(api_key)
        name = descriptor.provider_name

        content = build_input(prompt, text)
        tokens = backend.count_tokens(name, content)
        while tokens > limit:
            if not content:
                raise LLMError(f"input cannot be reduced below {limit} tokens")
            content = shrink(content)
            tokens = backend.count_tokens(name, content)
            logger.debug("Truncated input for %s to %d chars (%d tokens)", name, len(content), tokens)

        violation = self.tracker.check_limit(tokens)
        if violation is not None:
            logger.warning("Refusing to call %s: %s", name, violation)
            raise TokenBudgetExceededError(
                current_usage=violation.current_usage,
                requested=violation.requested,
                limit=violation.limit,
            )

        resp = backend.generate(name, content)

        if not resp.candidates or resp.candidates[0].content is None:
            raise EmptyResponseError("no content generated")
        parts = resp.candidates[0].content.parts
        if not parts:
            raise EmptyResponseError("no content parts generated")

        used = resp.usage_total if resp.usage_total is not None else tokens
        self.tracker.record(used)

        return parts[0].text

    def close(self) -> None:
        with self._backends_lock:
            backends = list(self._backends.values())
            self._backends.clear()
        for b in backends:
            b.close()

    # -- internals ---------------------------------------------------------

    def _backend(self, api_key: str) -> GenerationBackend:
        with self._backends_lock:
            backend = self._backends.get(api_key)
            if backend is None:
                backend = self._backend_factory(api_key)
                self._backends[api_key] = backend
            return backend
