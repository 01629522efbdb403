"""Pytest fixtures for todofy tests."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Union

import pytest

from todofy.config import Config
from todofy.llm_client import GenerationBackend
from todofy.models import (
    GenerationCandidate,
    GenerationContent,
    GenerationPart,
    GenerationResponse,
)
from todofy.usage_tracker import UsageTracker


def text_response(text: str, usage_total: Optional[int] = None) -> GenerationResponse:
    return GenerationResponse(
        candidates=[GenerationCandidate(content=GenerationContent(parts=[GenerationPart(text=text)]))],
        usage_total=usage_total,
    )


class FakeBackend(GenerationBackend):
    """
    Scripted backend.

    `outcomes` maps provider model names to either a GenerationResponse or an
    exception to raise from generate(). `counter` turns input text into a
    token count (default: one token per character).
    """

    def __init__(
        self,
        outcomes: Optional[Dict[str, Union[GenerationResponse, Exception]]] = None,
        counter: Optional[Callable[[str], int]] = None,
    ):
        self.outcomes = outcomes or {}
        self.counter = counter or len
        self.count_calls: List[tuple] = []
        self.generate_calls: List[tuple] = []
        self.closed = False

    def count_tokens(self, model_name: str, text: str) -> int:
        self.count_calls.append((model_name, text))
        return self.counter(text)

    def generate(self, model_name: str, text: str) -> GenerationResponse:
        self.generate_calls.append((model_name, text))
        outcome = self.outcomes.get(model_name, text_response(f"summary from {model_name}"))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True

    @property
    def generated_models(self) -> List[str]:
        return [name for name, _ in self.generate_calls]


class FakeClock:
    """Settable time source for window tests."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def config():
    return Config(
        gemini_api_key="test-gemini-key",
        fallback_backoff_seconds=0,
        daily_token_limit=0,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tracker(clock):
    return UsageTracker(window=timedelta(hours=24), limit=0, clock=clock)


@pytest.fixture
def backend():
    return FakeBackend()
