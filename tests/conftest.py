"""Shared test fixtures: no network, no audio hardware."""

from __future__ import annotations

import json
import random
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

import pytest

from voiceform.core.ratelimit import RateLimitController
from voiceform.core.types import Utterance


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: float = 10_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeRateLimitError(Exception):
    """Stands in for litellm.RateLimitError: carries status_code 429."""

    status_code = 429


class FakeDevice:
    """RecognitionDevice that records calls and lets tests emit events."""

    def __init__(self) -> None:
        self.listeners: list[Any] = []
        self.start_calls = 0
        self.stop_calls = 0
        self.fail_start = False

    def subscribe(self, listener: Any) -> None:
        self.listeners.append(listener)

    def start(self) -> None:
        self.start_calls += 1
        if self.fail_start:
            raise RuntimeError("device busy")

    def stop(self) -> None:
        self.stop_calls += 1

    # Event helpers
    def interim(self, text: str) -> None:
        for listener in self.listeners:
            listener.on_utterance(Utterance(text, is_final=False))

    def final(self, text: str) -> None:
        for listener in self.listeners:
            listener.on_utterance(Utterance(text, is_final=True))

    def error(self, code: str) -> None:
        for listener in self.listeners:
            listener.on_error(code)

    def end(self) -> None:
        for listener in self.listeners:
            listener.on_end()


def completion_response(content: str | dict[str, Any]) -> SimpleNamespace:
    """Build an object shaped like a litellm ModelResponse."""
    if not isinstance(content, str):
        content = json.dumps(content)
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rate_limiter(clock: FakeClock) -> RateLimitController:
    return RateLimitController(clock=clock, rng=random.Random(1234))


@pytest.fixture
def fake_device() -> FakeDevice:
    return FakeDevice()


@pytest.fixture
def completion() -> AsyncMock:
    """Async completion returning an empty JSON object by default."""
    return AsyncMock(return_value=completion_response({}))
