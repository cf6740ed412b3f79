"""Exponential backoff with jitter guarding the generative backend.

The controller is the only owner of RateLimitState. Callers ask
is_rate_limited() before a remote call and report exactly one outcome
afterwards: record_failure() for an HTTP 429, record_success() otherwise
on a completed call. Transport errors are reported as neither.
"""

import dataclasses
import random
import time
from collections.abc import Callable
from dataclasses import dataclass

from voiceform.core.constants import (
    BACKOFF_CEILING_MS,
    BACKOFF_FLOOR_MS,
    JITTER_MIN,
    JITTER_SPAN,
)
from voiceform.core.env import LOGGER


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass(slots=True)
class RateLimitState:
    """Backend health. Mutated only by RateLimitController."""

    last_request_time_ms: float = 0.0
    consecutive_errors: int = 0
    backoff_ms: int = BACKOFF_FLOOR_MS
    in_cooldown: bool = False


class RateLimitController:
    """Decides whether a remote call may be attempted and adapts the backoff."""

    __slots__ = ("_state", "_clock", "_rng")

    def __init__(
        self,
        clock: Callable[[], float] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._state = RateLimitState()
        self._clock = clock or _monotonic_ms
        self._rng = rng or random.Random()

    @property
    def state(self) -> RateLimitState:
        """Copy of the current state; mutating it has no effect."""
        return dataclasses.replace(self._state)

    def is_rate_limited(self) -> bool:
        """Return True while cooling down; clears an expired cooldown."""
        state = self._state
        if not state.in_cooldown:
            return False
        if self._clock() - state.last_request_time_ms > state.backoff_ms:
            LOGGER.debug("Cooldown of %d ms expired, allowing requests", state.backoff_ms)
            state.in_cooldown = False
            return False
        return True

    def record_failure(self) -> None:
        """Register a rate-limit response and grow the backoff window."""
        state = self._state
        state.consecutive_errors += 1
        jitter = JITTER_MIN + self._rng.random() * JITTER_SPAN
        grown = int(state.backoff_ms * 2 * jitter)
        state.backoff_ms = max(BACKOFF_FLOOR_MS, min(BACKOFF_CEILING_MS, grown))
        state.last_request_time_ms = self._clock()
        state.in_cooldown = True
        LOGGER.info(
            "Rate limit hit (%d in a row), backing off for %d ms",
            state.consecutive_errors,
            state.backoff_ms,
        )

    def record_success(self) -> None:
        """Register a completed call; resets the backoff after failures."""
        state = self._state
        if state.consecutive_errors > 0:
            state.consecutive_errors = 0
            state.backoff_ms = BACKOFF_FLOOR_MS
            LOGGER.info("Backend request succeeded, rate limit backoff reset")
        state.last_request_time_ms = self._clock()
