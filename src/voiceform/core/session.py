"""Continuous speech capture state machine.

SpeechSession owns a RecognitionDevice, turns its event stream into
discrete final utterances and feeds them, in order, to a classifier.
All methods run on the asyncio event loop thread; devices that produce
events elsewhere must marshal them with ``loop.call_soon_threadsafe``.

States::

    IDLE --start()--> LISTENING --stop()/terminal error--> IDLE
                         |  ^
                  on_end |  | restart after restart_delay
                         v  |
                      (device restarting)

``processing`` is a sub-state: while a final utterance is being
classified, start() and stop() are rejected so device calls cannot race
the restart timer.
"""

import asyncio
import re
from collections.abc import Callable, Sequence
from enum import StrEnum

from voiceform.core.constants import DEFAULT_RESTART_DELAY, DEFAULT_WAKE_WORDS
from voiceform.core.env import LOGGER
from voiceform.core.errors import (
    ABORTED,
    RESTART_FAILED,
    START_FAILED,
    TERMINAL_CODES,
    SessionError,
)
from voiceform.core.protocols import Classifier, RecognitionDevice
from voiceform.core.types import Understanding, Utterance


class SessionState(StrEnum):
    IDLE = "idle"
    LISTENING = "listening"


def normalize_transcript(
    text: str, wake_words: Sequence[str] = DEFAULT_WAKE_WORDS
) -> str:
    """Collapse whitespace and drop a leading "hey <wake word>"."""
    cleaned = " ".join(text.split())
    if wake_words:
        names = "|".join(re.escape(w) for w in wake_words)
        cleaned = re.sub(rf"^hey\s+(?:{names})\b[\s,.!]*", "", cleaned, flags=re.IGNORECASE)
    return cleaned.strip()


class SpeechSession:
    """Drives a recognition device and classifies its final utterances."""

    def __init__(
        self,
        device_factory: Callable[[], RecognitionDevice],
        classify: Classifier,
        on_understanding: Callable[[Understanding], None],
        on_error: Callable[[SessionError], None] | None = None,
        on_interim: Callable[[str], None] | None = None,
        on_state_change: Callable[[], None] | None = None,
        restart_delay: float = DEFAULT_RESTART_DELAY,
        wake_words: Sequence[str] = DEFAULT_WAKE_WORDS,
    ) -> None:
        self._device_factory = device_factory
        self._classify = classify
        self._on_understanding = on_understanding
        self._on_error = on_error
        self._on_interim = on_interim
        self._on_state_change = on_state_change
        self._restart_delay = restart_delay
        self._wake_words = tuple(wake_words)

        self._device: RecognitionDevice | None = None
        self._state = SessionState.IDLE
        self._should_listen = False
        self._restart_handle: asyncio.TimerHandle | None = None

        # Bumped on every explicit stop; results queued under an older
        # generation are dropped.
        self._generation = 0
        self._queue: asyncio.Queue[tuple[str, int]] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._busy = False

        self.interim = ""

    # ── Public state ─────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def listening(self) -> bool:
        return self._state is SessionState.LISTENING

    @property
    def processing(self) -> bool:
        """True while a final utterance is queued or being classified."""
        return self._busy or not self._queue.empty()

    # ── Commands ─────────────────────────────────────────────────────

    def start(self) -> bool:
        """Begin listening. Returns False if the request was rejected.

        Raises DeviceUnavailable when no recognizer can be acquired.
        """
        if self.processing or self._state is SessionState.LISTENING:
            return False

        if self._device is None:
            device = self._device_factory()
            device.subscribe(self)
            self._device = device

        self._should_listen = True
        self._set_state(SessionState.LISTENING)
        try:
            self._device.start()
        except Exception as exc:
            LOGGER.warning("Could not start recognition: %s", exc)
            self._should_listen = False
            self._set_state(SessionState.IDLE)
            self._report(SessionError.from_code(START_FAILED))
            return False
        LOGGER.info("Listening")
        return True

    def stop(self) -> bool:
        """Stop listening. Returns False if the request was rejected."""
        if self.processing or self._state is SessionState.IDLE:
            return False
        self._explicit_stop()
        return True

    def close(self) -> None:
        """Stop unconditionally, e.g. at shutdown."""
        if self._state is SessionState.LISTENING or self._should_listen:
            self._explicit_stop()
        else:
            self._generation += 1

    async def aclose(self, timeout: float = 2.0) -> None:
        """Stop and wait briefly for the classification worker to drain."""
        self.close()
        worker = self._worker
        if worker is None or worker.done():
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except TimeoutError:
            LOGGER.debug("Classification still running at shutdown")
        worker.cancel()
        await asyncio.gather(worker, return_exceptions=True)

    def _explicit_stop(self) -> None:
        self._should_listen = False
        self._generation += 1
        self._cancel_restart()
        self.interim = ""
        self._set_state(SessionState.IDLE)
        if self._device is not None:
            try:
                self._device.stop()
            except Exception as exc:
                LOGGER.debug("Error stopping recognition: %s", exc)
        LOGGER.info("Stopped listening")

    # ── RecognitionListener ──────────────────────────────────────────

    def on_utterance(self, utterance: Utterance) -> None:
        if self._state is not SessionState.LISTENING:
            return

        if not utterance.is_final:
            self.interim = utterance.text
            if self._on_interim is not None:
                self._on_interim(utterance.text)
            return

        text = normalize_transcript(utterance.text, self._wake_words)
        self.interim = ""
        if self._on_interim is not None:
            self._on_interim("")
        if not text:
            return
        LOGGER.debug("Final transcript: %r", text)
        self._queue.put_nowait((text, self._generation))
        self._ensure_worker()
        self._notify()

    def on_error(self, code: str) -> None:
        if code == ABORTED:
            LOGGER.debug("Recognition aborted")
            return

        if code in TERMINAL_CODES:
            LOGGER.warning("Recognition error %s, session stopped", code)
            self._should_listen = False
            self._cancel_restart()
            self.interim = ""
            self._set_state(SessionState.IDLE)
            self._report(SessionError.from_code(code, recoverable=False))
            return

        LOGGER.info("Recognition error %s", code)
        self._report(SessionError.from_code(code))

    def on_end(self) -> None:
        LOGGER.debug("Recognition ended")
        if not self._should_listen or self._state is not SessionState.LISTENING:
            return
        self._cancel_restart()
        loop = asyncio.get_running_loop()
        self._restart_handle = loop.call_later(self._restart_delay, self._restart)

    # ── Internals ────────────────────────────────────────────────────

    def _restart(self) -> None:
        self._restart_handle = None
        if not self._should_listen or self._device is None:
            return
        LOGGER.debug("Restarting recognition, still listening")
        try:
            self._device.start()
        except Exception as exc:
            LOGGER.warning("Could not restart recognition: %s", exc)
            self._should_listen = False
            self.interim = ""
            self._set_state(SessionState.IDLE)
            self._report(SessionError.from_code(RESTART_FAILED))

    def _cancel_restart(self) -> None:
        if self._restart_handle is not None:
            self._restart_handle.cancel()
            self._restart_handle = None

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._run_worker())

    async def _run_worker(self) -> None:
        """Classify queued utterances one at a time, in arrival order."""
        while True:
            text, generation = await self._queue.get()
            self._busy = True
            try:
                understanding = await self._classify(text)
            except Exception:
                LOGGER.exception("Classification failed for %r", text)
                understanding = None
            finally:
                self._busy = False
                self._queue.task_done()

            if understanding is not None and generation == self._generation:
                self._on_understanding(understanding)
            elif understanding is not None:
                LOGGER.debug("Dropping result for %r after explicit stop", text)
            self._notify()

    def _set_state(self, state: SessionState) -> None:
        if state is not self._state:
            self._state = state
            self._notify()

    def _report(self, error: SessionError) -> None:
        if self._on_error is not None:
            self._on_error(error)
        self._notify()

    def _notify(self) -> None:
        if self._on_state_change is not None:
            self._on_state_change()
