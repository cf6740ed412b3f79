"""Structural type protocols for the recognition device and its listener."""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import numpy as np

from voiceform.core.types import Understanding, Utterance


class RecognitionListener(Protocol):
    """Receives events from a RecognitionDevice on the event loop thread."""

    def on_utterance(self, utterance: Utterance) -> None: ...

    def on_error(self, code: str) -> None: ...

    def on_end(self) -> None: ...


class RecognitionDevice(Protocol):
    """Continuous speech recognizer behind one narrow interface."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def subscribe(self, listener: RecognitionListener) -> None: ...


class Transcriber(Protocol):
    """Blocking speech-to-text call over mono int16 PCM samples."""

    def __call__(self, audio: np.ndarray, sample_rate: int) -> str: ...


# Async chat completion with the litellm.acompletion call shape.
CompletionFn = Callable[..., Awaitable[Any]]

Classifier = Callable[[str], Awaitable[Understanding | None]]
