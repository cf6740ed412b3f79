"""Microphone-backed RecognitionDevice.

Audio flows sounddevice thread -> asyncio.Queue -> VAD + ring buffer ->
transcriber (in a worker thread). One start() covers one utterance: the
recognizer ends itself after a final result, after ``no_speech_timeout``
of silence, or on a capture error, and the session restarts it.

Listener events are always delivered with ``loop.call_soon`` so a listener
may call start() or stop() from inside a callback.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import numpy as np

from voiceform.audio.ring_buffer import RingBuffer
from voiceform.audio.transcriber import LitellmTranscriber
from voiceform.audio.vad import VoiceActivityDetector
from voiceform.core.config import RecognitionConfig
from voiceform.core.constants import DEFAULT_AUDIO_QUEUE_MAXSIZE, MIN_UTTERANCE_SECONDS
from voiceform.core.env import LOGGER
from voiceform.core.errors import ABORTED, AUDIO_CAPTURE, NETWORK, NO_SPEECH, DeviceUnavailable
from voiceform.core.protocols import RecognitionListener, Transcriber
from voiceform.core.types import Utterance

_POLL_SECONDS = 0.05
_MIN_NEW_AUDIO_SECONDS = 0.2


@dataclass(frozen=True, slots=True)
class InputDevice:
    index: int
    name: str
    is_default: bool


def list_input_devices() -> list[InputDevice]:
    """Enumerate capture devices. Raises DeviceUnavailable without PortAudio."""
    try:
        import sounddevice as sd
    except (ImportError, OSError) as exc:
        raise DeviceUnavailable(f"Audio input is not available: {exc}") from exc

    default_input = sd.default.device[0]
    return [
        InputDevice(i, d["name"], i == default_input)
        for i, d in enumerate(sd.query_devices())
        if d["max_input_channels"] > 0
    ]


def _input_stream(**kwargs: Any) -> Any:
    import sounddevice as sd

    return sd.InputStream(**kwargs)


class MicrophoneRecognizer:
    """Continuous speech recognizer over the local microphone."""

    def __init__(
        self,
        transcriber: Transcriber,
        config: RecognitionConfig | None = None,
        stream_factory: Callable[..., Any] | None = None,
        vad: VoiceActivityDetector | None = None,
    ) -> None:
        self._config = config or RecognitionConfig()
        self._transcriber = transcriber
        self._stream_factory = stream_factory or _input_stream
        self._vad = vad or VoiceActivityDetector.from_config(self._config)
        self._buffer = RingBuffer.for_duration(
            self._config.max_buffer_seconds, self._config.sample_rate
        )
        self._listeners: list[RecognitionListener] = []

        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue[np.ndarray] | None = None
        self._stream: Any = None
        self._task: asyncio.Task[None] | None = None
        self._active = False
        self._interim = ""

    @property
    def active(self) -> bool:
        return self._active

    def subscribe(self, listener: RecognitionListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    # ── RecognitionDevice ────────────────────────────────────────────

    def start(self) -> None:
        if self._active:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=DEFAULT_AUDIO_QUEUE_MAXSIZE)
        self._buffer.clear()
        self._vad.reset()
        self._interim = ""

        stream_kwargs: dict[str, Any] = {}
        if self._config.device is not None:
            stream_kwargs["device"] = self._config.device
        try:
            stream = self._stream_factory(
                samplerate=self._config.sample_rate,
                blocksize=self._vad.frame_samples,
                channels=1,
                dtype="int16",
                callback=self._audio_callback,
                **stream_kwargs,
            )
            stream.start()
        except Exception as exc:
            LOGGER.warning("Could not open the microphone: %s", exc)
            self._emit("on_error", AUDIO_CAPTURE)
            self._emit("on_end")
            return

        self._stream = stream
        self._active = True
        self._task = self._loop.create_task(self._processor())
        LOGGER.debug("Microphone stream started")

    def stop(self) -> None:
        if not self._active:
            return
        self._finish(cancel_task=True)
        self._emit("on_error", ABORTED)
        self._emit("on_end")

    # ── Audio thread ─────────────────────────────────────────────────

    def _audio_callback(
        self, indata: np.ndarray, frames: int, time_info: Any, status: Any
    ) -> None:
        """Runs on the PortAudio thread; hands a copy to the event loop."""
        if status:
            LOGGER.debug("Audio status: %s", status)
        if self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._enqueue, indata.reshape(-1).copy())

    def _enqueue(self, frame: np.ndarray) -> None:
        if self._active and self._queue is not None and not self._queue.full():
            self._queue.put_nowait(frame)

    # ── Processing ───────────────────────────────────────────────────

    async def _processor(self) -> None:
        assert self._loop is not None and self._queue is not None
        config = self._config
        started = last_interim = self._loop.time()
        last_transcribed = 0
        min_new = int(config.sample_rate * _MIN_NEW_AUDIO_SECONDS)

        while self._active:
            try:
                frame = await asyncio.wait_for(self._queue.get(), timeout=_POLL_SECONDS)
            except TimeoutError:
                frame = None

            if frame is not None:
                turn_complete = self._vad.feed(frame)
                if self._vad.heard_speech or turn_complete:
                    self._buffer.extend(frame)
                if turn_complete:
                    await self._finalize()
                    return

            now = self._loop.time()
            if self._buffer.total_written == 0:
                if now - started >= config.no_speech_timeout:
                    LOGGER.debug("No speech for %.1fs", config.no_speech_timeout)
                    self._finish(cancel_task=False)
                    self._emit("on_error", NO_SPEECH)
                    self._emit("on_end")
                    return
                continue

            if (
                now - last_interim >= config.transcribe_interval
                and self._buffer.total_written - last_transcribed >= min_new
            ):
                last_interim = now
                last_transcribed = self._buffer.total_written
                text = await self._transcribe()
                if text and text != self._interim:
                    self._interim = text
                    self._emit("on_utterance", Utterance(text, is_final=False))

    async def _finalize(self) -> None:
        audio_seconds = self._buffer.seconds
        text: str | None = ""
        if audio_seconds >= MIN_UTTERANCE_SECONDS:
            text = await self._transcribe()
        self._finish(cancel_task=False)
        if text is None:
            self._emit("on_error", NETWORK)
        elif text:
            self._emit("on_utterance", Utterance(text, is_final=True))
        self._emit("on_end")

    async def _transcribe(self) -> str | None:
        """Transcribe the buffered utterance. None means the backend failed."""
        audio = self._buffer.snapshot()
        try:
            return await asyncio.to_thread(
                self._transcriber, audio, self._config.sample_rate
            )
        except Exception as exc:
            LOGGER.warning("Transcription failed: %s", exc)
            return None

    def _finish(self, cancel_task: bool) -> None:
        self._active = False
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except Exception as exc:
                LOGGER.debug("Error closing audio stream: %s", exc)
        task, self._task = self._task, None
        if cancel_task and task is not None and not task.done():
            task.cancel()

    def _emit(self, event: str, *args: Any) -> None:
        assert self._loop is not None
        for listener in list(self._listeners):
            self._loop.call_soon(getattr(listener, event), *args)


def open_microphone(
    config: RecognitionConfig | None = None,
    transcriber: Transcriber | None = None,
) -> MicrophoneRecognizer:
    """Create a recognizer for the configured input device.

    Raises DeviceUnavailable when sounddevice/PortAudio is missing or no
    matching input device exists.
    """
    config = config or RecognitionConfig()
    try:
        import sounddevice as sd
    except (ImportError, OSError) as exc:
        raise DeviceUnavailable(f"Audio input is not available: {exc}") from exc

    try:
        sd.query_devices(config.device, kind="input")
    except (ValueError, sd.PortAudioError) as exc:
        raise DeviceUnavailable(f"No usable input device: {exc}") from exc

    if transcriber is None:
        transcriber = LitellmTranscriber(config.asr_model, config.language)
    return MicrophoneRecognizer(transcriber, config)
