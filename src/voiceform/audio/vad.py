"""Turn detection over int16 microphone frames.

An RMS energy gate runs in front of WebRTC VAD so that room noise never
counts as speech. A turn is complete once speech has been heard and is
followed by ``silence_ms`` of continuous non-speech.
"""

import math
from typing import Any

import numpy as np
import webrtcvad

from voiceform.core.config import RecognitionConfig

VALID_FRAME_MS = (10, 20, 30)


def frame_rms(frame: np.ndarray) -> float:
    """Root-mean-square level of an int16 frame."""
    if frame.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(frame.astype(np.float32) ** 2)))


class VoiceActivityDetector:
    """Energy-gated WebRTC VAD that reports completed turns."""

    __slots__ = (
        "_vad",
        "_sample_rate",
        "_frame_samples",
        "_hangover_frames",
        "_energy_threshold",
        "_pending",
        "_heard_speech",
        "_quiet_frames",
        "_in_speech",
    )

    def __init__(
        self,
        sample_rate: int,
        frame_ms: int,
        mode: int,
        silence_ms: int,
        energy_threshold: float = 0.0,
        vad: Any = None,
    ) -> None:
        if frame_ms not in VALID_FRAME_MS:
            raise ValueError("frame_ms must be one of: 10, 20, 30")
        if not (0 <= mode <= 3):
            raise ValueError("mode must be between 0 and 3")
        self._vad = vad if vad is not None else webrtcvad.Vad(mode)
        self._sample_rate = sample_rate
        self._frame_samples = sample_rate * frame_ms // 1000
        self._hangover_frames = max(1, math.ceil(silence_ms / frame_ms))
        self._energy_threshold = energy_threshold
        self._pending = np.empty(0, dtype=np.int16)
        self._heard_speech = False
        self._quiet_frames = 0
        self._in_speech = False

    @classmethod
    def from_config(cls, config: RecognitionConfig) -> "VoiceActivityDetector":
        return cls(
            sample_rate=config.sample_rate,
            frame_ms=config.vad_frame_ms,
            mode=config.vad_mode,
            silence_ms=config.vad_silence_ms,
            energy_threshold=config.energy_threshold,
        )

    @property
    def frame_samples(self) -> int:
        return self._frame_samples

    @property
    def in_speech(self) -> bool:
        """True while the most recent frame was classified as speech."""
        return self._in_speech

    @property
    def heard_speech(self) -> bool:
        """True once speech has been heard in the current turn."""
        return self._heard_speech

    def _is_speech(self, chunk: np.ndarray) -> bool:
        if frame_rms(chunk) < self._energy_threshold:
            return False
        return bool(self._vad.is_speech(chunk.tobytes(), self._sample_rate))

    def feed(self, samples: np.ndarray) -> bool:
        """Consume samples of any length; True when a turn just completed."""
        if samples.size == 0:
            return False
        self._pending = np.concatenate([self._pending, samples.astype(np.int16)])

        step = self._frame_samples
        offset = 0
        completed = False
        while len(self._pending) - offset >= step:
            chunk = self._pending[offset : offset + step]
            offset += step
            self._in_speech = self._is_speech(chunk)
            if self._in_speech:
                self._heard_speech = True
                self._quiet_frames = 0
                continue
            if not self._heard_speech:
                continue
            self._quiet_frames += 1
            if self._quiet_frames >= self._hangover_frames:
                completed = True
                break

        if completed:
            self.reset()
        else:
            self._pending = self._pending[offset:]
        return completed

    def reset(self) -> None:
        """Forget the current turn."""
        self._pending = np.empty(0, dtype=np.int16)
        self._heard_speech = False
        self._quiet_frames = 0
        self._in_speech = False
