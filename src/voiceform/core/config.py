"""Frozen configuration dataclasses for the backend and the recognizer."""

from dataclasses import dataclass, field

from voiceform.core.constants import (
    DEFAULT_ANALYSIS_MAX_TOKENS,
    DEFAULT_ANALYSIS_TIMEOUT,
    DEFAULT_ASR_MODEL,
    DEFAULT_ENERGY_THRESHOLD,
    DEFAULT_LANGUAGE,
    DEFAULT_LLM_MODEL,
    DEFAULT_MAX_BUFFER_SECONDS,
    DEFAULT_NO_SPEECH_TIMEOUT,
    DEFAULT_PROBE_INTERVAL,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_TEMPERATURE,
    DEFAULT_TRANSCRIBE_INTERVAL,
    DEFAULT_VAD_FRAME_MS,
    DEFAULT_VAD_MODE,
    DEFAULT_VAD_SILENCE_MS,
    DEFAULT_WAKE_WORDS,
)


@dataclass(frozen=True, slots=True)
class BackendConfig:
    """Generative backend settings used by UnderstandingService."""

    model: str | None = DEFAULT_LLM_MODEL
    use_ai: bool = True
    analysis_timeout: float = DEFAULT_ANALYSIS_TIMEOUT
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    probe_interval: float = DEFAULT_PROBE_INTERVAL
    max_tokens: int = DEFAULT_ANALYSIS_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    prompt: str | None = None


@dataclass(frozen=True, slots=True)
class RecognitionConfig:
    """Microphone, VAD and speech-to-text settings."""

    asr_model: str = DEFAULT_ASR_MODEL
    language: str = DEFAULT_LANGUAGE
    device: int | None = None
    sample_rate: int = DEFAULT_SAMPLE_RATE
    vad_mode: int = DEFAULT_VAD_MODE
    vad_frame_ms: int = DEFAULT_VAD_FRAME_MS
    vad_silence_ms: int = DEFAULT_VAD_SILENCE_MS
    transcribe_interval: float = DEFAULT_TRANSCRIBE_INTERVAL
    no_speech_timeout: float = DEFAULT_NO_SPEECH_TIMEOUT
    energy_threshold: float = DEFAULT_ENERGY_THRESHOLD
    max_buffer_seconds: int = DEFAULT_MAX_BUFFER_SECONDS
    wake_words: tuple[str, ...] = DEFAULT_WAKE_WORDS


@dataclass(frozen=True, slots=True)
class VoiceFormConfig:
    """Top-level configuration loaded from ~/.config/voiceform/config.json."""

    backend: BackendConfig = field(default_factory=BackendConfig)
    recognition: RecognitionConfig = field(default_factory=RecognitionConfig)
