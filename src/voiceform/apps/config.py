"""Load voiceform settings from ~/.config/voiceform/config.json."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from voiceform.core.config import BackendConfig, RecognitionConfig, VoiceFormConfig
from voiceform.core.constants import (
    DEFAULT_CONFIG_DIR,
    DEFAULT_CONFIG_DIR_ENV,
    DEFAULT_CONFIG_FILE,
    PROMPT_TEXT_PLACEHOLDER,
)
from voiceform.core.env import LOGGER
from voiceform.core.errors import ConfigError

_MISSING = object()


# ---------------------------------------------------------------------------
# Typed readers
# ---------------------------------------------------------------------------


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    raw = data.get(name, {})
    if not isinstance(raw, dict):
        raise ConfigError(f"'{name}' must be an object")
    return raw


def _read(section: dict[str, Any], key: str, kind: type | tuple[type, ...], where: str) -> Any:
    value = section.get(key)
    if value is None:
        return _MISSING
    # bool is an int subclass; never accept it for numeric settings.
    if isinstance(value, bool) and bool not in (kind if isinstance(kind, tuple) else (kind,)):
        raise ConfigError(f"{where}.{key} has the wrong type")
    if not isinstance(value, kind):
        raise ConfigError(f"{where}.{key} has the wrong type")
    return value


def _overrides(
    section: dict[str, Any], spec: dict[str, type | tuple[type, ...]], where: str
) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key, kind in spec.items():
        value = _read(section, key, kind, where)
        if value is _MISSING:
            continue
        values[key] = float(value) if kind == (int, float) else value
    return values


def _resolve_config_path(config_dir: Path, path_str: str) -> Path:
    """Resolve a path relative to *config_dir*. Absolute paths used as-is."""
    p = Path(path_str).expanduser()
    if p.is_absolute():
        return p
    return config_dir / p


def _resolve_prompt(directory: Path, section: dict[str, Any]) -> str | None:
    """``prompt_file`` wins over an inline ``prompt``; either needs a ``{text}`` slot."""
    prompt = _read(section, "prompt", str, "backend")
    prompt_file = _read(section, "prompt_file", str, "backend")
    resolved: str | None = None
    if prompt_file is not _MISSING and prompt_file:
        if prompt is not _MISSING:
            LOGGER.debug("Both 'prompt' and 'prompt_file' set; using 'prompt_file'")
        path = _resolve_config_path(directory, prompt_file)
        try:
            resolved = path.read_text().strip() or None
        except OSError as exc:
            raise ConfigError(f"Cannot read prompt file {path}: {exc}") from exc
    elif prompt is not _MISSING and prompt:
        resolved = prompt
    if resolved is not None and PROMPT_TEXT_PLACEHOLDER not in resolved:
        raise ConfigError(f"backend prompt must contain {PROMPT_TEXT_PLACEHOLDER}")
    return resolved


_NUMBER = (int, float)

_BACKEND_KEYS: dict[str, type | tuple[type, ...]] = {
    "use_ai": bool,
    "analysis_timeout": _NUMBER,
    "probe_timeout": _NUMBER,
    "probe_interval": _NUMBER,
    "max_tokens": int,
    "temperature": _NUMBER,
}

_RECOGNITION_KEYS: dict[str, type | tuple[type, ...]] = {
    "asr_model": str,
    "language": str,
    "sample_rate": int,
    "vad_mode": int,
    "vad_frame_ms": int,
    "vad_silence_ms": int,
    "transcribe_interval": _NUMBER,
    "no_speech_timeout": _NUMBER,
    "energy_threshold": _NUMBER,
    "max_buffer_seconds": int,
}


def _backend(directory: Path, raw: dict[str, Any]) -> BackendConfig:
    values = _overrides(raw, _BACKEND_KEYS, "backend")
    model = raw.get("model", _MISSING)
    if model is not _MISSING:
        if model is not None and not isinstance(model, str):
            raise ConfigError("backend.model has the wrong type")
        values["model"] = model or None
    values["prompt"] = _resolve_prompt(directory, raw)
    return BackendConfig(**values)


def _recognition(raw: dict[str, Any]) -> RecognitionConfig:
    values = _overrides(raw, _RECOGNITION_KEYS, "recognition")
    device = raw.get("device")
    if device is not None and (isinstance(device, bool) or not isinstance(device, int)):
        raise ConfigError("recognition.device must be an integer or null")
    values["device"] = device
    wake_words = raw.get("wake_words", _MISSING)
    if wake_words is not _MISSING:
        if not isinstance(wake_words, list) or not all(isinstance(w, str) for w in wake_words):
            raise ConfigError("recognition.wake_words must be a list of strings")
        values["wake_words"] = tuple(w.strip().lower() for w in wake_words if w.strip())
    if values.get("vad_frame_ms", 30) not in (10, 20, 30):
        raise ConfigError("recognition.vad_frame_ms must be 10, 20 or 30")
    if not 0 <= values.get("vad_mode", 0) <= 3:
        raise ConfigError("recognition.vad_mode must be between 0 and 3")
    return RecognitionConfig(**values)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def config_dir() -> Path:
    """Config directory, honoring ``VOICEFORM_CONFIG_DIR``."""
    return Path(
        os.environ.get(DEFAULT_CONFIG_DIR_ENV, "") or DEFAULT_CONFIG_DIR,
    ).expanduser()


def load_config(path: str | None = None) -> VoiceFormConfig:
    """Load voiceform configuration from a JSON file.

    Reads ``~/.config/voiceform/config.json`` (or *path*). Relative
    ``prompt_file`` paths are resolved against the config directory.
    Returns the defaults when the file does not exist; raises ConfigError
    when it cannot be parsed or holds values of the wrong type.
    """
    directory = config_dir()
    config_path = Path(path).expanduser() if path else directory / DEFAULT_CONFIG_FILE

    if not config_path.exists():
        LOGGER.debug("No config file at %s, using defaults", config_path)
        return VoiceFormConfig()

    try:
        with open(config_path) as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{config_path} is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must hold a JSON object")

    return VoiceFormConfig(
        backend=_backend(directory, _section(data, "backend")),
        recognition=_recognition(_section(data, "recognition")),
    )
