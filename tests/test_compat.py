"""Import compatibility tests — verify all canonical paths resolve."""

from __future__ import annotations

import importlib

import pytest


# All public import paths that must work
_IMPORT_PATHS = [
    # Top-level
    "voiceform",
    "voiceform.ui",
    # Core
    "voiceform.core",
    "voiceform.core.config",
    "voiceform.core.constants",
    "voiceform.core.env",
    "voiceform.core.errors",
    "voiceform.core.extract",
    "voiceform.core.protocols",
    "voiceform.core.ratelimit",
    "voiceform.core.session",
    "voiceform.core.types",
    "voiceform.core.understanding",
    # Audio
    "voiceform.audio",
    "voiceform.audio.microphone",
    "voiceform.audio.ring_buffer",
    "voiceform.audio.transcriber",
    "voiceform.audio.vad",
    # Apps
    "voiceform.apps.cli",
    "voiceform.apps.config",
    "voiceform.apps.form",
    "voiceform.apps.form_app",
]


@pytest.mark.parametrize("path", _IMPORT_PATHS)
def test_import_resolves(path: str) -> None:
    """Each import path should resolve without error."""
    mod = importlib.import_module(path)
    assert mod is not None


def test_lazy_core_reexports() -> None:
    """voiceform.X should resolve for the re-exported core names via __getattr__."""
    import voiceform
    from voiceform import core

    for name in ("FieldKind", "SpeechSession", "UnderstandingService", "SubmissionRecord"):
        assert getattr(voiceform, name) is getattr(core, name)


def test_unknown_attribute() -> None:
    import voiceform

    with pytest.raises(AttributeError):
        voiceform.does_not_exist  # noqa: B018


def test_version() -> None:
    import voiceform

    assert isinstance(voiceform.__version__, str)
