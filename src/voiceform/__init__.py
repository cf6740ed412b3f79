__version__ = "0.1.0"


def __getattr__(name: str):
    """Lazy re-exports from voiceform.core for convenience."""
    _core_names = {
        "FieldKind",
        "Intent",
        "RateLimitController",
        "SpeechSession",
        "SubmissionRecord",
        "Understanding",
        "UnderstandingService",
    }
    if name in _core_names:
        from voiceform import core

        return getattr(core, name)
    raise AttributeError(f"module 'voiceform' has no attribute {name!r}")
