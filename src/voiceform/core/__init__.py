"""Core package: types, extraction, understanding and the speech session.

No UI dependencies; numpy appears only in the Transcriber signature. Re-exports
key symbols for convenience.
"""

from voiceform.core.config import BackendConfig, RecognitionConfig, VoiceFormConfig
from voiceform.core.errors import ConfigError, DeviceUnavailable, SessionError, VoiceFormError
from voiceform.core.extract import (
    analyze_with_patterns,
    extract_address,
    extract_all_fields,
    extract_clear_intent,
    extract_email,
    extract_field,
    extract_name,
    extract_phone,
    extract_submit_intent,
)
from voiceform.core.protocols import RecognitionDevice, RecognitionListener, Transcriber
from voiceform.core.ratelimit import RateLimitController, RateLimitState
from voiceform.core.session import SessionState, SpeechSession, normalize_transcript
from voiceform.core.types import (
    ApiStatus,
    DetectedField,
    FieldAnalysis,
    FieldKind,
    Intent,
    SanitizedField,
    SubmissionRecord,
    Understanding,
    Utterance,
)
from voiceform.core.understanding import UnderstandingService, parse_backend_payload

__all__ = [
    "ApiStatus",
    "BackendConfig",
    "ConfigError",
    "DetectedField",
    "DeviceUnavailable",
    "FieldAnalysis",
    "FieldKind",
    "Intent",
    "RateLimitController",
    "RateLimitState",
    "RecognitionConfig",
    "RecognitionDevice",
    "RecognitionListener",
    "SanitizedField",
    "SessionError",
    "SessionState",
    "SpeechSession",
    "SubmissionRecord",
    "Transcriber",
    "Understanding",
    "UnderstandingService",
    "Utterance",
    "VoiceFormConfig",
    "VoiceFormError",
    "analyze_with_patterns",
    "extract_address",
    "extract_all_fields",
    "extract_clear_intent",
    "extract_email",
    "extract_field",
    "extract_name",
    "extract_phone",
    "extract_submit_intent",
    "normalize_transcript",
    "parse_backend_payload",
]
