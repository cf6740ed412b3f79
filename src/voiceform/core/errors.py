"""Exception types and the session error channel payload."""

from dataclasses import dataclass
from typing import Final

# Recognition error codes, as reported by a RecognitionDevice.
NOT_ALLOWED: Final = "not-allowed"
AUDIO_CAPTURE: Final = "audio-capture"
NO_SPEECH: Final = "no-speech"
NETWORK: Final = "network"
ABORTED: Final = "aborted"

# Codes raised by the session itself.
START_FAILED: Final = "start-failed"
RESTART_FAILED: Final = "restart-failed"

TERMINAL_CODES: Final = frozenset({NOT_ALLOWED, AUDIO_CAPTURE})

ERROR_MESSAGES: Final = {
    NOT_ALLOWED: "Microphone access denied. Please allow microphone access and try again.",
    AUDIO_CAPTURE: "No usable microphone was found. Check your audio input device.",
    NO_SPEECH: "No speech detected. Please try speaking again.",
    NETWORK: "Network error during recognition. Check your connection and try again.",
    START_FAILED: "Error controlling the microphone. Please try again.",
    RESTART_FAILED: "Speech recognition stopped unexpectedly. Start listening again.",
}


class VoiceFormError(Exception):
    """Base class for voiceform errors."""


class DeviceUnavailable(VoiceFormError):
    """The platform offers no speech-recognition capability. Not retryable."""


class ConfigError(VoiceFormError):
    """A configuration file holds a value of the wrong shape."""


@dataclass(frozen=True, slots=True)
class SessionError:
    """Error reported on the SpeechSession error channel."""

    code: str
    message: str
    recoverable: bool = True

    @classmethod
    def from_code(cls, code: str, recoverable: bool = True) -> "SessionError":
        message = ERROR_MESSAGES.get(code, f"Error: {code}. Please try again.")
        return cls(code=code, message=message, recoverable=recoverable)
