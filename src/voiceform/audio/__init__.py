"""Audio subpackage: microphone capture, turn detection and speech-to-text."""

from voiceform.audio.microphone import (
    InputDevice,
    MicrophoneRecognizer,
    list_input_devices,
    open_microphone,
)
from voiceform.audio.ring_buffer import RingBuffer
from voiceform.audio.transcriber import LitellmTranscriber, encode_wav
from voiceform.audio.vad import VoiceActivityDetector, frame_rms

__all__ = [
    "InputDevice",
    "LitellmTranscriber",
    "MicrophoneRecognizer",
    "RingBuffer",
    "VoiceActivityDetector",
    "encode_wav",
    "frame_rms",
    "list_input_devices",
    "open_microphone",
]
