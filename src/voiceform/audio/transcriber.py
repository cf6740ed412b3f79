"""Speech-to-text through litellm's transcription endpoint."""

import io
import wave

import numpy as np

from voiceform.core.constants import DEFAULT_ASR_MODEL, DEFAULT_LANGUAGE


def encode_wav(audio: np.ndarray, sample_rate: int) -> io.BytesIO:
    """Wrap mono int16 samples in an in-memory WAV file."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(1)
        wav_file.setsampwidth(2)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(audio.astype(np.int16).tobytes())
    buffer.seek(0)
    # litellm infers the upload format from the file name.
    buffer.name = "utterance.wav"
    return buffer


class LitellmTranscriber:
    """Blocking transcriber; call it from a worker thread."""

    def __init__(
        self, model: str = DEFAULT_ASR_MODEL, language: str = DEFAULT_LANGUAGE
    ) -> None:
        self.model = model
        self.language = language

    def __call__(self, audio: np.ndarray, sample_rate: int) -> str:
        if audio.size == 0:
            return ""
        from litellm import transcription  # deferred import

        response = transcription(
            model=self.model,
            file=encode_wav(audio, sample_rate),
            language=self.language,
        )
        text = getattr(response, "text", None)
        return text.strip() if isinstance(text, str) else ""
