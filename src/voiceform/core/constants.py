"""Default configuration values for voiceform."""

from typing import Final

# Generative backend
DEFAULT_LLM_MODEL: Final = "gemini/gemini-1.5-pro"
DEFAULT_ANALYSIS_TIMEOUT: Final = 5.0
DEFAULT_PROBE_TIMEOUT: Final = 3.0
DEFAULT_PROBE_INTERVAL: Final = 60.0
DEFAULT_ANALYSIS_MAX_TOKENS: Final = 500
DEFAULT_SANITIZE_MAX_TOKENS: Final = 100
DEFAULT_TEMPERATURE: Final = 0.2
PROBE_TEXT: Final = "test"
PROMPT_TEXT_PLACEHOLDER: Final = "{text}"

# Rate limiting (milliseconds)
BACKOFF_FLOOR_MS: Final = 1_000
BACKOFF_CEILING_MS: Final = 30_000
JITTER_MIN: Final = 0.5
JITTER_SPAN: Final = 1.0

# Fixed confidences for the pattern fallback
NAME_CONFIDENCE: Final = 0.8
EMAIL_CONFIDENCE: Final = 0.9
PHONE_CONFIDENCE: Final = 0.9
ADDRESS_CONFIDENCE: Final = 0.7
SUBMIT_CONFIDENCE: Final = 0.9
DEFAULT_AI_CONFIDENCE: Final = 0.8

# Speech session
DEFAULT_RESTART_DELAY: Final = 0.1
DEFAULT_WAKE_WORDS: Final = ("siri", "alexa", "computer")
SUBMIT_NAVIGATION_DELAY: Final = 0.5

# Recognition device
DEFAULT_ASR_MODEL: Final = "whisper-1"
DEFAULT_LANGUAGE: Final = "en"
DEFAULT_SAMPLE_RATE: Final = 16_000
DEFAULT_TRANSCRIBE_INTERVAL: Final = 1.0
DEFAULT_VAD_FRAME_MS: Final = 30
DEFAULT_VAD_MODE: Final = 2
DEFAULT_VAD_SILENCE_MS: Final = 700
DEFAULT_NO_SPEECH_TIMEOUT: Final = 8.0
DEFAULT_MAX_BUFFER_SECONDS: Final = 30
DEFAULT_AUDIO_QUEUE_MAXSIZE: Final = 200
DEFAULT_ENERGY_THRESHOLD: Final = 300.0
MIN_UTTERANCE_SECONDS: Final = 0.3

# Config
DEFAULT_CONFIG_DIR: Final = "~/.config/voiceform"
DEFAULT_CONFIG_DIR_ENV: Final = "VOICEFORM_CONFIG_DIR"
DEFAULT_CONFIG_FILE: Final = "config.json"

ANALYSIS_PROMPT: Final = """You are an AI assistant that analyzes user speech to extract form field information or detect submit intent.

Extract information for these specific fields:
- name: Person's full name
- email: Email address
- phone: Phone number
- address: Physical address

Also determine if the user wants to submit the form. Look for words like "submit",
"send", "finish", "complete", "done". If you detect a submit intent, include a "submit"
field in your response with value set to true.

Return a JSON object with the fields you detected. For each field include:
- value: the extracted information
- confidence: a number between 0 and 1

For the submit intent, if detected, return:
- submit: {"value": true, "confidence": <your confidence>}

Only include fields that you detected in the input. Return valid JSON only, no additional text.

Extract information from this speech: "{text}\""""

SANITIZE_PROMPT: Final = """You are a helpful assistant that extracts and formats {field} information from user speech.

For names: extract the full name with correct capitalization.
For emails: extract a valid email address, or convert a spoken description into email format.
For phone numbers: extract the number and format it as XXX-XXX-XXXX.
For addresses: extract the address and format it cleanly.

Only return the extracted information, nothing else.

Extract the {field} from this text: "{text}\""""
