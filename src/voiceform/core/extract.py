"""Deterministic field extraction from recognized speech.

Pure functions, no I/O. Two flavors live here:

* per-field cleanup (``extract_name`` .. ``extract_address``) for text that
  is already known to describe one field; these strip conversational
  prefixes and never fail,
* ``extract_all_fields`` for free-form utterances on the no-AI path, which
  only reports fields it can anchor on a cue phrase or a recognizable shape.

Prefix lists are ordered and first-match-wins, so a longer phrase must come
before any shorter phrase it starts with.
"""

import re
from collections.abc import Callable, Sequence
from typing import Final

from voiceform.core.constants import (
    ADDRESS_CONFIDENCE,
    EMAIL_CONFIDENCE,
    NAME_CONFIDENCE,
    PHONE_CONFIDENCE,
    SUBMIT_CONFIDENCE,
)
from voiceform.core.types import DetectedField, FieldAnalysis, FieldKind

NAME_PREFIXES: Final = (
    "my name is",
    "my name's",
    "the name is",
    "name is",
    "i'm called",
    "i am called",
    "just call me",
    "call me",
    "my name",
    "this is",
    "it's",
    "it is",
    "i am",
    "i'm",
)

EMAIL_PREFIXES: Final = (
    "my email address is",
    "email address is",
    "my email is",
    "email is",
    "my email",
    "you can reach me at",
    "contact me at",
    "send mail to",
    "send it to",
    "it's",
)

PHONE_PREFIXES: Final = (
    "my phone number is",
    "phone number is",
    "my phone is",
    "phone is",
    "my number is",
    "number is",
    "call me at",
    "you can reach me at",
    "reach me at",
    "contact me on",
)

ADDRESS_PREFIXES: Final = (
    "my address is",
    "the address is",
    "address is",
    "i live at",
    "i'm living at",
    "i stay at",
    "i'm at",
    "you can find me at",
    "find me at",
    "location is",
    "residence is",
    "my home is",
)

_GREETING_RE: Final = re.compile(r"^(?:hi|hello|hey)\b[\s,!.]+(?=\S)", re.IGNORECASE)
_EMAIL_TOKEN_RE: Final = re.compile(r"[\w.+-]+@[\w.-]+\.\w+")
_PHONE_TOKEN_RE: Final = re.compile(
    r"\d{3}[-.\s]?\d{3}[-.\s]?\d{4}|\(\d{3}\)\s*\d{3}[-.\s]?\d{4}|\d{10}"
)
_PHONE_JUNK_RE: Final = re.compile(r"[^\d\s\-+().]")

_SUBMIT_RE: Final = re.compile(r"\b(?:submit|send|done|finish|complete)\b", re.IGNORECASE)
_CLEAR_RE: Final = re.compile(r"\b(?:clear|reset)\b", re.IGNORECASE)

# Lighter patterns for free-form utterances.
_APOS = "['’]"
_NAME_RE: Final = re.compile(
    rf"\b(?:my name is|the name is|name is|i{_APOS}m called|i am called|call me"
    rf"|i am|i{_APOS}m|this is|name)\s+(?!at\b)(?P<value>[^,.?!]+?)(?=\s+and\b|[,.?!]|$)",
    re.IGNORECASE,
)
_EMAIL_RE: Final = re.compile(r"\b[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\b")
_PHONE_RE: Final = re.compile(
    r"(?<!\w)(?:\d{3}[-.\s]?\d{3}[-.\s]?\d{4}|\(\d{3}\)\s*\d{3}[-.\s]?\d{4}|\d{10})(?!\w)"
)
_ADDRESS_RE: Final = re.compile(
    r"\b(?<!email )(?:my address is|the address is|address is|my address|address"
    rf"|i live at|i{_APOS}m at|i am at|my location is|location is)"
    r"\s+(?P<value>[^.?!]+?)(?=\s+and\s+(?:my|the)\b|[.?!]|$)",
    re.IGNORECASE,
)


def _compile_prefixes(prefixes: Sequence[str]) -> tuple[re.Pattern[str], ...]:
    compiled = []
    for prefix in prefixes:
        body = re.escape(prefix).replace("'", _APOS)
        compiled.append(re.compile(rf"^{body}(?:[\s,:]+|$)", re.IGNORECASE))
    return tuple(compiled)


_NAME_PREFIX_RES: Final = _compile_prefixes(NAME_PREFIXES)
_EMAIL_PREFIX_RES: Final = _compile_prefixes(EMAIL_PREFIXES)
_PHONE_PREFIX_RES: Final = _compile_prefixes(PHONE_PREFIXES)
_ADDRESS_PREFIX_RES: Final = _compile_prefixes(ADDRESS_PREFIXES)


def _clean(text: object) -> str:
    return text.strip() if isinstance(text, str) else ""


def strip_prefix(text: str, patterns: Sequence[re.Pattern[str]]) -> str:
    """Remove the first matching leading prefix, then trim."""
    for pattern in patterns:
        match = pattern.match(text)
        if match:
            return text[match.end():].strip()
    return text.strip()


def extract_name(text: str) -> str:
    """Strip greetings and name prefixes; casing is left alone."""
    cleaned = _GREETING_RE.sub("", _clean(text), count=1)
    return strip_prefix(cleaned, _NAME_PREFIX_RES)


def extract_email(text: str) -> str:
    """Return an email-shaped token verbatim, else the text minus prefixes."""
    cleaned = _clean(text)
    match = _EMAIL_TOKEN_RE.search(cleaned)
    if match:
        return match.group(0)
    return strip_prefix(cleaned, _EMAIL_PREFIX_RES)


def extract_phone(text: str) -> str:
    """Return a phone-shaped token, else the digits and separators left after prefixes."""
    cleaned = _clean(text)
    match = _PHONE_TOKEN_RE.search(cleaned)
    if match:
        return match.group(0)
    remainder = strip_prefix(cleaned, _PHONE_PREFIX_RES)
    return _PHONE_JUNK_RE.sub("", remainder).strip()


def extract_address(text: str) -> str:
    """Strip address prefixes."""
    return strip_prefix(_clean(text), _ADDRESS_PREFIX_RES)


_EXTRACTORS: Final[dict[FieldKind, Callable[[str], str]]] = {
    FieldKind.NAME: extract_name,
    FieldKind.EMAIL: extract_email,
    FieldKind.PHONE: extract_phone,
    FieldKind.ADDRESS: extract_address,
}


def extract_field(kind: FieldKind, text: str) -> str:
    """Dispatch to the cleanup function for *kind*."""
    return _EXTRACTORS[kind](text)


def extract_submit_intent(text: str) -> bool:
    """True iff a submit keyword appears as a whole word."""
    return bool(_SUBMIT_RE.search(_clean(text)))


def extract_clear_intent(text: str) -> bool:
    """True iff "clear" or "reset" appears as a whole word."""
    return bool(_CLEAR_RE.search(_clean(text)))


def extract_all_fields(text: str) -> list[DetectedField]:
    """Find every field a free-form utterance mentions, with fixed confidences."""
    cleaned = _clean(text)
    found: list[DetectedField] = []
    if not cleaned:
        return found

    match = _NAME_RE.search(cleaned)
    if match and match.group("value").strip():
        found.append(
            DetectedField(FieldKind.NAME, match.group("value").strip(), NAME_CONFIDENCE)
        )

    match = _EMAIL_RE.search(cleaned)
    if match:
        found.append(DetectedField(FieldKind.EMAIL, match.group(0), EMAIL_CONFIDENCE))

    match = _PHONE_RE.search(cleaned)
    if match:
        found.append(DetectedField(FieldKind.PHONE, match.group(0), PHONE_CONFIDENCE))

    match = _ADDRESS_RE.search(cleaned)
    if match and match.group("value").strip():
        found.append(
            DetectedField(
                FieldKind.ADDRESS, match.group("value").strip(), ADDRESS_CONFIDENCE
            )
        )

    return found


def analyze_with_patterns(text: str) -> FieldAnalysis:
    """Regex-only analysis used whenever the backend is skipped or fails."""
    return FieldAnalysis(
        fields=tuple(extract_all_fields(text)),
        submit_confidence=SUBMIT_CONFIDENCE if extract_submit_intent(text) else None,
    )
