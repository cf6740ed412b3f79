"""Contact form state driven by Understanding results.

FormController is the single source of truth for what gets submitted: the
SubmissionRecord is always built from the values tracked here.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from voiceform.core.env import LOGGER
from voiceform.core.types import FieldKind, Intent, SubmissionRecord, Understanding

_EMAIL_RE: Final = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE: Final = re.compile(r"^[\d\s()+\-.]{10,15}$")

MSG_SAY_SUBMIT: Final = 'Say "submit" when you\'re ready to submit the form.'
MSG_NO_FIELDS: Final = (
    "No specific fields were detected in your speech. "
    "Please try again with clearer details."
)
MSG_NO_DATA: Final = "Please provide some information before submitting."
MSG_CLEARED: Final = "Form has been cleared. You can start over."
MSG_UNKNOWN: Final = (
    'I didn\'t understand that. Please try a phrase like "My name is..." '
    'or say "submit" when ready.'
)
MSG_SUBMITTED: Final = "Form submitted."

INVALID_EMAIL: Final = "Please enter a valid email address"
INVALID_PHONE: Final = "Please enter a valid phone number"


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value))


def is_valid_phone(value: str) -> bool:
    return bool(_PHONE_RE.match(value))


@dataclass(frozen=True, slots=True)
class FormOutcome:
    """What applying one Understanding did to the form."""

    message: str
    submitted: SubmissionRecord | None = None


class FormController:
    """Tracks field values, validation errors and the focused field."""

    def __init__(self) -> None:
        self.values: dict[FieldKind, str] = {kind: "" for kind in FieldKind}
        self.errors: dict[FieldKind, str] = {}
        self.active_field: FieldKind | None = None
        self.last_speech = ""

    def set_field(self, kind: FieldKind, value: str) -> None:
        """Overwrite one field and re-validate it."""
        self.values[kind] = value
        self.active_field = kind
        self.errors.pop(kind, None)
        if kind is FieldKind.EMAIL and value and not is_valid_email(value):
            self.errors[kind] = INVALID_EMAIL
        elif kind is FieldKind.PHONE and value and not is_valid_phone(value):
            self.errors[kind] = INVALID_PHONE

    def clear(self) -> str:
        self.values = {kind: "" for kind in FieldKind}
        self.errors = {}
        self.active_field = None
        return MSG_CLEARED

    def record(self) -> SubmissionRecord:
        return SubmissionRecord.from_values(self.values)

    def submit(self) -> FormOutcome:
        record = self.record()
        if not record.has_data:
            LOGGER.info("Submit requested with an empty form")
            return FormOutcome(MSG_NO_DATA)
        LOGGER.info("Submitting form")
        return FormOutcome(MSG_SUBMITTED, submitted=record)

    def apply(self, understanding: Understanding) -> FormOutcome:
        """Update the form for one classified utterance."""
        self.last_speech = understanding.original_text

        intent = understanding.intent
        if intent is Intent.SUBMIT:
            return self.submit()
        if intent is Intent.CLEAR:
            return FormOutcome(self.clear())
        if intent is not Intent.PROVIDE_INFO:
            return FormOutcome(MSG_UNKNOWN)

        updated = [f for f in understanding.detected_fields if f.value]
        if not updated:
            return FormOutcome(MSG_NO_FIELDS)
        for detected in updated:
            LOGGER.debug("Updating %s", detected.field)
            self.set_field(detected.field, detected.value)
        self.active_field = understanding.focus_field
        return FormOutcome(MSG_SAY_SUBMIT)
