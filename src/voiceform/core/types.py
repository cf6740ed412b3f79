"""Core data types shared across voiceform modules."""

from dataclasses import dataclass
from enum import StrEnum


class FieldKind(StrEnum):
    """The form inputs that speech can populate. Closed set."""

    NAME = "name"
    EMAIL = "email"
    PHONE = "phone"
    ADDRESS = "address"


class Intent(StrEnum):
    """High-level goal of one utterance."""

    PROVIDE_INFO = "provide_info"
    SUBMIT = "submit"
    CLEAR = "clear"
    UNKNOWN = "unknown"


class ApiStatus(StrEnum):
    """Backend availability as reported by the lightweight probe."""

    CHECKING = "checking"
    AVAILABLE = "available"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True, slots=True)
class Utterance:
    """One span of recognized speech. Interim ones are overwritten."""

    text: str
    is_final: bool = False


@dataclass(frozen=True, slots=True)
class DetectedField:
    """A (field, value, confidence) triple extracted from an utterance."""

    field: FieldKind
    value: str
    confidence: float

    def __post_init__(self) -> None:
        if not (0.0 <= self.confidence <= 1.0):
            raise ValueError("confidence must be between 0 and 1")


@dataclass(frozen=True, slots=True)
class FieldAnalysis:
    """Fields and submit signal found in one utterance, before intent resolution."""

    fields: tuple[DetectedField, ...] = ()
    submit_confidence: float | None = None

    @property
    def submit(self) -> bool:
        return self.submit_confidence is not None


@dataclass(frozen=True, slots=True)
class Understanding:
    """Immutable result of classifying one utterance.

    Attributes:
        intent: What the user wants to do.
        detected_fields: At most one entry per FieldKind, in detection order.
        original_text: The normalized utterance that was classified.
        from_ai: True when the fields came from the generative backend.
    """

    intent: Intent
    detected_fields: tuple[DetectedField, ...] = ()
    original_text: str = ""
    from_ai: bool = False

    def __post_init__(self) -> None:
        kinds = [f.field for f in self.detected_fields]
        if len(kinds) != len(set(kinds)):
            raise ValueError("detected_fields holds more than one entry per field")

    @property
    def focus_field(self) -> FieldKind | None:
        """Field with the highest confidence; first detected wins a tie."""
        if not self.detected_fields:
            return None
        best = self.detected_fields[0]
        for candidate in self.detected_fields[1:]:
            if candidate.confidence > best.confidence:
                best = candidate
        return best.field


@dataclass(frozen=True, slots=True)
class SanitizedField:
    """Result of a field-scoped cleanup call."""

    field: FieldKind
    value: str
    from_ai: bool = False


@dataclass(frozen=True, slots=True)
class SubmissionRecord:
    """Flat record handed to storage on submit. Values are trimmed."""

    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""

    @classmethod
    def from_values(cls, values: dict[FieldKind, str]) -> "SubmissionRecord":
        return cls(**{kind.value: (values.get(kind) or "").strip() for kind in FieldKind})

    @property
    def has_data(self) -> bool:
        return any(self.as_dict().values())

    def as_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
        }
