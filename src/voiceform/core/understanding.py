"""Utterance classification: local intents, a gated LLM call, regex fallback.

Uses litellm for provider-agnostic LLM access (Gemini, OpenAI, Ollama, etc.).
Every backend failure is caught here and turned into the deterministic
fallback, so callers always get exactly one Understanding per utterance.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any

from voiceform.core.config import BackendConfig
from voiceform.core.constants import (
    ANALYSIS_PROMPT,
    DEFAULT_AI_CONFIDENCE,
    DEFAULT_ANALYSIS_MAX_TOKENS,
    DEFAULT_ANALYSIS_TIMEOUT,
    DEFAULT_LLM_MODEL,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_SANITIZE_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    PROBE_TEXT,
    SANITIZE_PROMPT,
)
from voiceform.core.env import LOGGER
from voiceform.core.extract import (
    analyze_with_patterns,
    extract_clear_intent,
    extract_field,
    extract_submit_intent,
)
from voiceform.core.protocols import CompletionFn
from voiceform.core.ratelimit import RateLimitController
from voiceform.core.types import (
    ApiStatus,
    DetectedField,
    FieldAnalysis,
    FieldKind,
    Intent,
    SanitizedField,
    Understanding,
)

HTTP_TOO_MANY_REQUESTS = 429


class _SchemaViolation(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class _BackendReply:
    """Outcome of one backend call. content is None when the call failed."""

    content: str | None = None
    rate_limited: bool = False


def render_prompt(template: str, **values: str) -> str:
    """Fill ``{name}`` placeholders literally; other braces are left as written."""
    for key, value in values.items():
        template = template.replace("{" + key + "}", value)
    return template


def extract_json_object(content: str) -> dict[str, Any] | None:
    """Pull a JSON object out of LLM output.

    Handles markdown code fences and objects embedded in surrounding prose.
    Returns None when no object can be decoded.
    """
    if not isinstance(content, str):
        return None
    text = content.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    text = text.strip()
    if not text:
        return None

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            data = json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def _confidence(entry: dict[str, Any]) -> float:
    raw = entry.get("confidence", DEFAULT_AI_CONFIDENCE)
    if raw is None:
        return DEFAULT_AI_CONFIDENCE
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise _SchemaViolation("confidence is not a number")
    if not (0.0 <= raw <= 1.0):
        raise _SchemaViolation("confidence out of range")
    return float(raw)


def parse_backend_payload(content: str) -> FieldAnalysis | None:
    """Validate the backend's field/submit JSON. Any violation returns None.

    Expected shape::

        {"name": {"value": "Jane Doe", "confidence": 0.95},
         "submit": {"value": true, "confidence": 0.9}}

    Missing fields mean "not detected"; unknown keys are ignored.
    """
    data = extract_json_object(content)
    if data is None:
        return None

    try:
        fields: list[DetectedField] = []
        for kind in FieldKind:
            entry = data.get(kind.value)
            if entry is None:
                continue
            if not isinstance(entry, dict):
                raise _SchemaViolation(f"{kind} entry is not an object")
            value = entry.get("value")
            if not isinstance(value, str):
                raise _SchemaViolation(f"{kind} value is not a string")
            if not value.strip():
                continue
            fields.append(DetectedField(kind, value.strip(), _confidence(entry)))

        submit_confidence: float | None = None
        submit = data.get("submit")
        if submit is not None:
            if not isinstance(submit, dict) or not isinstance(submit.get("value"), bool):
                raise _SchemaViolation("submit entry is malformed")
            if submit["value"]:
                submit_confidence = _confidence(submit)
    except _SchemaViolation as exc:
        LOGGER.debug("Backend payload rejected: %s", exc)
        return None

    return FieldAnalysis(fields=tuple(fields), submit_confidence=submit_confidence)


def _resolve(
    text: str, analysis: FieldAnalysis, wants_clear: bool, from_ai: bool
) -> Understanding:
    if analysis.submit:
        return Understanding(Intent.SUBMIT, (), text, from_ai)
    if analysis.fields:
        return Understanding(Intent.PROVIDE_INFO, analysis.fields, text, from_ai)
    if wants_clear:
        return Understanding(Intent.CLEAR, (), text, from_ai)
    return Understanding(Intent.UNKNOWN, (), text, from_ai)


def _message_text(response: Any) -> str | None:
    """Return the first choice's text, or None if the response is malformed."""
    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError, KeyError, TypeError):
        return None
    return content if isinstance(content, str) else None


def _is_rate_limit(exc: BaseException) -> bool:
    return getattr(exc, "status_code", None) == HTTP_TOO_MANY_REQUESTS


class UnderstandingService:
    """Turns one utterance into one Understanding.

    Submit and clear are detected locally and stay available with the AI
    toggle off or the backend in cooldown. Field extraction prefers the
    backend and degrades to the regex patterns in ``voiceform.core.extract``.
    """

    def __init__(
        self,
        model: str | None = DEFAULT_LLM_MODEL,
        use_ai: bool = True,
        rate_limiter: RateLimitController | None = None,
        analysis_timeout: float = DEFAULT_ANALYSIS_TIMEOUT,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        prompt: str | None = None,
        max_tokens: int = DEFAULT_ANALYSIS_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
        completion: CompletionFn | None = None,
    ) -> None:
        self.model = model
        self.use_ai = use_ai
        self.rate_limiter = rate_limiter or RateLimitController()
        self.analysis_timeout = analysis_timeout
        self.probe_timeout = probe_timeout
        self.prompt = prompt or ANALYSIS_PROMPT
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._completion = completion

    @classmethod
    def from_config(
        cls,
        config: BackendConfig,
        rate_limiter: RateLimitController | None = None,
        completion: CompletionFn | None = None,
    ) -> "UnderstandingService":
        return cls(
            model=config.model,
            use_ai=config.use_ai,
            rate_limiter=rate_limiter,
            analysis_timeout=config.analysis_timeout,
            probe_timeout=config.probe_timeout,
            prompt=config.prompt,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            completion=completion,
        )

    @property
    def rate_limited(self) -> bool:
        return self.rate_limiter.is_rate_limited()

    def _remote_allowed(self) -> bool:
        if not self.use_ai or not self.model:
            return False
        if self.rate_limiter.is_rate_limited():
            LOGGER.debug("In rate limit cooldown, skipping backend")
            return False
        return True

    async def _call_backend(
        self, prompt: str, max_tokens: int, timeout: float
    ) -> _BackendReply:
        """One bounded backend call. Only a 429 touches the backoff."""
        completion = self._completion
        if completion is None:
            from litellm import acompletion  # deferred import

            completion = acompletion

        try:
            response = await asyncio.wait_for(
                completion(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    max_tokens=max_tokens,
                    temperature=self.temperature,
                    timeout=timeout,
                    num_retries=0,
                ),
                timeout=timeout,
            )
        except TimeoutError:
            LOGGER.info("Backend call timed out after %.1fs", timeout)
            return _BackendReply()
        except Exception as exc:
            if _is_rate_limit(exc):
                self.rate_limiter.record_failure()
                return _BackendReply(rate_limited=True)
            LOGGER.warning("Backend call failed: %s", exc)
            return _BackendReply()

        self.rate_limiter.record_success()
        return _BackendReply(content=_message_text(response))

    async def understand(self, text: str) -> Understanding | None:
        """Classify one utterance. Blank or non-string input returns None."""
        if not isinstance(text, str) or not text.strip():
            return None
        text = text.strip()

        wants_submit = extract_submit_intent(text)
        wants_clear = extract_clear_intent(text)
        if wants_submit:
            LOGGER.debug("Submit keyword detected locally, skipping backend")
            return Understanding(Intent.SUBMIT, (), text)

        if self._remote_allowed():
            reply = await self._call_backend(
                render_prompt(self.prompt, text=text),
                self.max_tokens,
                self.analysis_timeout,
            )
            if reply.content is not None:
                analysis = parse_backend_payload(reply.content)
                if analysis is not None:
                    return _resolve(text, analysis, wants_clear, from_ai=True)
                LOGGER.info("Malformed backend payload, using pattern fallback")

        return _resolve(text, analyze_with_patterns(text), wants_clear, from_ai=False)

    async def sanitize_field(
        self, kind: FieldKind, text: str, timeout: float | None = None
    ) -> SanitizedField:
        """Clean text already known to describe *kind*."""
        cleaned = text.strip() if isinstance(text, str) else ""
        if not cleaned:
            return SanitizedField(kind, "")

        if self._remote_allowed():
            reply = await self._call_backend(
                render_prompt(SANITIZE_PROMPT, field=kind.value, text=cleaned),
                DEFAULT_SANITIZE_MAX_TOKENS,
                timeout or self.analysis_timeout,
            )
            if reply.content and reply.content.strip():
                return SanitizedField(kind, reply.content.strip(), from_ai=True)

        return SanitizedField(kind, extract_field(kind, cleaned))

    async def probe(self) -> ApiStatus:
        """Report backend availability with one small fixed request."""
        if not self.model:
            return ApiStatus.UNAVAILABLE
        if self.rate_limiter.is_rate_limited():
            return ApiStatus.RATE_LIMITED

        reply = await self._call_backend(
            render_prompt(SANITIZE_PROMPT, field=FieldKind.NAME.value, text=PROBE_TEXT),
            DEFAULT_SANITIZE_MAX_TOKENS,
            self.probe_timeout,
        )
        if reply.rate_limited:
            return ApiStatus.RATE_LIMITED
        if reply.content is None:
            return ApiStatus.UNAVAILABLE
        return ApiStatus.AVAILABLE
