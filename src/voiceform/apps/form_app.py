"""Textual TUI: fill in a contact form by speaking.

Space starts and stops listening. Each final utterance is classified by
UnderstandingService and applied to a FormController; saying "submit"
(or pressing s) exits the app with the SubmissionRecord after a short
confirmation delay. Tab moves the field marker and e opens a typed editor
for the marked field.
"""

from collections.abc import Callable, Sequence

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Footer, Header, Input, Label, Static

from voiceform.apps.form import FormController, FormOutcome
from voiceform.core.constants import (
    DEFAULT_PROBE_INTERVAL,
    DEFAULT_RESTART_DELAY,
    DEFAULT_WAKE_WORDS,
    SUBMIT_NAVIGATION_DELAY,
)
from voiceform.core.env import LOGGER
from voiceform.core.errors import DeviceUnavailable, SessionError
from voiceform.core.protocols import RecognitionDevice
from voiceform.core.session import SpeechSession
from voiceform.core.types import ApiStatus, FieldKind, SubmissionRecord, Understanding
from voiceform.core.understanding import UnderstandingService
from voiceform.ui import FIELD_LABELS, UiState, render_form, render_speech, render_status


class FieldEditScreen(ModalScreen[str | None]):
    """Modal single-line editor for one form field."""

    CSS = """
    FieldEditScreen {
        align: center middle;
    }
    #edit-dialog {
        width: 60;
        height: auto;
        border: thick $accent;
        background: $surface;
        padding: 1 2;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", priority=True),
    ]

    def __init__(self, kind: FieldKind, value: str) -> None:
        super().__init__()
        self._kind = kind
        self._value = value

    def compose(self) -> ComposeResult:
        with Vertical(id="edit-dialog"):
            yield Label(f"{FIELD_LABELS[self._kind]} (Enter to save, Esc to cancel)")
            yield Input(value=self._value, id="field-input")

    def on_mount(self) -> None:
        self.query_one("#field-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value)

    def action_cancel(self) -> None:
        self.dismiss(None)


class VoiceFormApp(App[SubmissionRecord]):
    """Voice-driven contact form."""

    TITLE = "Voice Form"

    CSS = """
    #body {
        height: 1fr;
    }
    #status-bar {
        height: 1;
        padding: 0 1;
        background: $surface;
    }
    #form-panel {
        height: auto;
    }
    #speech-panel {
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("space", "toggle_listening", "Listen/Stop", priority=True),
        Binding("a", "toggle_ai", "AI on/off", priority=True),
        Binding("c", "clear_form", "Clear", priority=True),
        Binding("s", "submit_form", "Submit", priority=True),
        Binding("tab", "next_field", "Next field", priority=True),
        Binding("e", "edit_field", "Edit", priority=True),
        Binding("q", "quit_app", "Quit", priority=True),
    ]

    def __init__(
        self,
        service: UnderstandingService,
        device_factory: Callable[[], RecognitionDevice],
        probe_interval: float = DEFAULT_PROBE_INTERVAL,
        wake_words: Sequence[str] = DEFAULT_WAKE_WORDS,
        restart_delay: float = DEFAULT_RESTART_DELAY,
    ) -> None:
        super().__init__()
        self._service = service
        self._probe_interval = probe_interval
        self._form = FormController()
        self._ui = UiState(use_ai=service.use_ai, model_name=service.model or "")
        self._session = SpeechSession(
            device_factory,
            classify=service.understand,
            on_understanding=self._on_understanding,
            on_error=self._on_session_error,
            on_interim=self._on_interim,
            on_state_change=self._refresh,
            restart_delay=restart_delay,
            wake_words=wake_words,
        )
        # AI switched off because the probe reported the API unavailable.
        self._ai_forced_off = False
        self._submitting = False
        self._editing = False
        self._mounted = False

    @property
    def form(self) -> FormController:
        return self._form

    @property
    def session(self) -> SpeechSession:
        return self._session

    @property
    def api_status(self) -> ApiStatus:
        return self._ui.api_status

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("", id="status-bar")
        with Vertical(id="body"):
            yield Static("", id="form-panel")
            yield Static("", id="speech-panel")
        yield Footer()

    def on_mount(self) -> None:
        self._mounted = True
        self._refresh()
        self._schedule_probe()
        self.set_interval(self._probe_interval, self._schedule_probe)

    async def on_unmount(self) -> None:
        self._mounted = False
        await self._session.aclose()

    # ── Backend probe ────────────────────────────────────────────────

    def _schedule_probe(self) -> None:
        self.run_worker(self._probe_api(), group="probe", exclusive=True)

    async def _probe_api(self) -> None:
        status = await self._service.probe()
        LOGGER.debug("API probe: %s", status)
        self.apply_api_status(status)

    def apply_api_status(self, status: ApiStatus) -> None:
        """Record a probe result; UNAVAILABLE forces AI off until it returns."""
        self._ui.api_status = status
        if status is ApiStatus.UNAVAILABLE and self._service.use_ai:
            self._service.use_ai = False
            self._ai_forced_off = True
            self.notify("AI service unavailable, using basic recognition", severity="warning")
        elif status is ApiStatus.AVAILABLE and self._ai_forced_off:
            self._service.use_ai = True
            self._ai_forced_off = False
            self.notify("AI service is available again")
        self._refresh()

    # ── Session callbacks ────────────────────────────────────────────

    def _on_understanding(self, understanding: Understanding) -> None:
        self._ui.last_understanding = understanding
        self._ui.error = ""
        self._handle_outcome(self._form.apply(understanding))

    def _on_session_error(self, error: SessionError) -> None:
        self._ui.error = error.message
        if not error.recoverable:
            self.notify(error.message, severity="error")
        self._refresh()

    def _on_interim(self, text: str) -> None:
        self._ui.interim = text
        self._refresh()

    def _handle_outcome(self, outcome: FormOutcome) -> None:
        self._ui.message = outcome.message
        record = outcome.submitted
        if record is not None and not self._submitting:
            self._submitting = True
            self._session.close()
            self.set_timer(SUBMIT_NAVIGATION_DELAY, lambda: self.exit(record))
        self._refresh()

    # ── Actions ──────────────────────────────────────────────────────

    def action_toggle_listening(self) -> None:
        if self._submitting:
            return
        try:
            if self._session.listening:
                accepted = self._session.stop()
            else:
                accepted = self._session.start()
        except DeviceUnavailable as exc:
            LOGGER.warning("Speech recognition unavailable: %s", exc)
            self._ui.error = f"Speech recognition is not available: {exc}"
            self.notify(self._ui.error, severity="error")
            self._refresh()
            return
        if not accepted and self._session.processing:
            self.notify("Still processing the last utterance", timeout=2)
        self._refresh()

    def action_toggle_ai(self) -> None:
        if self._ui.api_status is ApiStatus.UNAVAILABLE:
            self.notify("AI service is unavailable", severity="warning", timeout=2)
            return
        self._service.use_ai = not self._service.use_ai
        self._ai_forced_off = False
        self._refresh()

    def action_clear_form(self) -> None:
        self._ui.message = self._form.clear()
        self._ui.error = ""
        self._refresh()

    def action_submit_form(self) -> None:
        if self._submitting:
            return
        self._handle_outcome(self._form.submit())

    def action_next_field(self) -> None:
        """Tab: move the field marker to the next field."""
        if self._editing:
            return
        kinds = list(FieldKind)
        current = self._form.active_field
        index = -1 if current is None else kinds.index(current)
        self._form.active_field = kinds[(index + 1) % len(kinds)]
        self._refresh()

    def action_edit_field(self) -> None:
        """Type a value into the marked field (name when none is marked)."""
        if self._editing or self._submitting:
            return
        kind = self._form.active_field or FieldKind.NAME
        self._editing = True
        self.push_screen(
            FieldEditScreen(kind, self._form.values[kind]),
            callback=lambda value: self._on_field_edited(kind, value),
        )

    def _on_field_edited(self, kind: FieldKind, value: str | None) -> None:
        self._editing = False
        if value is not None:
            self.edit_field(kind, value)

    def edit_field(self, kind: FieldKind, value: str) -> None:
        """Apply a typed value the same way a spoken one is validated."""
        self._form.set_field(kind, value.strip())
        self._ui.message = ""
        self._refresh()

    def action_quit_app(self) -> None:
        self._session.close()
        self.exit()

    # ── Display ──────────────────────────────────────────────────────

    def _refresh(self) -> None:
        if not self._mounted:
            return
        ui = self._ui
        ui.listening = self._session.listening
        ui.processing = self._session.processing
        ui.use_ai = self._service.use_ai
        ui.rate_limited = self._service.rate_limited
        ui.values = dict(self._form.values)
        ui.errors = dict(self._form.errors)
        ui.active_field = self._form.active_field
        ui.last_speech = self._form.last_speech
        if not ui.listening:
            ui.interim = ""

        # The field editor may be on top; the panels live on the base screen.
        base = self.screen_stack[0]
        base.query_one("#status-bar", Static).update(render_status(ui))
        base.query_one("#form-panel", Static).update(render_form(ui))
        base.query_one("#speech-panel", Static).update(render_speech(ui))
