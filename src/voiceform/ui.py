"""Terminal UI rendering for voiceform.

All render functions are pure: they take a UiState snapshot and return
Rich renderables. No side effects, no mutation.
"""

from dataclasses import dataclass, field

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from voiceform.core.types import ApiStatus, FieldKind, Understanding

FIELD_LABELS = {
    FieldKind.NAME: "Name",
    FieldKind.EMAIL: "Email",
    FieldKind.PHONE: "Phone",
    FieldKind.ADDRESS: "Address",
}

_API_STYLES = {
    ApiStatus.CHECKING: ("checking", "dim"),
    ApiStatus.AVAILABLE: ("available", "green"),
    ApiStatus.RATE_LIMITED: ("rate limited", "yellow"),
    ApiStatus.UNAVAILABLE: ("unavailable", "red"),
}


@dataclass(slots=True)
class UiState:
    """Snapshot of app state consumed by render functions."""

    listening: bool = False
    processing: bool = False
    api_status: ApiStatus = ApiStatus.CHECKING
    use_ai: bool = True
    rate_limited: bool = False
    model_name: str = ""
    interim: str = ""
    last_speech: str = ""
    message: str = ""
    error: str = ""
    values: dict[FieldKind, str] = field(default_factory=dict)
    errors: dict[FieldKind, str] = field(default_factory=dict)
    active_field: FieldKind | None = None
    last_understanding: Understanding | None = None


def short_model_name(name: str | None) -> str:
    """Extract the last path segment for display."""
    if not name:
        return "--"
    return name.split("/")[-1]


def status_label(state: UiState) -> tuple[str, str]:
    if state.processing:
        return "Processing", "yellow"
    if state.listening:
        return "Listening", "green"
    return "Idle", "dim"


def render_status(state: UiState) -> Text:
    """One-line status: session state, AI mode and backend availability."""
    label, style = status_label(state)
    status = Text()
    status.append("● " if state.listening else "○ ", style=style)
    status.append(label, style=f"bold {style}")
    status.append(" | ")
    status.append("AI: ")
    if state.use_ai:
        status.append(f"on ({short_model_name(state.model_name)})", style="cyan")
    else:
        status.append("off", style="dim")
    status.append(" | ")
    api_label, api_style = _API_STYLES[state.api_status]
    status.append("API: ")
    status.append(api_label, style=api_style)
    return status


def render_form(state: UiState) -> Panel:
    """The four contact fields, focus marker and validation errors."""
    table = Table.grid(expand=True, padding=(0, 1))
    table.add_column(width=2)
    table.add_column(justify="right", style="cyan", width=8)
    table.add_column()
    for kind in FieldKind:
        marker = "▸" if kind is state.active_field else ""
        value = Text(state.values.get(kind, "") or "--")
        if not state.values.get(kind):
            value.stylize("dim")
        error = state.errors.get(kind)
        if error:
            value.append(f"  {error}", style="red")
        table.add_row(marker, FIELD_LABELS[kind], value)
    return Panel(table, title="Contact details", padding=(0, 1))


def render_speech(state: UiState) -> Panel:
    """Interim hearing line, last utterance, and messages."""
    body = Text()
    if state.interim:
        body.append("Hearing: ", style="bold")
        body.append(state.interim, style="dim italic")
        body.append("\n")
    if state.last_speech:
        body.append("You said: ", style="bold")
        body.append(state.last_speech)
        body.append("\n")
    understanding = state.last_understanding
    if understanding is not None:
        body.append("Intent: ", style="cyan")
        body.append(understanding.intent.value)
        body.append(" (AI)" if understanding.from_ai else " (patterns)", style="dim")
        body.append("\n")
    if state.rate_limited:
        body.append(
            "AI service is cooling down after rate limiting; "
            "using basic recognition for now.\n",
            style="yellow",
        )
    if state.error:
        body.append(state.error, style="bold red")
        body.append("\n")
    if state.message:
        body.append(state.message, style="green")
    if not body.plain:
        body.append("Press Space and say something like \"My name is...\"", style="dim")
    return Panel(body, title="Speech", padding=(0, 1))
