"""CLI entry point for voiceform.

Parses arguments, configures logging, and launches the form app or one of
the one-shot subcommands. setup_environment() is called before anything
imports litellm so its banners stay out of the terminal UI.

Subcommands:
    (none)   voice form TUI; prints the submitted record as JSON
    analyze  classify typed text as if it had been spoken
    probe    report generative backend availability
"""

import argparse
import dataclasses
import json
import logging
import os

from voiceform.core.types import FieldKind


def _add_backend_args(parser: argparse.ArgumentParser) -> None:
    """Add backend arguments shared across subcommands."""
    parser.add_argument(
        "--model",
        default=None,
        help="litellm model for understanding (default: config or gemini/gemini-1.5-pro)",
    )
    parser.add_argument(
        "--no-ai",
        action="store_true",
        help="Skip the generative backend and use pattern matching only",
    )
    parser.add_argument(
        "--config-file",
        default=None,
        help="JSON config file (default: ~/.config/voiceform/config.json)",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with subcommand support."""
    parser = argparse.ArgumentParser(
        description="Fill in a contact form by voice"
    )
    _add_backend_args(parser)
    parser.add_argument(
        "--asr-model", default=None, help="litellm speech-to-text model"
    )
    parser.add_argument(
        "--language", default=None, help="Recognition language (e.g. en)"
    )
    parser.add_argument(
        "--device", type=int, default=None, help="Audio input device"
    )
    parser.add_argument(
        "--list-devices", action="store_true", help="List audio devices"
    )

    subparsers = parser.add_subparsers(dest="subcommand")

    # `voiceform analyze`
    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Classify typed text as if it had been spoken",
    )
    _add_backend_args(analyze_parser)
    analyze_parser.add_argument("text", nargs="+", help="Utterance text")
    analyze_parser.add_argument(
        "--field",
        choices=[kind.value for kind in FieldKind],
        default=None,
        help="Sanitize the text as a value for this field instead",
    )

    # `voiceform probe`
    probe_parser = subparsers.add_parser(
        "probe", help="Check whether the generative backend is reachable"
    )
    _add_backend_args(probe_parser)
    return parser


def _load(args: argparse.Namespace, parser: argparse.ArgumentParser):
    """Load the config file and apply CLI overrides."""
    from voiceform.apps.config import load_config
    from voiceform.core.errors import ConfigError

    try:
        config = load_config(args.config_file)
    except ConfigError as exc:
        parser.error(str(exc))

    backend = config.backend
    if args.model:
        backend = dataclasses.replace(backend, model=args.model)
    if args.no_ai:
        backend = dataclasses.replace(backend, use_ai=False)

    recognition = config.recognition
    overrides = {
        "asr_model": getattr(args, "asr_model", None),
        "language": getattr(args, "language", None),
        "device": getattr(args, "device", None),
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        recognition = dataclasses.replace(recognition, **overrides)

    return dataclasses.replace(config, backend=backend, recognition=recognition)


def understanding_as_dict(understanding) -> dict:
    return {
        "intent": understanding.intent.value,
        "detected_fields": [
            {"field": f.field.value, "value": f.value, "confidence": f.confidence}
            for f in understanding.detected_fields
        ],
        "original_text": understanding.original_text,
        "from_ai": understanding.from_ai,
    }


def list_audio_devices() -> int:
    """Display available audio input devices."""
    from rich.console import Console
    from rich.table import Table

    from voiceform.audio.microphone import list_input_devices
    from voiceform.core.env import LOGGER
    from voiceform.core.errors import DeviceUnavailable

    try:
        devices = list_input_devices()
    except DeviceUnavailable as exc:
        LOGGER.error("%s", exc)
        return 1

    table = Table(title="Audio Input Devices")
    table.add_column("ID", style="cyan")
    table.add_column("Device", style="white")
    table.add_column("Default", style="green")
    for device in devices:
        table.add_row(str(device.index), device.name, "Yes" if device.is_default else "")
    Console().print(table)
    return 0


def _run_analyze(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    """Run one utterance through UnderstandingService and print the result."""
    import asyncio

    from rich.console import Console

    from voiceform.core.understanding import UnderstandingService

    config = _load(args, parser)
    service = UnderstandingService.from_config(config.backend)
    text = " ".join(args.text)
    console = Console()

    if args.field:
        result = asyncio.run(service.sanitize_field(FieldKind(args.field), text))
        console.print_json(
            json.dumps(
                {"field": result.field.value, "value": result.value, "from_ai": result.from_ai}
            )
        )
        return 0

    understanding = asyncio.run(service.understand(text))
    if understanding is None:
        parser.error("nothing to analyze")
    console.print_json(json.dumps(understanding_as_dict(understanding)))
    return 0


def _run_probe(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    """Send the availability probe and print the API status."""
    import asyncio

    from rich.console import Console

    from voiceform.core.understanding import UnderstandingService

    config = _load(args, parser)
    service = UnderstandingService.from_config(config.backend)
    status = asyncio.run(service.probe())
    Console().print(f"{config.backend.model or '--'}: {status.value}")
    return 0


def _run_app(args: argparse.Namespace, parser: argparse.ArgumentParser, log_level: str) -> int:
    """Run the voice form TUI and print the submitted record."""
    from rich.console import Console

    from voiceform.apps.form_app import VoiceFormApp
    from voiceform.audio.microphone import open_microphone
    from voiceform.core.env import LOGGER
    from voiceform.core.errors import DeviceUnavailable
    from voiceform.core.understanding import UnderstandingService

    config = _load(args, parser)
    try:
        device = open_microphone(config.recognition)
    except DeviceUnavailable as exc:
        LOGGER.error("Speech recognition is not available: %s", exc)
        return 1

    # The TUI owns the terminal; keep log records off it unless debugging.
    if log_level != "DEBUG":
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
        root.addHandler(logging.NullHandler())

    app = VoiceFormApp(
        UnderstandingService.from_config(config.backend),
        device_factory=lambda: device,
        probe_interval=config.backend.probe_interval,
        wake_words=config.recognition.wake_words,
    )
    record = app.run()
    if record is not None:
        Console().print_json(json.dumps(record.as_dict()))
    return 0


def main() -> int:
    """CLI entry point. Returns exit code."""
    from voiceform.core.env import quiet_third_party_loggers, setup_environment

    setup_environment()

    from rich.console import Console
    from rich.logging import RichHandler

    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=Console(stderr=True),
                show_time=False,
                show_path=False,
                rich_tracebacks=False,
            )
        ],
    )
    quiet_third_party_loggers()

    parser = build_arg_parser()
    args = parser.parse_args()

    if args.list_devices:
        return list_audio_devices()

    if args.subcommand == "analyze":
        return _run_analyze(args, parser)
    if args.subcommand == "probe":
        return _run_probe(args, parser)

    return _run_app(args, parser, log_level)
