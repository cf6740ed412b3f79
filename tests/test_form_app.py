"""Tests for voiceform.apps.form_app — API status handling, AI toggle, submit and typed edits."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest
from textual.widgets import Input

from conftest import FakeDevice, completion_response
from voiceform.apps.form import INVALID_EMAIL
from voiceform.apps.form_app import FieldEditScreen, VoiceFormApp
from voiceform.core.constants import SUBMIT_NAVIGATION_DELAY
from voiceform.core.ratelimit import RateLimitController
from voiceform.core.types import ApiStatus, FieldKind, SubmissionRecord
from voiceform.core.understanding import UnderstandingService


def _app(
    rate_limiter: RateLimitController,
    device: FakeDevice,
    completion: AsyncMock | None = None,
) -> VoiceFormApp:
    service = UnderstandingService(
        model="test/model",
        rate_limiter=rate_limiter,
        completion=completion or AsyncMock(return_value=completion_response({})),
    )
    return VoiceFormApp(service, lambda: device, probe_interval=3600, restart_delay=0.01)


async def _settle(app: VoiceFormApp, pilot) -> None:
    await app.workers.wait_for_complete()
    await pilot.pause()


class TestApiStatus:
    @pytest.mark.asyncio
    async def test_probe_on_mount(self, rate_limiter, fake_device) -> None:
        app = _app(rate_limiter, fake_device)
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            assert app.api_status is ApiStatus.AVAILABLE
            assert app._service.use_ai is True

    @pytest.mark.asyncio
    async def test_unavailable_forces_ai_off_until_available(self, rate_limiter, fake_device) -> None:
        app = _app(rate_limiter, fake_device, AsyncMock(side_effect=RuntimeError("offline")))
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            assert app.api_status is ApiStatus.UNAVAILABLE
            assert app._service.use_ai is False

            app.apply_api_status(ApiStatus.AVAILABLE)
            assert app._service.use_ai is True

    @pytest.mark.asyncio
    async def test_toggle_refused_while_unavailable(self, rate_limiter, fake_device) -> None:
        app = _app(rate_limiter, fake_device, AsyncMock(side_effect=RuntimeError("offline")))
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            await pilot.press("a")
            assert app._service.use_ai is False

    @pytest.mark.asyncio
    async def test_available_keeps_manual_off(self, rate_limiter, fake_device) -> None:
        app = _app(rate_limiter, fake_device)
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            await pilot.press("a")
            assert app._service.use_ai is False
            app.apply_api_status(ApiStatus.AVAILABLE)
            assert app._service.use_ai is False


class TestSubmit:
    @pytest.mark.asyncio
    async def test_key_submit_exits_with_record_after_delay(self, rate_limiter, fake_device) -> None:
        app = _app(rate_limiter, fake_device)
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            app.form.set_field(FieldKind.NAME, " Bob ")
            await pilot.press("space")
            assert app.session.listening is True

            await pilot.press("s")
            assert app.session.listening is False
            assert app.return_value is None
            await asyncio.sleep(SUBMIT_NAVIGATION_DELAY + 0.2)
        assert app.return_value == SubmissionRecord(name="Bob")

    @pytest.mark.asyncio
    async def test_spoken_submit(self, rate_limiter, fake_device) -> None:
        completion = AsyncMock(
            return_value=completion_response({"name": {"value": "Bob", "confidence": 0.9}})
        )
        app = _app(rate_limiter, fake_device, completion)
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            await pilot.press("space")
            fake_device.final("my name is Bob")
            fake_device.final("submit")
            await asyncio.wait_for(app.session._queue.join(), timeout=1)
            assert app.form.values[FieldKind.NAME] == "Bob"
            assert app.session.listening is False
            await asyncio.sleep(SUBMIT_NAVIGATION_DELAY + 0.2)
        assert app.return_value == SubmissionRecord(name="Bob")

    @pytest.mark.asyncio
    async def test_empty_form_stays_open(self, rate_limiter, fake_device) -> None:
        app = _app(rate_limiter, fake_device)
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            await pilot.press("s")
            await asyncio.sleep(SUBMIT_NAVIGATION_DELAY + 0.2)
            assert app.return_value is None
            assert app.is_running


class TestTypedEdits:
    @pytest.mark.asyncio
    async def test_tab_moves_marker(self, rate_limiter, fake_device) -> None:
        app = _app(rate_limiter, fake_device)
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            await pilot.press("tab")
            assert app.form.active_field is FieldKind.NAME
            await pilot.press("tab", "tab", "tab", "tab")
            assert app.form.active_field is FieldKind.NAME

    @pytest.mark.asyncio
    async def test_edit_marked_field(self, rate_limiter, fake_device) -> None:
        app = _app(rate_limiter, fake_device)
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            await pilot.press("tab", "tab", "e")
            await pilot.pause()
            assert isinstance(app.screen, FieldEditScreen)

            app.screen.query_one(Input).value = "bob@x.com"
            await pilot.press("enter")
            await pilot.pause()
            assert not isinstance(app.screen, FieldEditScreen)
            assert app.form.values[FieldKind.EMAIL] == "bob@x.com"
            assert FieldKind.EMAIL not in app.form.errors

    @pytest.mark.asyncio
    async def test_typed_value_is_validated(self, rate_limiter, fake_device) -> None:
        app = _app(rate_limiter, fake_device)
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            app.edit_field(FieldKind.EMAIL, "bob at x")
            assert app.form.errors[FieldKind.EMAIL] == INVALID_EMAIL

    @pytest.mark.asyncio
    async def test_escape_cancels(self, rate_limiter, fake_device) -> None:
        app = _app(rate_limiter, fake_device)
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            app.form.set_field(FieldKind.NAME, "Bob")
            await pilot.press("e")
            await pilot.pause()
            app.screen.query_one(Input).value = "Robert"
            await pilot.press("escape")
            await pilot.pause()
            assert not isinstance(app.screen, FieldEditScreen)
            assert app.form.values[FieldKind.NAME] == "Bob"

    @pytest.mark.asyncio
    async def test_letters_go_to_the_editor(self, rate_limiter, fake_device) -> None:
        app = _app(rate_limiter, fake_device)
        async with app.run_test() as pilot:
            await _settle(app, pilot)
            await pilot.press("e")
            await pilot.pause()
            await pilot.press("s", "a")
            assert app.screen.query_one(Input).value == "sa"
            assert app._service.use_ai is True
            assert app.return_value is None
