"""Tests for voiceform.core.session — listening state machine and classification queue."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import FakeDevice
from voiceform.core.errors import DeviceUnavailable, SessionError
from voiceform.core.session import SessionState, SpeechSession, normalize_transcript
from voiceform.core.types import Intent, Understanding


def _understanding(text: str) -> Understanding:
    return Understanding(Intent.UNKNOWN, (), text)


class Harness:
    """A session wired to a FakeDevice with recorded callbacks."""

    def __init__(self, device: FakeDevice, classify: AsyncMock | None = None) -> None:
        self.device = device
        self.classify = classify or AsyncMock(side_effect=lambda text: _understanding(text))
        self.results: list[Understanding] = []
        self.errors: list[SessionError] = []
        self.interims: list[str] = []
        self.session = SpeechSession(
            lambda: device,
            classify=self.classify,
            on_understanding=self.results.append,
            on_error=self.errors.append,
            on_interim=self.interims.append,
            restart_delay=0.01,
        )

    async def drain(self) -> None:
        await asyncio.wait_for(self.session._queue.join(), timeout=1)


@pytest.fixture
def harness(fake_device: FakeDevice) -> Harness:
    return Harness(fake_device)


class TestNormalizeTranscript:
    def test_collapses_whitespace(self) -> None:
        assert normalize_transcript("  my   name\tis  Bob ") == "my name is Bob"

    def test_strips_wake_word(self) -> None:
        assert normalize_transcript("Hey Siri, my name is Bob") == "my name is Bob"
        assert normalize_transcript("hey computer submit") == "submit"

    def test_keeps_plain_hey(self) -> None:
        assert normalize_transcript("hey there") == "hey there"


class TestStartStop:
    @pytest.mark.asyncio
    async def test_start_listens(self, harness: Harness) -> None:
        assert harness.session.start() is True
        assert harness.session.state is SessionState.LISTENING
        assert harness.device.start_calls == 1
        assert harness.device.listeners == [harness.session]

    @pytest.mark.asyncio
    async def test_start_twice_rejected(self, harness: Harness) -> None:
        harness.session.start()
        assert harness.session.start() is False
        assert harness.device.start_calls == 1

    @pytest.mark.asyncio
    async def test_device_unavailable_propagates(self) -> None:
        def factory():
            raise DeviceUnavailable("no microphone")

        session = SpeechSession(factory, classify=AsyncMock(), on_understanding=MagicMock())
        with pytest.raises(DeviceUnavailable):
            session.start()
        assert session.state is SessionState.IDLE

    @pytest.mark.asyncio
    async def test_device_start_failure(self, harness: Harness) -> None:
        harness.device.fail_start = True
        assert harness.session.start() is False
        assert harness.session.state is SessionState.IDLE
        assert harness.errors[0].code == "start-failed"
        assert harness.errors[0].recoverable is True

    @pytest.mark.asyncio
    async def test_stop(self, harness: Harness) -> None:
        harness.session.start()
        assert harness.session.stop() is True
        assert harness.session.state is SessionState.IDLE
        assert harness.device.stop_calls == 1

    @pytest.mark.asyncio
    async def test_stop_when_idle_rejected(self, harness: Harness) -> None:
        assert harness.session.stop() is False


class TestUtterances:
    @pytest.mark.asyncio
    async def test_interim_only_updates_projection(self, harness: Harness) -> None:
        harness.session.start()
        harness.device.interim("my na")
        assert harness.session.interim == "my na"
        assert harness.interims == ["my na"]
        harness.classify.assert_not_called()

    @pytest.mark.asyncio
    async def test_final_is_normalized_and_classified_once(self, harness: Harness) -> None:
        harness.session.start()
        harness.device.interim("hey siri my")
        harness.device.final("hey siri   my name is Bob")
        await harness.drain()
        harness.classify.assert_awaited_once_with("my name is Bob")
        assert [r.original_text for r in harness.results] == ["my name is Bob"]
        assert harness.session.interim == ""

    @pytest.mark.asyncio
    async def test_empty_final_ignored(self, harness: Harness) -> None:
        harness.session.start()
        harness.device.final("   ")
        harness.device.final("hey alexa")
        assert harness.session.processing is False
        harness.classify.assert_not_called()

    @pytest.mark.asyncio
    async def test_classified_in_order(self, harness: Harness) -> None:
        harness.session.start()
        for text in ("one", "two", "three"):
            harness.device.final(text)
        await harness.drain()
        assert [r.original_text for r in harness.results] == ["one", "two", "three"]

    @pytest.mark.asyncio
    async def test_utterances_ignored_when_idle(self, harness: Harness) -> None:
        harness.device.listeners.append(harness.session)
        harness.device.final("my name is Bob")
        harness.classify.assert_not_called()

    @pytest.mark.asyncio
    async def test_none_result_is_not_delivered(self, fake_device: FakeDevice) -> None:
        harness = Harness(fake_device, classify=AsyncMock(return_value=None))
        harness.session.start()
        harness.device.final("hmm")
        await harness.drain()
        assert harness.results == []


class TestProcessingGate:
    @pytest.mark.asyncio
    async def test_start_stop_rejected_while_processing(self, fake_device: FakeDevice) -> None:
        release = asyncio.Event()

        async def slow(text: str) -> Understanding:
            await release.wait()
            return _understanding(text)

        harness = Harness(fake_device, classify=AsyncMock(side_effect=slow))
        harness.session.start()
        harness.device.final("my name is Bob")
        await asyncio.sleep(0)
        assert harness.session.processing is True
        assert harness.session.stop() is False
        assert harness.session.state is SessionState.LISTENING

        release.set()
        await harness.drain()
        assert harness.session.processing is False
        assert harness.session.stop() is True

    @pytest.mark.asyncio
    async def test_result_dropped_after_explicit_stop(self, fake_device: FakeDevice) -> None:
        release = asyncio.Event()

        async def slow(text: str) -> Understanding:
            await release.wait()
            return _understanding(text)

        harness = Harness(fake_device, classify=AsyncMock(side_effect=slow))
        harness.session.start()
        harness.device.final("my name is Bob")
        await asyncio.sleep(0)
        harness.session.close()
        release.set()
        await harness.drain()
        assert harness.results == []

    @pytest.mark.asyncio
    async def test_result_kept_across_auto_restart(self, harness: Harness) -> None:
        harness.session.start()
        harness.device.final("my name is Bob")
        harness.device.end()
        await asyncio.sleep(0.05)
        await harness.drain()
        assert len(harness.results) == 1
        assert harness.device.start_calls == 2


class TestRestart:
    @pytest.mark.asyncio
    async def test_restarts_after_unsolicited_end(self, harness: Harness) -> None:
        harness.session.start()
        harness.device.end()
        assert harness.device.start_calls == 1
        await asyncio.sleep(0.05)
        assert harness.device.start_calls == 2
        assert harness.session.state is SessionState.LISTENING

    @pytest.mark.asyncio
    async def test_no_restart_after_stop(self, harness: Harness) -> None:
        harness.session.start()
        harness.session.stop()
        harness.device.end()
        await asyncio.sleep(0.05)
        assert harness.device.start_calls == 1

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_restart(self, harness: Harness) -> None:
        harness.session.start()
        harness.device.end()
        harness.session.stop()
        await asyncio.sleep(0.05)
        assert harness.device.start_calls == 1

    @pytest.mark.asyncio
    async def test_restart_failure_goes_idle(self, harness: Harness) -> None:
        harness.session.start()
        harness.device.fail_start = True
        harness.device.end()
        await asyncio.sleep(0.05)
        assert harness.session.state is SessionState.IDLE
        assert harness.errors[-1].code == "restart-failed"
        assert harness.errors[-1].recoverable is True


class TestDeviceErrors:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", ["not-allowed", "audio-capture"])
    async def test_terminal_errors(self, harness: Harness, code: str) -> None:
        harness.session.start()
        harness.device.error(code)
        harness.device.end()
        await asyncio.sleep(0.05)
        assert harness.session.state is SessionState.IDLE
        assert harness.errors[-1].code == code
        assert harness.errors[-1].recoverable is False
        assert harness.device.start_calls == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", ["no-speech", "network"])
    async def test_recoverable_errors(self, harness: Harness, code: str) -> None:
        harness.session.start()
        harness.device.error(code)
        assert harness.session.state is SessionState.LISTENING
        assert harness.errors[-1].code == code
        assert harness.errors[-1].recoverable is True

    @pytest.mark.asyncio
    async def test_aborted_suppressed(self, harness: Harness) -> None:
        harness.session.start()
        harness.device.error("aborted")
        assert harness.errors == []
        assert harness.session.state is SessionState.LISTENING


class TestShutdown:
    @pytest.mark.asyncio
    async def test_aclose_waits_for_worker(self, harness: Harness) -> None:
        harness.session.start()
        harness.device.final("submit")
        await harness.session.aclose()
        assert harness.session.state is SessionState.IDLE
        assert harness.session._worker is not None
        assert harness.session._worker.done()
