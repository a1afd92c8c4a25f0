from __future__ import annotations

import asyncio
import threading
import time
from pathlib import Path

from voicebot.gate import WakeSleepGate
from voicebot.models import DialogReply, TurnStatus
from voicebot.turns import TurnTakingController


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class StubCapture:
    def __init__(self) -> None:
        self.paused = False
        self.pause_calls = 0
        self.resume_calls = 0

    def pause(self) -> None:
        self.paused = True
        self.pause_calls += 1

    def resume(self) -> None:
        self.paused = False
        self.resume_calls += 1


class StubDialog:
    def __init__(self, reply: str | None = "It is noon.", fail: bool = False, delays: dict[str, float] | None = None):
        self.reply = reply
        self.fail = fail
        self.delays = delays or {}
        self.calls: list[tuple[str, dict]] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def message(self, text: str, context: dict) -> DialogReply:
        with self._lock:
            self.calls.append((text, dict(context)))
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            time.sleep(self.delays.get(text, 0.0))
            if self.fail:
                raise RuntimeError("assistant unavailable")
            return DialogReply(context={"last": text, "turns": len(self.calls)}, text=self.reply)
        finally:
            with self._lock:
                self.active -= 1


class StubSynthesizer:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[str] = []

    def synthesize(self, text: str) -> bytes:
        self.calls.append(text)
        if self.fail:
            raise RuntimeError("tts unavailable")
        return b"RIFF-fake-audio"


class StubProbe:
    def __init__(self, durations: list[float] | None = None, fail: bool = False) -> None:
        self.durations = list(durations or [3.2])
        self.fail = fail
        self.calls: list[Path] = []

    def probe(self, path: Path) -> float:
        self.calls.append(path)
        if self.fail:
            raise RuntimeError("not an audio file")
        return self.durations.pop(0) if len(self.durations) > 1 else self.durations[0]


class StubPlayer:
    def __init__(self) -> None:
        self.played: list[Path] = []
        self.threads: list[int] = []

    def play(self, path: Path) -> None:
        assert path.exists()
        self.played.append(path)
        self.threads.append(threading.get_ident())


def _controller(
    tmp_path: Path,
    *,
    dialog: StubDialog | None = None,
    synthesizer: StubSynthesizer | None = None,
    probe: StubProbe | None = None,
    clock: FakeClock | None = None,
    serialize_turns: bool = False,
):
    clock = clock or FakeClock()
    capture = StubCapture()
    player = StubPlayer()
    controller = TurnTakingController(
        gate=WakeSleepGate("hey watson", 10.0, clock=clock),
        dialog=dialog or StubDialog(),
        synthesizer=synthesizer or StubSynthesizer(),
        probe=probe or StubProbe(),
        player=player,
        capture=capture,
        artifact_dir=tmp_path,
        serialize_turns=serialize_turns,
        clock=clock,
    )
    return controller, capture, player


def test_utterance_while_asleep_is_discarded(tmp_path: Path) -> None:
    dialog = StubDialog()
    controller, capture, _ = _controller(tmp_path, dialog=dialog)

    record = asyncio.run(controller.on_utterance("what time is it"))

    assert record.status == TurnStatus.DISCARDED
    assert dialog.calls == []
    assert controller.session.active is False
    assert capture.pause_calls == 0


def test_reply_mutes_capture_and_schedules_resume_after_duration(tmp_path: Path) -> None:
    controller, capture, player = _controller(tmp_path, probe=StubProbe([3.2]))

    async def _run():
        before = asyncio.get_running_loop().time()
        record = await controller.on_utterance("hey watson what time is it")
        delay = controller.resume_at - before
        muted = capture.paused
        controller.close()
        return record, delay, muted

    record, delay, muted = asyncio.run(_run())

    assert record.status == TurnStatus.PLAYED
    assert record.reply_text == "It is noon."
    assert record.duration_seconds == 3.2
    assert muted is True
    assert 3.2 <= delay < 3.7
    assert len(player.played) == 1
    assert controller.turn_state.pending_playback_duration is None


def test_capture_resumes_and_activity_is_refreshed_at_resume_time(tmp_path: Path) -> None:
    clock = FakeClock(now=100.0)
    controller, capture, player = _controller(tmp_path, probe=StubProbe([0.05]), clock=clock)

    async def _run() -> None:
        await controller.on_utterance("hey watson hello")
        assert capture.paused is True
        clock.now = 104.0
        await asyncio.sleep(0.2)

    asyncio.run(_run())

    assert capture.paused is False
    assert capture.resume_calls == 1
    assert controller.resume_at is None
    assert controller.session.last_activity == 104.0
    assert not player.played[0].exists()


def test_dialog_failure_leaves_context_and_capture_untouched(tmp_path: Path) -> None:
    dialog = StubDialog()
    synthesizer = StubSynthesizer()
    controller, capture, _ = _controller(tmp_path, dialog=dialog, synthesizer=synthesizer, probe=StubProbe([0.01]))

    async def _run():
        await controller.on_utterance("hey watson hi")
        await asyncio.sleep(0.05)
        context_before = controller.session.dialog_context
        dialog.fail = True
        synthesizer.calls.clear()
        pauses_before = capture.pause_calls
        record = await controller.on_utterance("and now?")
        return record, context_before, pauses_before

    record, context_before, pauses_before = asyncio.run(_run())

    assert record.status == TurnStatus.DIALOG_FAILED
    assert "assistant unavailable" in (record.error or "")
    assert synthesizer.calls == []
    assert controller.session.dialog_context == context_before
    assert capture.pause_calls == pauses_before
    assert controller.resume_at is None


def test_missing_reply_text_still_replaces_context(tmp_path: Path) -> None:
    synthesizer = StubSynthesizer()
    controller, capture, _ = _controller(tmp_path, dialog=StubDialog(reply=None), synthesizer=synthesizer)

    record = asyncio.run(controller.on_utterance("hey watson"))

    assert record.status == TurnStatus.NO_REPLY
    assert controller.session.dialog_context == {"last": "hey watson", "turns": 1}
    assert synthesizer.calls == []
    assert capture.pause_calls == 0


def test_synthesis_failure_plays_nothing(tmp_path: Path) -> None:
    probe = StubProbe()
    controller, capture, player = _controller(tmp_path, synthesizer=StubSynthesizer(fail=True), probe=probe)

    record = asyncio.run(controller.on_utterance("hey watson sing"))

    assert record.status == TurnStatus.SYNTHESIS_FAILED
    assert controller.session.dialog_context["last"] == "hey watson sing"
    assert probe.calls == []
    assert player.played == []
    assert capture.paused is False


def test_probe_failure_skips_mute_and_playback(tmp_path: Path) -> None:
    probe = StubProbe(fail=True)
    controller, capture, player = _controller(tmp_path, probe=probe)

    record = asyncio.run(controller.on_utterance("hey watson hi"))

    assert record.status == TurnStatus.PROBE_FAILED
    assert capture.pause_calls == 0
    assert player.played == []
    assert controller.resume_at is None
    assert not probe.calls[0].exists()


def test_overlapping_replies_merge_into_one_mute_interval(tmp_path: Path) -> None:
    controller, capture, player = _controller(tmp_path, probe=StubProbe([1.0, 3.0]))
    first = tmp_path / "first.wav"
    second = tmp_path / "second.wav"
    first.write_bytes(b"one")
    second.write_bytes(b"two")

    async def _run() -> tuple[float, float]:
        loop = asyncio.get_running_loop()
        await controller.on_reply_ready(first)
        first_resume = controller.resume_at
        await controller.on_reply_ready(second)
        second_resume = controller.resume_at
        controller.close()
        return first_resume - loop.time(), second_resume - loop.time()

    first_delay, second_delay = asyncio.run(_run())

    assert capture.pause_calls == 1
    assert first_delay <= 1.0
    assert 2.5 < second_delay <= 3.0
    assert player.played == [first, second]
    assert capture.paused is False
    assert not first.exists() and not second.exists()


def test_shorter_second_reply_does_not_cut_first_mute_short(tmp_path: Path) -> None:
    controller, _, _ = _controller(tmp_path, probe=StubProbe([5.0, 0.5]))
    first = tmp_path / "first.wav"
    second = tmp_path / "second.wav"
    first.write_bytes(b"one")
    second.write_bytes(b"two")

    async def _run() -> tuple[float, float]:
        await controller.on_reply_ready(first)
        first_resume = controller.resume_at
        await controller.on_reply_ready(second)
        second_resume = controller.resume_at
        controller.close()
        return first_resume, second_resume

    first_resume, second_resume = asyncio.run(_run())

    assert second_resume == first_resume


def test_unserialized_turns_overlap_and_slow_reply_wins_context(tmp_path: Path) -> None:
    dialog = StubDialog(reply=None, delays={"hey watson slow": 0.3, "fast": 0.01})
    controller, _, _ = _controller(tmp_path, dialog=dialog)

    async def _run() -> None:
        slow = asyncio.create_task(controller.on_utterance("hey watson slow"))
        await asyncio.sleep(0.05)
        fast = asyncio.create_task(controller.on_utterance("fast"))
        await asyncio.gather(slow, fast)

    asyncio.run(_run())

    assert dialog.max_active == 2
    assert controller.session.dialog_context["last"] == "hey watson slow"


def test_serialized_turns_run_one_at_a_time(tmp_path: Path) -> None:
    dialog = StubDialog(reply=None, delays={"hey watson slow": 0.2, "fast": 0.01})
    controller, _, _ = _controller(tmp_path, dialog=dialog, serialize_turns=True)

    async def _run() -> None:
        slow = asyncio.create_task(controller.on_utterance("hey watson slow"))
        await asyncio.sleep(0.05)
        fast = asyncio.create_task(controller.on_utterance("fast"))
        await asyncio.gather(slow, fast)

    asyncio.run(_run())

    assert dialog.max_active == 1
    assert dialog.calls[1] == ("fast", {"last": "hey watson slow", "turns": 1})
    assert controller.session.dialog_context["last"] == "fast"


def test_playback_runs_off_the_event_loop_thread(tmp_path: Path) -> None:
    controller, _, player = _controller(tmp_path, probe=StubProbe([2.0]))

    async def _run() -> int:
        await controller.on_utterance("hey watson play something")
        controller.close()
        return threading.get_ident()

    loop_thread = asyncio.run(_run())

    assert len(player.threads) == 1
    assert player.threads[0] != loop_thread
