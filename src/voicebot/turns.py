"""Turn-taking between the listener and the spoken reply."""

from __future__ import annotations

import asyncio
import logging
import tempfile
import time
from dataclasses import replace
from pathlib import Path
from typing import Callable

from voicebot.gate import WakeSleepGate
from voicebot.models import SessionState, TurnRecord, TurnState, TurnStatus
from voicebot.voice.interfaces import AudioPlayer, CaptureStream, DialogService, DurationProbe, SpeechSynthesizer


class TurnTakingController:
    """Runs one dialog turn per accepted utterance and mutes capture while the reply plays.

    A turn is: gate check, dialog round-trip, speech synthesis, persisting the
    audio to a transient file, probing its duration, then muting capture and
    starting playback. Capture resumes once the probed duration has elapsed,
    measured from the moment capture was muted, and the session's activity
    timestamp is refreshed at that point so the awake window covers the reply.

    Service failures end the turn silently apart from logging; nothing is
    retried and nothing is rolled back. By default overlapping turns are not
    serialized, so a slow reply can overwrite the dialog context produced by a
    later one; pass ``serialize_turns=True`` to run turns one at a time.
    """

    def __init__(
        self,
        *,
        gate: WakeSleepGate,
        dialog: DialogService,
        synthesizer: SpeechSynthesizer,
        probe: DurationProbe,
        player: AudioPlayer,
        capture: CaptureStream,
        artifact_dir: str | Path | None = None,
        artifact_suffix: str = ".wav",
        serialize_turns: bool = False,
        clock: Callable[[], float] = time.monotonic,
        logger: logging.Logger | None = None,
    ) -> None:
        self._gate = gate
        self._dialog = dialog
        self._synthesizer = synthesizer
        self._probe = probe
        self._player = player
        self._capture = capture
        self._artifact_dir = Path(artifact_dir) if artifact_dir else None
        if self._artifact_dir:
            self._artifact_dir.mkdir(parents=True, exist_ok=True)
        self._artifact_suffix = artifact_suffix
        self._clock = clock
        self._logger = logger or logging.getLogger("voicebot.turns")

        self._session: SessionState = gate.new_session()
        self._turn_state = TurnState()
        self._turn_lock = asyncio.Lock() if serialize_turns else None
        self._resume_handle: asyncio.TimerHandle | None = None
        self._played_artifacts: list[Path] = []

    @property
    def session(self) -> SessionState:
        return self._session

    @property
    def turn_state(self) -> TurnState:
        return self._turn_state

    @property
    def muted(self) -> bool:
        return self._capture.paused

    @property
    def resume_at(self) -> float | None:
        """Event-loop time at which capture is scheduled to resume."""
        return self._resume_handle.when() if self._resume_handle else None

    async def on_utterance(self, text: str) -> TurnRecord:
        """Gate ``text`` and, when forwarded, run a full dialog turn for it."""
        decision = self._gate.should_forward(self._session, text, now=self._clock())
        self._session = decision.session
        if not decision.forward:
            return TurnRecord(utterance=text, status=TurnStatus.DISCARDED)

        if self._turn_lock is None:
            return await self._run_turn(text)
        async with self._turn_lock:
            return await self._run_turn(text)

    async def on_reply_ready(self, artifact: Path) -> float | None:
        """Probe rendered reply audio, then mute capture and play it.

        Returns the probed duration, or ``None`` when probing failed and the
        reply was skipped with capture left running.
        """
        try:
            duration = await asyncio.to_thread(self._probe.probe, artifact)
        except Exception:  # noqa: BLE001 - a failed probe only skips this reply.
            self._logger.exception("duration_probe_failed", extra={"artifact": str(artifact)})
            artifact.unlink(missing_ok=True)
            return None

        self._turn_state.pending_playback_duration = duration
        await self._mute_and_play(artifact)
        return duration

    def close(self) -> None:
        """Cancel a pending resume, unmute capture and remove reply audio."""
        if self._resume_handle is not None:
            self._resume_handle.cancel()
            self._resume_handle = None
            self._capture.resume()
        self._remove_played_artifacts()

    async def _run_turn(self, text: str) -> TurnRecord:
        try:
            reply = await asyncio.to_thread(self._dialog.message, text, self._session.dialog_context)
        except Exception as exc:  # noqa: BLE001 - dialog errors end the turn silently.
            self._logger.exception("dialog_failed", extra={"utterance": text})
            return TurnRecord(utterance=text, status=TurnStatus.DIALOG_FAILED, error=f"{type(exc).__name__}: {exc}")

        self._session = replace(self._session, dialog_context=reply.context)
        if not reply.text:
            self._logger.info("dialog_without_reply", extra={"utterance": text})
            return TurnRecord(utterance=text, status=TurnStatus.NO_REPLY)

        self._logger.info("bot_says", extra={"reply": reply.text})
        try:
            audio = await asyncio.to_thread(self._synthesizer.synthesize, reply.text)
            artifact = await asyncio.to_thread(self._persist, audio)
        except Exception as exc:  # noqa: BLE001 - synthesis errors end the turn silently.
            self._logger.exception("synthesis_failed", extra={"reply": reply.text})
            return TurnRecord(
                utterance=text,
                status=TurnStatus.SYNTHESIS_FAILED,
                reply_text=reply.text,
                error=f"{type(exc).__name__}: {exc}",
            )

        duration = await self.on_reply_ready(artifact)
        if duration is None:
            return TurnRecord(utterance=text, status=TurnStatus.PROBE_FAILED, reply_text=reply.text)
        return TurnRecord(utterance=text, status=TurnStatus.PLAYED, reply_text=reply.text, duration_seconds=duration)

    def _persist(self, audio: bytes) -> Path:
        with tempfile.NamedTemporaryFile(
            prefix="voicebot-reply-",
            suffix=self._artifact_suffix,
            dir=self._artifact_dir,
            delete=False,
        ) as handle:
            handle.write(audio)
        return Path(handle.name)

    async def _mute_and_play(self, artifact: Path) -> None:
        loop = asyncio.get_running_loop()
        mute_started = loop.time()
        duration = self._turn_state.take() or 0.0
        resume_at = mute_started + duration

        if self._resume_handle is not None:
            # Still muted for an earlier reply: stretch that interval instead of opening a second one.
            resume_at = max(resume_at, self._resume_handle.when())
            self._resume_handle.cancel()
            self._logger.info("mute_extended", extra={"duration_seconds": duration})
        else:
            self._capture.pause()
            self._logger.info("capture_muted", extra={"duration_seconds": duration})

        self._resume_handle = loop.call_at(resume_at, self._resume_after_reply)
        try:
            await asyncio.to_thread(self._player.play, artifact)
        except Exception:  # noqa: BLE001 - capture still resumes on schedule.
            self._logger.exception("playback_failed", extra={"artifact": str(artifact)})

        # The player has decoded the file by now; it is removed at the next resume.
        if self._resume_handle is None:
            artifact.unlink(missing_ok=True)
        else:
            self._played_artifacts.append(artifact)

    def _resume_after_reply(self) -> None:
        self._resume_handle = None
        self._capture.resume()
        self._session = replace(self._session, last_activity=self._clock())
        self._remove_played_artifacts()

    def _remove_played_artifacts(self) -> None:
        for artifact in self._played_artifacts:
            artifact.unlink(missing_ok=True)
        self._played_artifacts.clear()
