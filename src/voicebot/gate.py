"""Wake/sleep gating of recognized speech."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable

from voicebot.models import SessionState


@dataclass(frozen=True, slots=True)
class GateDecision:
    forward: bool
    session: SessionState


class WakeSleepGate:
    """Decides whether an utterance reaches the dialog service.

    The bot starts asleep. While asleep only utterances containing the wake
    phrase (case-insensitive substring) are forwarded, and they wake it up.
    While awake every utterance is forwarded and restarts the idle timer; once
    the session has been idle for ``sleep_timeout_seconds`` or longer it falls
    asleep again. The dialog context is left untouched when the bot sleeps, so
    a later conversation continues the previous dialog.
    """

    def __init__(
        self,
        wake_phrase: str,
        sleep_timeout_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        logger: logging.Logger | None = None,
    ) -> None:
        self._wake_phrase = wake_phrase.strip().lower()
        self._sleep_timeout_seconds = sleep_timeout_seconds
        self._clock = clock
        self._logger = logger or logging.getLogger("voicebot.gate")

    @property
    def wake_phrase(self) -> str:
        return self._wake_phrase

    @property
    def sleep_timeout_seconds(self) -> float:
        return self._sleep_timeout_seconds

    def new_session(self) -> SessionState:
        """Initial asleep session stamped with the current clock."""
        return SessionState(active=False, last_activity=self._clock())

    def should_forward(self, session: SessionState, text: str, now: float | None = None) -> GateDecision:
        """Evaluate ``text`` against ``session`` and return the verdict plus the updated session."""
        now = self._clock() if now is None else now

        if session.active and now - session.last_activity >= self._sleep_timeout_seconds:
            session = replace(session, active=False, last_activity=now)
            self._logger.info("bot_fell_asleep", extra={"idle_seconds": self._sleep_timeout_seconds})

        if session.active:
            return GateDecision(forward=True, session=replace(session, last_activity=now))

        if self._contains_wake_phrase(text):
            self._logger.info("bot_woke_up", extra={"utterance": text})
            return GateDecision(forward=True, session=replace(session, active=True, last_activity=now))

        self._logger.info("wake_phrase_required", extra={"wake_phrase": self._wake_phrase})
        return GateDecision(forward=False, session=session)

    def _contains_wake_phrase(self, text: str) -> bool:
        return bool(self._wake_phrase) and self._wake_phrase in text.lower()
