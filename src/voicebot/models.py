from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class WakeState(str, Enum):
    """Whether recognized speech is currently forwarded to the dialog service."""

    ASLEEP = "asleep"
    AWAKE = "awake"


@dataclass(frozen=True, slots=True)
class SessionState:
    """Conversation session threaded through each turn; replaced, never mutated."""

    active: bool = False
    last_activity: float = 0.0
    dialog_context: dict[str, Any] = field(default_factory=dict)

    @property
    def wake_state(self) -> WakeState:
        return WakeState.AWAKE if self.active else WakeState.ASLEEP


@dataclass(slots=True)
class TurnState:
    """Holds the rendered duration of a reply until its resume is scheduled."""

    pending_playback_duration: float | None = None

    def take(self) -> float | None:
        """Return the pending duration and clear it."""
        duration, self.pending_playback_duration = self.pending_playback_duration, None
        return duration


@dataclass(frozen=True, slots=True)
class DialogReply:
    context: dict[str, Any]
    text: str | None = None


@dataclass(frozen=True, slots=True)
class TranscriptEvent:
    text: str
    final: bool = True


class TurnStatus(str, Enum):
    """How a single utterance-in, reply-out cycle ended."""

    DISCARDED = "discarded"
    NO_REPLY = "no_reply"
    DIALOG_FAILED = "dialog_failed"
    SYNTHESIS_FAILED = "synthesis_failed"
    PROBE_FAILED = "probe_failed"
    PLAYED = "played"


@dataclass(slots=True)
class TurnRecord:
    utterance: str
    status: TurnStatus
    reply_text: str | None = None
    duration_seconds: float | None = None
    error: str | None = None
