"""Contracts for the speech, dialog and audio boundaries."""

from __future__ import annotations

from pathlib import Path
from typing import Any, AsyncIterator, Protocol

from voicebot.models import DialogReply, TranscriptEvent


class CaptureStream(Protocol):
    """Continuous microphone capture producing recognized-text events."""

    def __aiter__(self) -> AsyncIterator[TranscriptEvent]:
        """Iterate transcripts until the process exits."""

    @property
    def paused(self) -> bool:
        """Whether captured audio is currently being dropped."""

    def pause(self) -> None:
        """Stop forwarding microphone audio to the recognizer."""

    def resume(self) -> None:
        """Forward microphone audio again."""


class DialogService(Protocol):
    """Round-trips an utterance and the opaque session context."""

    def message(self, text: str, context: dict[str, Any]) -> DialogReply:
        """Return the updated context and optional reply text."""


class SpeechSynthesizer(Protocol):
    """Converts text responses into encoded audio."""

    def synthesize(self, text: str) -> bytes:
        """Return encoded audio bytes for the given text."""


class DurationProbe(Protocol):
    def probe(self, path: Path) -> float:
        """Return the playback duration of an audio file in seconds."""


class AudioPlayer(Protocol):
    def play(self, path: Path) -> None:
        """Start playing an audio file without waiting for it to finish."""
