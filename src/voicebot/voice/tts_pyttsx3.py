"""Text-to-speech backend powered by ``pyttsx3``."""

from __future__ import annotations

import tempfile
from pathlib import Path

_INSTALL_HINT = "Install extras with: pip install 'voicebot[voice]'"


class Pyttsx3SpeechSynthesizer:
    """Render speech with a local pyttsx3 engine into WAV bytes."""

    def __init__(self, *, voice_id: str | None = None, rate: int | None = None, volume: float | None = None) -> None:
        try:
            import pyttsx3
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(f"Voice TTS backend unavailable. {_INSTALL_HINT}") from exc

        self._engine = pyttsx3.init()
        if voice_id:
            self._engine.setProperty("voice", voice_id)
        if rate is not None:
            self._engine.setProperty("rate", rate)
        if volume is not None:
            clamped = max(0.0, min(1.0, volume))
            self._engine.setProperty("volume", clamped)

    def synthesize(self, text: str) -> bytes:
        with tempfile.TemporaryDirectory(prefix="voicebot-tts-") as workdir:
            target = Path(workdir) / "speech.wav"
            self._engine.save_to_file(text, str(target))
            self._engine.runAndWait()
            return target.read_bytes()
