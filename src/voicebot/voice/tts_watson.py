"""Text-to-speech backend powered by Watson Text to Speech."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from voicebot.watson_auth import iam_authenticator


@dataclass(slots=True)
class WatsonSpeechSynthesizer:
    """Render reply text to encoded audio with a Watson voice."""

    voice: str = "en-US_AllisonVoice"
    accept: str = "audio/wav"
    apikey: str | None = None
    url: str | None = None
    client: Any = None

    def __post_init__(self) -> None:
        if self.client is not None:
            return
        try:
            from ibm_watson import TextToSpeechV1
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError("Watson TTS backend unavailable. Install with: pip install ibm-watson") from exc
        self.client = TextToSpeechV1(authenticator=iam_authenticator(self.apikey))
        if self.url:
            self.client.set_service_url(self.url)

    def synthesize(self, text: str) -> bytes:
        response = self.client.synthesize(text, accept=self.accept, voice=self.voice)
        return response.get_result().content
