"""Speech-to-text backend powered by ``speech_recognition``."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from .capture import ThreadedCaptureStream

_INSTALL_HINT = "Install extras with: pip install 'voicebot[voice]'"


@dataclass(slots=True)
class SpeechRecognitionRecognizer:
    """Convert PCM/WAV-like audio bytes into transcripts using speech_recognition."""

    language: str = "en-US"
    sample_rate: int = 16_000
    sample_width: int = 2

    def __post_init__(self) -> None:
        try:
            import speech_recognition as sr
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(f"Voice STT backend unavailable. {_INSTALL_HINT}") from exc
        self._sr = sr
        self._recognizer = sr.Recognizer()

    def transcribe(self, audio_bytes: bytes) -> str:
        if not audio_bytes:
            return ""
        audio = self._sr.AudioData(audio_bytes, sample_rate=self.sample_rate, sample_width=self.sample_width)
        try:
            return self._recognizer.recognize_google(audio, language=self.language)
        except self._sr.UnknownValueError:
            return ""
        except self._sr.RequestError as exc:
            raise RuntimeError(
                "Speech recognition service request failed. Check internet access or switch STT backend."
            ) from exc


class SpeechRecognitionMicrophoneSource:
    """Capture microphone utterances as raw PCM bytes via speech_recognition."""

    def __init__(
        self,
        *,
        phrase_time_limit: float = 5.0,
        timeout: float | None = None,
        sample_rate: int = 16_000,
        chunk_size: int = 1024,
        adjust_noise_seconds: float = 0.2,
    ) -> None:
        try:
            import speech_recognition as sr
        except ImportError as exc:  # pragma: no cover - import guard
            raise RuntimeError(f"Microphone backend unavailable. {_INSTALL_HINT}") from exc
        self._sr = sr
        self._recognizer = sr.Recognizer()
        self._microphone = sr.Microphone(sample_rate=sample_rate, chunk_size=chunk_size)
        self._sample_rate = sample_rate
        self._phrase_time_limit = phrase_time_limit
        self._timeout = timeout
        self._adjust_noise_seconds = max(0.0, adjust_noise_seconds)

    def read_chunk(self) -> bytes:
        try:
            with self._microphone as source:
                if self._adjust_noise_seconds > 0:
                    self._recognizer.adjust_for_ambient_noise(source, duration=self._adjust_noise_seconds)
                audio = self._recognizer.listen(
                    source,
                    timeout=self._timeout,
                    phrase_time_limit=self._phrase_time_limit,
                )
            return audio.get_raw_data(convert_rate=self._sample_rate, convert_width=2)
        except self._sr.WaitTimeoutError:
            return b""


class SpeechRecognitionCaptureStream(ThreadedCaptureStream):
    """Utterance-at-a-time capture for running without cloud speech credentials.

    Each phrase is recorded and transcribed in turn, so every event is final.
    Phrases recorded while the stream is paused are discarded untranscribed.
    """

    def __init__(
        self,
        recognizer: SpeechRecognitionRecognizer,
        microphone: SpeechRecognitionMicrophoneSource,
        *,
        paused_poll_seconds: float = 0.05,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(logger=logger or logging.getLogger("voicebot.stt_speechrecognition"))
        self._recognizer = recognizer
        self._microphone = microphone
        self._paused_poll_seconds = paused_poll_seconds

    def _capture(self) -> None:
        while not self._stopped.is_set():
            if self._paused:
                time.sleep(self._paused_poll_seconds)
                continue

            audio_bytes = self._microphone.read_chunk()
            if self._paused or not audio_bytes:
                continue
            self._emit(self._recognizer.transcribe(audio_bytes))
