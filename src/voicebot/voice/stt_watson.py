"""Streaming speech-to-text backend powered by Watson Speech to Text."""

from __future__ import annotations

import logging
import queue
from typing import Any

from ibm_watson.websocket import RecognizeCallback

from voicebot.watson_auth import iam_authenticator

from .capture import ThreadedCaptureStream

_INSTALL_HINT = "Install extras with: pip install 'voicebot[voice]'"


class _TranscriptCallback(RecognizeCallback):
    """Receives websocket events from the recognizer and forwards transcripts."""

    def __init__(self, stream: WatsonCaptureStream) -> None:
        super().__init__()
        self._stream = stream

    def on_connected(self) -> None:
        self._stream._logger.info("stt_connected")

    def on_listening(self) -> None:
        self._stream._logger.info("stt_listening")

    def on_data(self, data: dict[str, Any]) -> None:
        for result in data.get("results", []):
            alternatives = result.get("alternatives") or []
            if alternatives:
                self._stream._emit(alternatives[0].get("transcript", ""), final=bool(result.get("final")))

    def on_error(self, error: Any) -> None:
        self._stream._fail(RuntimeError(f"Speech to Text stream failed: {error}"))

    def on_inactivity_timeout(self, error: Any) -> None:
        self._stream._logger.warning("stt_inactivity_timeout", extra={"detail": str(error)})

    def on_close(self) -> None:
        self._stream._logger.info("stt_closed")


class WatsonCaptureStream(ThreadedCaptureStream):
    """Microphone audio piped into a Watson recognize websocket.

    Audio is captured as 16-bit linear PCM. While the stream is paused the
    microphone keeps running but its blocks are dropped instead of queued.
    """

    def __init__(
        self,
        *,
        apikey: str | None = None,
        url: str | None = None,
        sample_rate: int = 44_100,
        channels: int = 2,
        interim_results: bool = True,
        block_size: int = 1024,
        max_buffered_blocks: int = 100,
        client: Any = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(logger=logger or logging.getLogger("voicebot.stt_watson"))
        try:
            import sounddevice as sd
            from ibm_watson import SpeechToTextV1
            from ibm_watson.websocket import AudioSource
        except (ImportError, OSError) as exc:  # pragma: no cover - import guard
            raise RuntimeError(f"Watson STT backend unavailable. {_INSTALL_HINT}") from exc

        self._sd = sd
        self._audio_source_cls = AudioSource
        if client is None:
            client = SpeechToTextV1(authenticator=iam_authenticator(apikey))
            if url:
                client.set_service_url(url)
        self._client = client

        self._sample_rate = sample_rate
        self._channels = channels
        self._interim_results = interim_results
        self._block_size = block_size
        self._blocks: queue.Queue[bytes] = queue.Queue(maxsize=max_buffered_blocks)
        self._audio_source: Any = None

    @property
    def content_type(self) -> str:
        return f"audio/l16; rate={self._sample_rate}; channels={self._channels}"

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if self._paused:
            return
        try:
            self._blocks.put_nowait(bytes(indata))
        except queue.Full:
            self._logger.debug("stt_block_dropped")

    def close(self) -> None:
        super().close()
        if self._audio_source is not None:
            self._audio_source.completed_recording()

    def _capture(self) -> None:
        audio_source = self._audio_source = self._audio_source_cls(self._blocks, is_recording=True, is_buffer=True)
        microphone = self._sd.RawInputStream(
            samplerate=self._sample_rate,
            channels=self._channels,
            dtype="int16",
            blocksize=self._block_size,
            callback=self._on_audio,
        )
        with microphone:
            try:
                self._client.recognize_using_websocket(
                    audio=audio_source,
                    content_type=self.content_type,
                    recognize_callback=_TranscriptCallback(self),
                    interim_results=self._interim_results,
                    inactivity_timeout=-1,
                )
            finally:
                audio_source.completed_recording()

