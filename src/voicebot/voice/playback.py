"""Audio duration probing and speaker playback."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

_INSTALL_HINT = "Install extras with: pip install 'voicebot[voice]'"


class SoundFileDurationProbe:
    """Read the duration of an encoded audio file from its header."""

    def __init__(self) -> None:
        try:
            import soundfile as sf
        except (ImportError, OSError) as exc:  # pragma: no cover - import guard
            raise RuntimeError(f"Audio probe backend unavailable. {_INSTALL_HINT}") from exc
        self._sf = sf

    def probe(self, path: Path) -> float:
        return float(self._sf.info(str(path)).duration)


class _ClipFeeder:
    """Stream callback copying one decoded clip into the output buffer frame by frame."""

    def __init__(self, frames: Any, stop_exception: type[Exception]) -> None:
        self._frames = frames
        self._position = 0
        self._stop_exception = stop_exception

    def __call__(self, outdata: Any, frame_count: int, time_info: Any, status: Any) -> None:
        chunk = self._frames[self._position : self._position + frame_count]
        self._position += frame_count
        outdata[: len(chunk)] = chunk
        if len(chunk) < frame_count:
            outdata[len(chunk) :] = 0
            raise self._stop_exception


class SoundDeviceAudioPlayer:
    """Play each clip on its own output stream and return immediately.

    Clips never interrupt each other: a reply that starts while an earlier
    one is still sounding plays alongside it until both reach their end.
    """

    def __init__(self, *, device: int | str | None = None, logger: logging.Logger | None = None) -> None:
        try:
            import sounddevice as sd
            import soundfile as sf
        except (ImportError, OSError) as exc:  # pragma: no cover - import guard
            raise RuntimeError(f"Audio output backend unavailable. {_INSTALL_HINT}") from exc
        self._sd = sd
        self._sf = sf
        self._device = device
        self._logger = logger or logging.getLogger("voicebot.playback")
        self._streams: set[Any] = set()
        self._lock = threading.Lock()

    @property
    def active_streams(self) -> int:
        with self._lock:
            return len(self._streams)

    def play(self, path: Path) -> None:
        frames, samplerate = self._sf.read(str(path), dtype="float32", always_2d=True)
        stream = self._sd.OutputStream(
            samplerate=samplerate,
            channels=frames.shape[1],
            dtype="float32",
            device=self._device,
            callback=_ClipFeeder(frames, self._sd.CallbackStop),
        )
        stream.start()
        with self._lock:
            self._close_finished_streams()
            self._streams.add(stream)
        self._logger.debug("playback_started", extra={"artifact": str(path)})

    def close(self) -> None:
        """Stop and release every stream, including clips still playing."""
        with self._lock:
            for stream in self._streams:
                stream.stop()
                stream.close()
            self._streams.clear()

    def _close_finished_streams(self) -> None:
        for stream in [stream for stream in self._streams if not stream.active]:
            stream.close()
            self._streams.discard(stream)
