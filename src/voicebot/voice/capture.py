"""Bridge between blocking capture threads and the asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import AsyncIterator

from voicebot.models import TranscriptEvent

_END_OF_STREAM = object()


class ThreadedCaptureStream:
    """Base class for capture backends whose recognizer blocks a worker thread.

    Subclasses implement :meth:`_capture`, which runs on a daemon thread and
    reports transcripts through :meth:`_emit`. Iteration starts the thread
    lazily; the stream can be iterated only once. An exception escaping
    :meth:`_capture` is re-raised from the async iterator.
    """

    def __init__(self, *, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("voicebot.capture")
        self._paused = False
        self._stopped = threading.Event()
        self._started = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue[object] | None = None

    @property
    def paused(self) -> bool:
        return self._paused

    def pause(self) -> None:
        self._paused = True
        self._logger.info("capture_paused")

    def resume(self) -> None:
        self._paused = False
        self._logger.info("capture_resumed")

    def close(self) -> None:
        """Ask the capture thread to finish."""
        self._stopped.set()

    def __aiter__(self) -> AsyncIterator[TranscriptEvent]:
        if self._started:
            raise RuntimeError("Capture stream has already been started and cannot be restarted")
        self._started = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[TranscriptEvent]:
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        thread = threading.Thread(target=self._thread_main, name=f"{type(self).__name__}-capture", daemon=True)
        thread.start()
        self._logger.info("capture_started", extra={"backend": type(self).__name__})

        while True:
            item = await self._queue.get()
            if item is _END_OF_STREAM:
                self._logger.info("capture_finished")
                return
            if isinstance(item, BaseException):
                raise item
            yield item

    def _thread_main(self) -> None:
        try:
            self._capture()
        except Exception as exc:  # noqa: BLE001 - surfaced on the event loop.
            self._post(exc)
        else:
            self._post(_END_OF_STREAM)

    def _emit(self, text: str, *, final: bool = True) -> None:
        text = text.strip()
        if text:
            self._post(TranscriptEvent(text=text, final=final))

    def _fail(self, exc: BaseException) -> None:
        self._post(exc)

    def _post(self, item: object) -> None:
        if self._loop is None or self._queue is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, item)

    def _capture(self) -> None:
        raise NotImplementedError
