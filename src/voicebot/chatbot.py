"""Listening loop feeding recognized speech into dialog turns."""

from __future__ import annotations

import asyncio
import logging
from collections import deque

from voicebot.models import TurnRecord
from voicebot.turns import TurnTakingController
from voicebot.voice.interfaces import CaptureStream


class VoiceChatbot:
    """Consumes the capture stream and starts a turn for every final transcript.

    Turns are started as independent tasks as soon as their transcript
    arrives; there is no backpressure. Errors raised by the capture stream
    propagate out of :meth:`run`.
    """

    def __init__(
        self,
        capture: CaptureStream,
        controller: TurnTakingController,
        *,
        history_size: int = 100,
        logger: logging.Logger | None = None,
    ) -> None:
        self._capture = capture
        self._controller = controller
        self._logger = logger or logging.getLogger("voicebot.chatbot")
        self._turns: set[asyncio.Task[TurnRecord]] = set()
        self.records: deque[TurnRecord] = deque(maxlen=history_size)

    async def run(self) -> None:
        """Listen until the capture stream ends, then wait for outstanding turns."""
        self._logger.info("listening", extra={"hint": "You may speak now."})
        try:
            async for event in self._capture:
                if not event.final:
                    self._logger.debug("heard_interim", extra={"text": event.text})
                    continue
                self._logger.info("heard", extra={"text": event.text})
                task = asyncio.create_task(self._controller.on_utterance(event.text), name="voicebot-turn")
                self._turns.add(task)
                task.add_done_callback(self._turn_finished)
        finally:
            if self._turns:
                await asyncio.gather(*self._turns, return_exceptions=True)

    def _turn_finished(self, task: asyncio.Task[TurnRecord]) -> None:
        self._turns.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._logger.error("turn_crashed", exc_info=exc)
            return
        record = task.result()
        self.records.append(record)
        self._logger.info("turn_finished", extra={"status": record.status.value, "utterance": record.utterance})
