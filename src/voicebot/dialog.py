"""Dialog service backends."""

from __future__ import annotations

import logging
from typing import Any

from voicebot.models import DialogReply
from voicebot.watson_auth import iam_authenticator


class WatsonAssistantDialogService:
    """Watson Assistant v1 ``message`` round-trip against a dialog workspace."""

    def __init__(
        self,
        workspace_id: str,
        *,
        version: str = "2019-02-28",
        apikey: str | None = None,
        url: str | None = None,
        debug: bool = False,
        client: Any = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._workspace_id = workspace_id
        self._debug = debug
        self._logger = logger or logging.getLogger("voicebot.dialog")

        if client is None:
            try:
                from ibm_watson import AssistantV1
            except ImportError as exc:  # pragma: no cover - import guard
                raise RuntimeError("Watson Assistant backend unavailable. Install with: pip install ibm-watson") from exc
            client = AssistantV1(version=version, authenticator=iam_authenticator(apikey))
            if url:
                client.set_service_url(url)
        self._client = client

    def message(self, text: str, context: dict[str, Any]) -> DialogReply:
        self._log_context("context_sent", context)
        result = self._client.message(
            workspace_id=self._workspace_id,
            input={"text": text},
            context=context,
        ).get_result()

        new_context = result.get("context") or {}
        self._log_context("context_received", new_context)
        replies = (result.get("output") or {}).get("text") or []
        return DialogReply(context=new_context, text=replies[0] if replies else None)

    def _log_context(self, event: str, context: dict[str, Any]) -> None:
        if not self._debug:
            return
        dialog_stack = (context.get("system") or {}).get("dialog_stack")
        if dialog_stack:
            self._logger.debug(event, extra={"dialog_stack": dialog_stack})


class EchoDialogService:
    """Fallback dialog used for local demos and tests."""

    def message(self, text: str, context: dict[str, Any]) -> DialogReply:
        turns = int(context.get("turns", 0)) + 1
        return DialogReply(context={**context, "turns": turns}, text=f"You said: {text}")
