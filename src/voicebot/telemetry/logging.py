"""Console logging for bot lifecycle and turn events."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class ExtraFieldsFormatter(logging.Formatter):
    """Append structured ``extra`` fields to the event name as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        fields = {key: value for key, value in vars(record).items() if key not in _RESERVED_ATTRS}
        if not fields:
            return message
        rendered = " ".join(f"{key}={value!r}" for key, value in sorted(fields.items()))
        return f"{message} {rendered}"


def configure_logging(level: str = "INFO", *, debug: bool = False) -> None:
    """Route ``voicebot`` loggers to a rich console handler."""
    handler = RichHandler(show_path=False, rich_tracebacks=True)
    handler.setFormatter(ExtraFieldsFormatter("%(message)s"))

    logger = logging.getLogger("voicebot")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else level.upper())
    logger.propagate = False
