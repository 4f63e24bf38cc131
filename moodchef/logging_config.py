"""
Logging setup for the service.

`configure_logging()` runs once when the app module is imported. Modules log
through ``logging.getLogger(__name__)`` and attach context with ``extra={...}``
instead of formatting it into the message; those fields are appended to each
line as ``key=value`` pairs so fallback events can be grepped by reason.
"""

import logging
import sys

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_FIELDS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

_THIRD_PARTY = ("urllib3", "httpx", "httpcore", "openai", "requests", "werkzeug")


class ContextFormatter(logging.Formatter):
    """Standard line format followed by the record's ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {k: v for k, v in vars(record).items() if k not in _RECORD_FIELDS}
        if not context:
            return line
        return line + " | " + " ".join(f"{k}={v!r}" for k, v in sorted(context.items()))


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ContextFormatter("%(asctime)s %(levelname)-7s %(name)s: %(message)s", datefmt="%Y-%m-%dT%H:%M:%S"))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    # Re-configuring replaces the handler rather than stacking a second one
    root.handlers = [handler]

    for name in _THIRD_PARTY:
        logging.getLogger(name).setLevel(logging.WARNING)
