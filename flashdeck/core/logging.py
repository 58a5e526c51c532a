import json
import logging
from typing import Any, Dict, Optional

from .config import settings

# Attributes passed through ``extra=`` that are copied into the JSON line
EXTRA_FIELDS = ("error_code", "details", "function_name", "exception_type")


class JSONFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
        }
        entry.update({name: getattr(record, name) for name in EXTRA_FIELDS if hasattr(record, name)})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: Optional[str] = None) -> None:
    """
    Send flashdeck logs to stderr as JSON lines.

    Safe to call more than once: the handler is only installed the first time.

    Args:
        level: Root level name; defaults to ``settings.log_level``
    """
    root = logging.getLogger()
    root.setLevel(level or settings.log_level)
    if any(isinstance(handler.formatter, JSONFormatter) for handler in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)
