from __future__ import annotations

import json
import logging
import sys
from typing import Optional

from geofleet.config import settings
from geofleet.utils.time import utc_now

_CONFIGURED = False


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": utc_now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def configure_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
    """Attach a stdout handler to the ``geofleet`` logger.

    Safe to call more than once; only the first call installs a handler.
    """
    global _CONFIGURED

    logger = logging.getLogger("geofleet")
    logger.setLevel((level or settings.log_level).upper())
    if _CONFIGURED:
        return

    use_json = settings.log_json if json_output is None else json_output
    handler = logging.StreamHandler(sys.stdout)
    if use_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    logger.addHandler(handler)
    _CONFIGURED = True
