import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config import Settings, get_settings

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
# Client libraries log every request at INFO.
QUIET_LOGGERS = ("httpx", "httpcore", "openai")


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shippers in production."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def use_json_logs(settings: Settings) -> bool:
    return settings.LOG_FORMAT == "json" or settings.ENVIRONMENT == "production"


def setup_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if use_json_logs(settings) else logging.Formatter(TEXT_FORMAT))
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
