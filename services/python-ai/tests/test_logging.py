import json
import logging
import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from taskify_ai.core.config import Settings  # noqa: E402
from taskify_ai.core.logging import JSONFormatter, setup_logging, use_json_logs  # noqa: E402


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_json_formatter_emits_one_object_with_traceback():
    try:
        raise ValueError("bad payload")
    except ValueError:
        record = logging.LogRecord(
            "taskify_ai.orchestrator.execution", logging.ERROR, __file__, 1, "Plan %s failed", ("p1",), sys.exc_info()
        )

    entry = json.loads(JSONFormatter().format(record))

    assert entry["level"] == "ERROR"
    assert entry["logger"] == "taskify_ai.orchestrator.execution"
    assert entry["message"] == "Plan p1 failed"
    assert "ValueError: bad payload" in entry["exception"]


def test_json_logs_in_production_or_on_request():
    assert use_json_logs(Settings(ENVIRONMENT="production"))
    assert use_json_logs(Settings(LOG_FORMAT="json"))
    assert not use_json_logs(Settings(ENVIRONMENT="development", LOG_FORMAT="text"))


def test_setup_logging_replaces_root_handlers(restore_root_logger):
    setup_logging(Settings(LOG_LEVEL="debug", LOG_FORMAT="json"))

    assert restore_root_logger.level == logging.DEBUG
    assert len(restore_root_logger.handlers) == 1
    assert isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)
    assert logging.getLogger("httpx").level == logging.WARNING
