"""Unit tests for the structured log formatter."""

import json
import logging
import sys
from uuid import UUID

import pytest

from decivue.logging import HANDLER_NAME, StructuredFormatter, configure_logging


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="decivue.core.services.evaluation",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Evaluated decision: health %d -> %d",
        args=(100, 70),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_fields():
    decision_id = UUID("6f1c2a1e-0000-4000-8000-000000000001")
    entry = json.loads(
        StructuredFormatter().format(make_record(decision_id=decision_id, rule="health_score"))
    )
    assert entry["level"] == "INFO"
    assert entry["logger"] == "decivue.core.services.evaluation"
    assert entry["message"] == "Evaluated decision: health 100 -> 70"
    assert entry["decision_id"] == str(decision_id)
    assert entry["rule"] == "health_score"
    assert "assumption_id" not in entry


def test_exception_fields():
    try:
        raise ValueError("bad rule")
    except ValueError:
        record = make_record()
        record.exc_info = sys.exc_info()

    entry = json.loads(StructuredFormatter().format(record))
    assert entry["error"] == "bad rule"
    assert entry["error_type"] == "ValueError"


@pytest.fixture
def app_logger():
    """The ``decivue`` logger, restored after the test."""
    logger = logging.getLogger("decivue")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield logger
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


def _own_handlers(logger):
    return [h for h in logger.handlers if h.get_name() == HANDLER_NAME]


def test_configure_logging_is_idempotent(app_logger):
    configure_logging("DEBUG", json_output=True)
    before = list(app_logger.handlers)
    configure_logging("DEBUG", json_output=True)

    assert app_logger.handlers == before
    assert len(_own_handlers(app_logger)) == 1
    assert app_logger.level == logging.DEBUG
    assert app_logger.propagate is False


def test_repeat_call_updates_handler_level_and_format(app_logger):
    configure_logging("WARNING", json_output=True)
    configure_logging("DEBUG", json_output=False)

    (handler,) = _own_handlers(app_logger)
    assert handler.level == logging.DEBUG
    assert app_logger.level == logging.DEBUG
    assert not isinstance(handler.formatter, StructuredFormatter)
