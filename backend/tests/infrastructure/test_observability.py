"""Structured Logging: verifies the JSON formatter surfaces contract fields."""

import json
import logging

from safecall.infrastructure.observability import JSONFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "safecall.core.contract", logging.ERROR, __file__, 1, "violated", None, None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_contract_extras():
    line = JSONFormatter().format(_record(
        contract="create_user", call_state="faulted", error_kind="contract_violation",
    ))
    log = json.loads(line)
    assert log["message"] == "violated"
    assert log["level"] == "ERROR"
    assert log["contract"] == "create_user"
    assert log["call_state"] == "faulted"
    assert log["error_kind"] == "contract_violation"


def test_json_formatter_omits_missing_extras():
    log = json.loads(JSONFormatter().format(_record(error_kind=None)))
    assert "error_kind" not in log
    assert "contract" not in log


def test_setup_logging_is_idempotent():
    from safecall.infrastructure.observability import setup_logging

    root = logging.getLogger()
    before = [h for h in root.handlers if not getattr(h, "safecall", False)]
    setup_logging("DEBUG", "json")
    setup_logging("WARNING", "text")
    ours = [h for h in root.handlers if getattr(h, "safecall", False)]
    assert len(ours) == 1
    assert not isinstance(ours[0].formatter, JSONFormatter)
    assert root.level == logging.WARNING
    for handler in ours:
        root.removeHandler(handler)
    assert [h for h in root.handlers if not getattr(h, "safecall", False)] == before
