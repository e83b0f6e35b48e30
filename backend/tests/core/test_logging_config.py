import json
import logging

from app.core.logging_config import StructuredFormatter, setup_logging


def _record(**extra):
    record = logging.LogRecord(
        name="app.api.webhooks",
        level=logging.WARNING,
        pathname=__file__,
        lineno=12,
        msg="Invalid %s webhook signature",
        args=("shopify",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_structured_formatter_emits_json():
    payload = json.loads(StructuredFormatter().format(_record()))

    assert payload["level"] == "WARNING"
    assert payload["logger"] == "app.api.webhooks"
    assert payload["message"] == "Invalid shopify webhook signature"
    assert "user_id" not in payload


def test_structured_formatter_lifts_context_fields():
    record = _record(provider="shopify", source_ip="10.0.0.1", user_id="tenant-a", unrelated="x")
    payload = json.loads(StructuredFormatter().format(record))

    assert payload["provider"] == "shopify"
    assert payload["source_ip"] == "10.0.0.1"
    assert payload["user_id"] == "tenant-a"
    assert "unrelated" not in payload


def test_setup_logging_installs_single_handler():
    root = logging.getLogger()
    previous_handlers, previous_level = root.handlers[:], root.level
    try:
        setup_logging("debug")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)
    finally:
        root.handlers = previous_handlers
        root.setLevel(previous_level)
