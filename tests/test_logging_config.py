"""
Tests for structured logging
"""
import json
import logging

from autopublish.logging_config import JsonFormatter, setup_logging, trace_id_var


def _record(**extra):
    record = logging.LogRecord("autopublish.scheduling", logging.INFO, __file__, 1, "Created job", (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_context_fields():
    token = trace_id_var.set("trace-123")
    try:
        line = JsonFormatter().format(_record(component="job_factory", tenant_id="acme", job_id=7, template_id=3))
    finally:
        trace_id_var.reset(token)

    entry = json.loads(line)
    assert entry["msg"] == "Created job"
    assert entry["trace_id"] == "trace-123"
    assert entry["component"] == "job_factory"
    assert entry["tenant_id"] == "acme"
    assert entry["job_id"] == 7
    assert entry["template_id"] == 3


def test_component_defaults_to_api():
    entry = json.loads(JsonFormatter().format(_record()))
    assert entry["component"] == "api"
    assert entry["trace_id"] is None


def test_setup_logging_text_override():
    config = setup_logging()
    assert all(h["formatter"] == "text" for h in config["handlers"].values() if "formatter" in h)
    assert "autopublish" in config["loggers"]
