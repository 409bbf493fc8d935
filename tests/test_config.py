import json
import logging
import sys

from config import Settings, parse_cors_origins
from logging_config import JSONFormatter


def test_parse_cors_origins_accepts_csv_and_json():
    assert parse_cors_origins("http://a.io, http://b.io,") == ["http://a.io", "http://b.io"]
    assert parse_cors_origins('["http://a.io"]') == ["http://a.io"]
    assert parse_cors_origins(["x"]) == ["x"]
    assert parse_cors_origins(None) == []


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("MCP_ENABLED", "false")
    monkeypatch.setenv("CORS_ORIGINS_STR", "https://reports.college.edu")
    settings = Settings()
    assert settings.is_production
    assert settings.MCP_ENABLED is False
    assert settings.CORS_ORIGINS == ["https://reports.college.edu"]


def test_json_formatter_includes_extra_fields_and_exception():
    formatter = JSONFormatter()
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord(
            "application", logging.WARNING, __file__, 10,
            "Notification %s failed", ("report_submitted",), sys.exc_info(),
        )
    record.report_id = "abc"

    payload = json.loads(formatter.format(record))
    assert payload["level"] == "WARNING"
    assert payload["message"] == "Notification report_submitted failed"
    assert payload["report_id"] == "abc"
    assert payload["exception"]["type"] == "RuntimeError"
