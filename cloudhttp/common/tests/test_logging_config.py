"""
Where: cloudhttp/common/tests/test_logging_config.py
What: Unit tests for the JSON formatter and YAML logging setup.
Why: Every compute unit and the local server log through this configuration.
"""

import json
import logging
import string
import sys
from unittest.mock import patch

import yaml

from cloudhttp.common.core import logging_config
from cloudhttp.common.core.config import BaseAppConfig
from cloudhttp.common.core.logging_config import CustomJsonFormatter, setup_logging
from cloudhttp.common.core.request_context import clear_request_id, set_request_id


def _record(msg="hello", **extra):
    record = logging.LogRecord(
        name="cloudhttp.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_core_fields():
    clear_request_id()
    data = json.loads(CustomJsonFormatter().format(_record()))

    assert data["level"] == "INFO"
    assert data["logger"] == "cloudhttp.test"
    assert data["message"] == "hello"
    assert data["_time"].endswith("+00:00")
    assert "aws_request_id" not in data


def test_formatter_includes_request_id_and_extra_fields():
    set_request_id("req-42")
    try:
        data = json.loads(CustomJsonFormatter().format(_record(method="GET", path="/a")))
    finally:
        clear_request_id()

    assert data["aws_request_id"] == "req-42"
    assert data["method"] == "GET"
    assert data["path"] == "/a"
    assert "args" not in data
    assert "lineno" not in data


def test_formatter_serializes_exceptions_and_unknown_types():
    try:
        raise ValueError("boom")
    except ValueError:
        record = _record(exc_info=sys.exc_info(), payload=object())

    data = json.loads(CustomJsonFormatter().format(record))
    assert "ValueError: boom" in data["exception"]
    assert data["payload"].startswith("<object object")


def test_setup_logging_substitutes_environment(tmp_path, monkeypatch):
    config_file = tmp_path / "logging.yml"
    config_file.write_text(
        "version: 1\n"
        "disable_existing_loggers: false\n"
        "loggers:\n"
        "  cloudhttp.test_setup:\n"
        "    level: ${LOG_LEVEL}\n"
    )
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    setup_logging(str(config_file))

    assert logging.getLogger("cloudhttp.test_setup").level == logging.DEBUG


def test_setup_logging_falls_back_to_basic_config(tmp_path, monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    with patch("logging.basicConfig") as basic_config:
        setup_logging(str(tmp_path / "missing.yml"))

    basic_config.assert_called_once_with(level="WARNING")


def test_setup_logging_reads_path_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("LOG_CONFIG_PATH", str(tmp_path / "missing.yml"))
    with patch("logging.basicConfig") as basic_config:
        setup_logging()

    basic_config.assert_called_once()


def test_setup_logging_uses_settings_object(tmp_path):
    settings = BaseAppConfig(LOG_CONFIG_PATH=str(tmp_path / "missing.yml"), LOG_LEVEL="ERROR")
    with patch("logging.basicConfig") as basic_config:
        setup_logging(settings=settings)

    basic_config.assert_called_once_with(level="ERROR")


def test_bundled_config_uses_json_formatter():
    with open(logging_config.DEFAULT_CONFIG_PATH, encoding="utf-8") as f:
        content = string.Template(f.read()).safe_substitute({"LOG_LEVEL": "INFO"})
    parsed = yaml.safe_load(content)

    assert parsed["formatters"]["json"]["()"] == (
        "cloudhttp.common.core.logging_config.CustomJsonFormatter"
    )
    assert parsed["loggers"]["cloudhttp"]["level"] == "INFO"
    assert parsed["disable_existing_loggers"] is False
