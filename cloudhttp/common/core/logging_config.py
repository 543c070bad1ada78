"""
Logging Configuration
Custom JSON Logger implementation for compute units and the local server.

Provides:
- CustomJsonFormatter: one JSON object per log line
- setup_logging: dictConfig from YAML with ${VAR} substitution
"""

import json
import logging
import logging.config
import os
import string
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import yaml

from .config import BaseAppConfig
from .request_context import get_request_id

DEFAULT_CONFIG_PATH = str(Path(__file__).with_name("logging.yml"))

_STANDARD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)


class CustomJsonFormatter(logging.Formatter):
    """
    JSON Formatter.

    Fields:
      - _time: ISO8601 timestamp (millisecond precision)
      - level: Log level
      - logger: Logger name (e.g. cloudhttp.api.dispatcher)
      - message: Log message
      - aws_request_id: Request ID of the invocation being served
    """

    def format(self, record: logging.LogRecord) -> str:
        request_id = getattr(record, "aws_request_id", None) or get_request_id()

        log_data = {
            "_time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if request_id:
            log_data["aws_request_id"] = request_id

        # Include extra fields
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(config_path: Optional[str] = None, settings: Optional[BaseAppConfig] = None) -> None:
    """
    Load the YAML config, substitute environment variables, and initialize logging.

    The path is taken from the argument, then the LOG_CONFIG_PATH setting, then
    the bundled logging.yml.
    """
    settings = settings or BaseAppConfig()
    config_path = config_path or settings.LOG_CONFIG_PATH or DEFAULT_CONFIG_PATH
    if not os.path.exists(config_path):
        logging.basicConfig(level=settings.LOG_LEVEL)
        return

    with open(config_path, "r", encoding="utf-8") as f:
        # Supports ${LOG_LEVEL} format.
        template = string.Template(f.read())

    mapping = os.environ.copy()
    mapping.setdefault("LOG_LEVEL", settings.LOG_LEVEL)

    content = template.safe_substitute(mapping)
    logging.config.dictConfig(yaml.safe_load(content))
