"""
Compute Unit Logging Utilities

Binds the platform request id to the logging context for the duration of one
invocation so that every log line of the invocation can be correlated.
"""

import functools
import logging

from .logging_config import CustomJsonFormatter
from .request_context import clear_request_id, generate_request_id, set_request_id


def _ensure_json_handler(logger: logging.Logger) -> None:
    if any(isinstance(h.formatter, CustomJsonFormatter) for h in logger.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(CustomJsonFormatter())
    logger.addHandler(handler)
    if logger.getEffectiveLevel() > logging.INFO:
        logger.setLevel(logging.INFO)


def compute_unit_logging(service_name: str = "compute-unit"):
    """
    Decorator for compute-unit entrypoints.

    Usage:
        @compute_unit_logging(service_name="myapi1a2b3c4d")
        def handler(event, context):
            ...
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(event, context):
            root = logging.getLogger()
            _ensure_json_handler(root)

            request_id = getattr(context, "aws_request_id", None)
            if request_id:
                set_request_id(request_id)
            else:
                generate_request_id()

            logging.getLogger("cloudhttp.runtime").debug(
                "Invocation started", extra={"service_name": service_name}
            )
            try:
                return func(event, context)
            finally:
                for h in root.handlers:
                    h.flush()
                clear_request_id()

        return wrapper

    return decorator
