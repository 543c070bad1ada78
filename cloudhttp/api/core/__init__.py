"""
Core logic package.

Pure routing algorithms and the request/response runtime.
"""

from .adapter import Request, Response, translate_event
from .deferred import Deferred
from .dispatcher import HandlerChain
from .methods import ANY_METHOD, normalize_method
from .path_pattern import PathPattern, normalize_path

__all__ = [
    "ANY_METHOD",
    "Deferred",
    "HandlerChain",
    "PathPattern",
    "Request",
    "Response",
    "normalize_method",
    "normalize_path",
    "translate_event",
]
