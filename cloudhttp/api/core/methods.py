"""
Where: cloudhttp/api/core/methods.py
What: Normalize HTTP method names to routing-document method keys.
Why: One method vocabulary shared by the registry, the builder and the permission layer.
"""

from ..exceptions import UnsupportedMethodError

ANY_METHOD = "x-amazon-apigateway-any-method"

SUPPORTED_METHODS = ("get", "put", "post", "delete", "options", "head", "patch")


def normalize_method(method: str) -> str:
    """
    Return the routing-document key for an HTTP method.

    GET/PUT/POST/DELETE/OPTIONS/HEAD/PATCH are lower-cased, ANY maps to the
    gateway's any-method sentinel. Matching is case-insensitive
    and idempotent, so an already normalized key maps to itself.
    """
    lowered = method.lower() if isinstance(method, str) else ""
    if lowered in SUPPORTED_METHODS:
        return lowered
    if lowered in ("any", ANY_METHOD):
        return ANY_METHOD
    raise UnsupportedMethodError(method)


def permission_method(normalized: str) -> str:
    """Method token used in invoke-permission source ARNs (`*` for ANY)."""
    if normalized == ANY_METHOD:
        return "*"
    return normalized.upper()


def display_method(normalized: str) -> str:
    """Method token used in log and error messages."""
    if normalized == ANY_METHOD:
        return "ANY"
    return normalized.upper()


def method_matches(normalized: str, request_method: str) -> bool:
    """Whether a registered method key answers a concrete request method."""
    return normalized == ANY_METHOD or normalized == request_method.lower()
