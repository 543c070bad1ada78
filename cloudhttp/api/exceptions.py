"""
Custom exception classes.

Build-time errors are raised synchronously to the application author while
routes are being declared. Request-time errors are contained to the single
invocation that raised them.
"""


class CloudHttpError(Exception):
    """Base exception class for the HTTP API."""

    pass


# ===========================================
# Build-time errors
# ===========================================


class RouteConflictError(CloudHttpError):
    """Raised when a (method, path) pair is registered twice."""

    def __init__(self, method: str, path: str):
        self.method = method
        self.path = path
        super().__init__(f"Route already registered: {method} {path}")


class UnsupportedMethodError(CloudHttpError):
    """Raised when a method is outside GET/PUT/POST/DELETE/OPTIONS/HEAD/PATCH/ANY."""

    def __init__(self, method: str):
        self.method = method
        super().__init__(f"Method not supported: {method}")


class AlreadyPublishedError(CloudHttpError):
    """Raised when publish() is called twice on the same API."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"API {name} is already published and cannot be re-published."
        )


class StaticSourceError(CloudHttpError):
    """Raised when a static route points at neither a file nor a directory."""

    def __init__(self, local_path: str):
        self.local_path = local_path
        super().__init__(f"Static source is not a file or directory: {local_path}")


class NameCollisionError(CloudHttpError):
    """Raised when two resources resolve to the same deterministic name."""

    def __init__(self, name: str, owner: str):
        self.name = name
        self.owner = owner
        super().__init__(f"Resource name {name} is already used by {owner}")


# ===========================================
# Request-time errors
# ===========================================


class TransportShapeError(CloudHttpError):
    """Raised when an incoming event does not have the expected shape."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Malformed incoming event: {detail}")


class HandlerExecutionError(CloudHttpError):
    """A route handler raised while processing a live request."""

    def __init__(self, method: str, path: str, cause: BaseException):
        self.method = method
        self.path = path
        self.cause = cause
        super().__init__(f"Handler failed for {method} {path}: {cause}")


class ResponseFinalizedError(CloudHttpError):
    """Raised when a response is mutated after end() was called."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Cannot {operation}: response has already been sent")
