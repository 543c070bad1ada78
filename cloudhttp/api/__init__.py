"""
HTTP API package.

Declare static, proxy and handler routes on an API, publish it as an API
Gateway routing document plus the compute units behind it, or serve it
locally.
"""

from .context import DeploymentContext
from .core.adapter import Request, Response
from .exceptions import (
    AlreadyPublishedError,
    CloudHttpError,
    HandlerExecutionError,
    NameCollisionError,
    ResponseFinalizedError,
    RouteConflictError,
    StaticSourceError,
    TransportShapeError,
    UnsupportedMethodError,
)
from .http_api import API, HttpDeployment
from .models.routes import CloudDomain, Endpoint, ProviderDomain, ServeStaticOptions

__all__ = [
    "API",
    "AlreadyPublishedError",
    "CloudDomain",
    "CloudHttpError",
    "DeploymentContext",
    "Endpoint",
    "HandlerExecutionError",
    "HttpDeployment",
    "NameCollisionError",
    "ProviderDomain",
    "Request",
    "Response",
    "ResponseFinalizedError",
    "RouteConflictError",
    "ServeStaticOptions",
    "StaticSourceError",
    "TransportShapeError",
    "UnsupportedMethodError",
]
