"""
Data model definitions package.

Aggregates Pydantic models for use in other modules.
"""

from .aws_v1 import APIGatewayProxyEvent, APIGatewayProxyResult
from .context import InputContext
from .routes import (
    CloudDomain,
    Domain,
    Endpoint,
    HandlerRoute,
    ProviderDomain,
    ProxyRoute,
    Route,
    RouteHandler,
    ServeStaticOptions,
    StaticRoute,
)
from .swagger import ApiGatewayIntegration, RoutingDocument, SwaggerOperation

__all__ = [
    "APIGatewayProxyEvent",
    "APIGatewayProxyResult",
    "ApiGatewayIntegration",
    "CloudDomain",
    "Domain",
    "Endpoint",
    "HandlerRoute",
    "InputContext",
    "ProviderDomain",
    "ProxyRoute",
    "Route",
    "RouteHandler",
    "RoutingDocument",
    "ServeStaticOptions",
    "StaticRoute",
    "SwaggerOperation",
]
