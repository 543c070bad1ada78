"""
Services package.

Provides the route registry and the infrastructure boundary. The routing
document builder lives in `swagger_builder` and is imported from there.
"""

from .infrastructure import Infrastructure, InMemoryInfrastructure
from .route_registry import Registration, RouteRegistry

__all__ = [
    "Infrastructure",
    "InMemoryInfrastructure",
    "Registration",
    "RouteRegistry",
]
