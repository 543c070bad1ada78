"""
Route registrations.

A route is one of three kinds, modelled as a closed union:
StaticRoute, ProxyRoute and HandlerRoute.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from pydantic import BaseModel

from ..core.deferred import Deferred
from ..core.dispatcher import RouteHandler


class ServeStaticOptions(BaseModel):
    """
    content_type: served content type; only used when the source is a file.
    index: True serves index.html for the directory path, a string names
        another index file, False disables index serving.
    """

    content_type: Optional[str] = None
    index: Union[bool, str] = True

    def index_file(self) -> Optional[str]:
        if self.index is False:
            return None
        if isinstance(self.index, str):
            return self.index
        return "index.html"


class Endpoint(BaseModel):
    """A live service endpoint a proxy route may forward to."""

    hostname: str
    port: int

    def url(self) -> str:
        return f"http://{self.hostname}:{self.port}/"


class CloudDomain(BaseModel):
    """Custom domain with certificate material."""

    domainName: str
    certificateBody: str
    certificatePrivateKey: str
    certificateChain: str


class ProviderDomain(BaseModel):
    """Custom domain with a certificate already held by the provider."""

    domainName: str
    certificateArn: str


Domain = Union[CloudDomain, ProviderDomain]


@dataclass(frozen=True)
class StaticRoute:
    path: str
    local_path: str
    is_directory: bool
    options: ServeStaticOptions = field(default_factory=ServeStaticOptions)


@dataclass(frozen=True)
class ProxyRoute:
    path: str
    target: Union[str, Deferred]

    @property
    def is_endpoint(self) -> bool:
        return not isinstance(self.target, str)


@dataclass(frozen=True)
class HandlerRoute:
    method: str
    path: str
    handlers: Tuple[RouteHandler, ...]


Route = Union[StaticRoute, ProxyRoute, HandlerRoute]
