"""
HTTP API registration surface.

An API collects static, proxy and handler routes. publish() renders the
routing document, provisions everything it refers to and returns an
HttpDeployment describing where the API is served.

Example:
    api = API("myapi")
    api.static("/", "www")
    api.proxy("/docs", "https://docs.example.com")
    api.get("/hello/{name}", lambda req, res, next: res.json({"hello": req.params["name"]}))
    deployment = api.publish()
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from .context import DeploymentContext
from .core.deferred import Deferred
from .core.dispatcher import RouteHandler
from .core.methods import permission_method
from .core.naming import permission_name, sha1hash
from .exceptions import AlreadyPublishedError, CloudHttpError
from .models.routes import Domain, ServeStaticOptions
from .models.swagger import RoutingDocument
from .services.route_registry import RouteRegistry
from .services.swagger_builder import BuildResult, ComputeUnit, GatewaySpecBuilder, ProxyTarget

logger = logging.getLogger("cloudhttp.api")


class HttpDeployment:
    """
    A published API.

    `url` and `custom_domain_names` are Deferred; resolve them with
    `await deployment.url.get()`.
    """

    def __init__(
        self,
        name: str,
        build: BuildResult,
        domains: Sequence[Domain],
        context: DeploymentContext,
    ):
        self.name = name
        self.document: RoutingDocument = build.document
        self.compute_units: List[ComputeUnit] = list(build.compute_units)
        self.context = context

        infra = context.infrastructure
        stage_name = context.config.STAGE_NAME

        self._resolved: Optional[RoutingDocument] = None
        body = Deferred(self._render)
        # Every change to the document produces a new deployment.
        version = body.apply(lambda text: sha1hash(text))

        self.rest_api = infra.create_rest_api(name, body)
        self.deployment = infra.create_deployment(f"{name}_{stage_name}", self.rest_api, version)
        infra.create_stage(f"{name}_{stage_name}", stage_name, self.rest_api, self.deployment)

        for unit in self.compute_units:
            method = permission_method(unit.method)
            path = unit.path

            def _source_arn(execution_arn: str, method: str = method, path: str = path) -> str:
                return f"{execution_arn}{stage_name}/{method}{path}"

            infra.create_permission(
                permission_name(name, unit.method, unit.path),
                unit.arn,
                self.deployment.execution_arn.apply(_source_arn),
            )

        self.custom_domain_names: List[Deferred] = [
            infra.create_domain(f"{name}-{domain.domainName}", domain, self.rest_api, stage_name)
            for domain in domains
        ]
        self.url: Deferred = self.deployment.invoke_url.apply(lambda url: f"{url}{stage_name}/")

        logger.info(
            "Published API",
            extra={
                "api": name,
                "paths": len(self.document.paths),
                "compute_units": len(self.compute_units),
                "domains": len(self.custom_domain_names),
            },
        )

    async def _render(self) -> str:
        return (await self.resolved_document()).to_json()

    async def resolved_document(self) -> RoutingDocument:
        if self._resolved is None:
            self._resolved = await self.document.resolved()
        return self._resolved

    async def swagger(self) -> Dict[str, Any]:
        """The routing document with every deferred value resolved."""
        return (await self.resolved_document()).to_dict()


class API:
    """
    Registration surface of one HTTP API.

    Routes are validated as they are declared: a duplicate or overlapping
    (method, path) raises RouteConflictError, an unknown method raises
    UnsupportedMethodError.
    """

    def __init__(self, name: str, context: Optional[DeploymentContext] = None):
        self.name = name
        self.context = context or DeploymentContext()
        self.builder = GatewaySpecBuilder(name, self.context)
        self.deployment: Optional[HttpDeployment] = None
        self._domains: List[Domain] = []

    @property
    def registry(self) -> RouteRegistry:
        return self.builder.registry

    def static(self, path: str, local_path: str, options: Optional[ServeStaticOptions] = None) -> "API":
        """Serve a local file, or every file below a local directory, at path."""
        self._ensure_not_published()
        self.builder.add_static(path, local_path, options)
        return self

    def proxy(self, path: str, target: ProxyTarget) -> "API":
        """Forward every request below path to a URL or a service endpoint."""
        self._ensure_not_published()
        self.builder.add_proxy(path, target)
        return self

    def route(self, method: str, path: str, *handlers: RouteHandler) -> "API":
        self._ensure_not_published()
        self.builder.add_route(method, path, handlers)
        return self

    def get(self, path: str, *handlers: RouteHandler) -> "API":
        return self.route("GET", path, *handlers)

    def put(self, path: str, *handlers: RouteHandler) -> "API":
        return self.route("PUT", path, *handlers)

    def post(self, path: str, *handlers: RouteHandler) -> "API":
        return self.route("POST", path, *handlers)

    def delete(self, path: str, *handlers: RouteHandler) -> "API":
        return self.route("DELETE", path, *handlers)

    def options(self, path: str, *handlers: RouteHandler) -> "API":
        return self.route("OPTIONS", path, *handlers)

    def head(self, path: str, *handlers: RouteHandler) -> "API":
        return self.route("HEAD", path, *handlers)

    def patch(self, path: str, *handlers: RouteHandler) -> "API":
        return self.route("PATCH", path, *handlers)

    def all(self, path: str, *handlers: RouteHandler) -> "API":
        return self.route("ANY", path, *handlers)

    def attach_custom_domain(self, domain: Domain) -> "API":
        self._ensure_not_published()
        self._domains.append(domain)
        return self

    def publish(self) -> HttpDeployment:
        """
        Render the routing document and provision the API.

        Raises:
            AlreadyPublishedError: publish() was already called on this API.
        """
        if self.deployment is not None:
            raise AlreadyPublishedError(self.name)
        self.deployment = HttpDeployment(self.name, self.builder.build(), self._domains, self.context)
        return self.deployment

    def _ensure_not_published(self) -> None:
        if self.deployment is not None:
            raise CloudHttpError(f"API {self.name} is already published; routes can no longer change.")
