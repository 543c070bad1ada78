"""
Where: cloudhttp/api/services/swagger_builder.py
What: Compile registered routes into an API Gateway routing document.
Why: The gateway is configured declaratively; every route becomes one or more
     Swagger operations carrying an x-amazon-apigateway-integration.
"""

import logging
import mimetypes
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..context import DeploymentContext
from ..core.deferred import Deferred
from ..core.methods import ANY_METHOD, display_method, normalize_method
from ..core.naming import compute_unit_name, safe_bucket_name, sha1hash
from ..core.path_pattern import normalize_path
from ..exceptions import StaticSourceError
from ..models.routes import (
    Endpoint,
    HandlerRoute,
    ProxyRoute,
    Route,
    RouteHandler,
    ServeStaticOptions,
    StaticRoute,
)
from ..models.swagger import (
    ApiGatewayIntegration,
    IntegrationResponse,
    RoutingDocument,
    SwaggerHeader,
    SwaggerInfo,
    SwaggerOperation,
    SwaggerParameter,
    SwaggerResponse,
    SwaggerSchema,
)
from ..runtime import create_route_function
from .infrastructure import APIGATEWAY_ASSUME_ROLE_POLICY, S3_FULL_ACCESS_POLICY_ARN
from .route_registry import RouteRegistry

logger = logging.getLogger("cloudhttp.api.builder")

PROXY_PARAM = "proxy"

GATEWAY_RESPONSES = {
    "MISSING_AUTHENTICATION_TOKEN": {
        "statusCode": 404,
        "responseTemplates": {"application/json": '{"message": "404 Not found" }'},
    },
    "ACCESS_DENIED": {
        "statusCode": 404,
        "responseTemplates": {"application/json": '{"message": "404 Not found" }'},
    },
}

ProxyTarget = Union[str, Endpoint, Deferred]


@dataclass(frozen=True)
class ComputeUnit:
    """A provisioned compute unit and the route it answers."""

    name: str
    arn: Deferred
    method: str
    path: str


@dataclass
class BuildResult:
    document: RoutingDocument
    compute_units: List[ComputeUnit] = field(default_factory=list)


# ===========================================
# Integration factories
# ===========================================


def _path_parameters(param: Optional[str]) -> Tuple[Optional[List[SwaggerParameter]], Optional[Dict[str, str]]]:
    if not param:
        return None, None
    return (
        [SwaggerParameter(name=param)],
        {f"integration.request.path.{param}": f"method.request.path.{param}"},
    )


def lambda_operation(region: str, function_arn: Deferred) -> SwaggerOperation:
    """Synchronous passthrough to a compute unit, POST regardless of the route method."""
    uri = function_arn.apply(
        lambda arn: f"arn:aws:apigateway:{region}:lambda:path/2015-03-31/functions/{arn}/invocations"
    )
    return SwaggerOperation(
        integration=ApiGatewayIntegration(
            uri=uri,
            httpMethod="POST",
            type="aws_proxy",
            passthroughBehavior="when_no_match",
        )
    )


def storage_operation(
    region: str, bucket: Deferred, key: str, role_arn: Deferred, path_param: Optional[str] = None
) -> SwaggerOperation:
    """Read a bucket object; the object key may end with a path parameter."""
    suffix = f"/{{{path_param}}}" if path_param else ""
    uri = bucket.apply(lambda name: f"arn:aws:apigateway:{region}:s3:path/{name}/{key}{suffix}")
    parameters, request_parameters = _path_parameters(path_param)
    content_headers = {"Content-Type": SwaggerHeader(), "content-type": SwaggerHeader()}
    return SwaggerOperation(
        parameters=parameters,
        responses={
            "200": SwaggerResponse(
                description="200 response",
                schema=SwaggerSchema(type="object"),
                headers=content_headers,
            ),
            "400": SwaggerResponse(description="400 response"),
            "500": SwaggerResponse(description="500 response"),
        },
        integration=ApiGatewayIntegration(
            uri=uri,
            httpMethod="GET",
            type="aws",
            credentials=role_arn,
            requestParameters=request_parameters,
            passthroughBehavior="when_no_match",
            responses={
                "4\\d{2}": IntegrationResponse(statusCode="400"),
                "default": IntegrationResponse(
                    statusCode="200",
                    responseParameters={
                        "method.response.header.Content-Type": "integration.response.header.Content-Type",
                        "method.response.header.content-type": "integration.response.header.content-type",
                    },
                ),
                "5\\d{2}": IntegrationResponse(statusCode="500"),
            },
        ),
    )


def proxy_operation(
    target: Union[str, Deferred],
    path_param: Optional[str] = None,
    connection_id: Optional[Deferred] = None,
) -> SwaggerOperation:
    """Forward any method to an upstream URL, appending the captured path verbatim."""
    uri: Union[str, Deferred]
    if path_param:
        suffix = f"{{{path_param}}}"
        uri = target.apply(lambda url: url + suffix) if isinstance(target, Deferred) else target + suffix
    else:
        uri = target
    parameters, request_parameters = _path_parameters(path_param)
    return SwaggerOperation(
        parameters=parameters,
        integration=ApiGatewayIntegration(
            uri=uri,
            httpMethod="ANY",
            type="http_proxy",
            passthroughBehavior="when_no_match",
            requestParameters=request_parameters,
            responses={"default": IntegrationResponse(statusCode="200")},
            connectionType="VPC_LINK" if connection_id is not None else None,
            connectionId=connection_id,
        ),
    )


def directory_path(path: str) -> str:
    path = normalize_path(path)
    return path if path.endswith("/") else path + "/"


def _with_trailing_slash(url: str) -> str:
    return url if url.endswith("/") else url + "/"


def _endpoint_url(value: Any) -> str:
    if isinstance(value, Endpoint):
        return value.url()
    if isinstance(value, dict):
        return Endpoint.model_validate(value).url()
    return _with_trailing_slash(str(value))


def walk_files(root: str) -> Iterable[Tuple[str, str]]:
    """Yield (absolute file path, `/`-separated relative path) in a stable order."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in sorted(filenames):
            full = os.path.join(dirpath, filename)
            yield full, os.path.relpath(full, root).replace(os.sep, "/")


# ===========================================
# Builder
# ===========================================


class GatewaySpecBuilder:
    """
    Accumulates routes of one API and renders them into a RoutingDocument.

    Declaration errors (conflicts, unsupported methods, missing static
    sources) surface from the add_* methods. build() walks the registrations
    and provisions the resources their integrations point at; resources are
    cached by name, so building twice reuses them.
    """

    def __init__(self, name: str, context: Optional[DeploymentContext] = None):
        self.name = name
        self.context = context or DeploymentContext()
        self.config = self.context.config
        self.registry = RouteRegistry()
        self._resources: Dict[str, Any] = {}

    # -------------------------------------------
    # Declaration
    # -------------------------------------------

    def add_static(self, path: str, local_path: str, options: Optional[ServeStaticOptions] = None) -> StaticRoute:
        options = options or ServeStaticOptions()
        path = normalize_path(path)
        if os.path.isfile(local_path):
            route = StaticRoute(path=path, local_path=local_path, is_directory=False, options=options)
            self.registry.add("get", path, route)
            return route
        if not os.path.isdir(local_path):
            raise StaticSourceError(local_path)

        dir_path = directory_path(path)
        route = StaticRoute(path=dir_path, local_path=local_path, is_directory=True, options=options)
        slots = [(ANY_METHOD, dir_path + "{proxy+}")]
        index = options.index_file()
        if index and os.path.isfile(os.path.join(local_path, index)):
            slots.insert(0, ("get", dir_path))
        self._add_all(slots, route)
        return route

    def add_proxy(self, path: str, target: ProxyTarget) -> ProxyRoute:
        if isinstance(target, str):
            resolved_target: Union[str, Deferred] = _with_trailing_slash(target)
        else:
            resolved_target = Deferred.of(target).apply(_endpoint_url)
        dir_path = directory_path(path)
        route = ProxyRoute(path=dir_path, target=resolved_target)
        self._add_all([(ANY_METHOD, dir_path), (ANY_METHOD, dir_path + "{proxy+}")], route)
        return route

    def add_route(self, method: str, path: str, handlers: Sequence[RouteHandler]) -> HandlerRoute:
        if not handlers:
            raise ValueError(f"Route {method} {path} needs at least one handler")
        normalized = normalize_method(method)
        route = HandlerRoute(method=normalized, path=normalize_path(path), handlers=tuple(handlers))
        self.registry.add(normalized, route.path, route)
        return route

    def _add_all(self, slots: List[Tuple[str, str]], route: Route) -> None:
        # Check every slot first so a conflict leaves no partial registration.
        for method, path in slots:
            self.registry.ensure_available(method, path)
        for method, path in slots:
            self.registry.add(method, path, route)

    # -------------------------------------------
    # Rendering
    # -------------------------------------------

    def build(self) -> BuildResult:
        document = RoutingDocument(
            swagger=self.config.SWAGGER_VERSION,
            info=SwaggerInfo(title=self.name, version=self.config.API_VERSION),
            binary_media_types=list(self.config.BINARY_MEDIA_TYPES),
            gateway_responses=GATEWAY_RESPONSES,
        )
        result = BuildResult(document=document)

        seen = set()
        for registration in self.registry.registrations():
            route = registration.route
            if id(route) in seen:
                continue
            seen.add(id(route))

            if isinstance(route, StaticRoute):
                self._build_static(document, route)
            elif isinstance(route, ProxyRoute):
                self._build_proxy(document, route)
            elif isinstance(route, HandlerRoute):
                result.compute_units.append(self._build_handler(document, route))
            else:
                raise TypeError(f"Unknown route kind: {type(route).__name__}")

        logger.debug(
            "Built routing document",
            extra={"api": self.name, "paths": len(document.paths), "compute_units": len(result.compute_units)},
        )
        return result

    def _provision(self, key: str, factory: Callable[[], Any]) -> Any:
        if key not in self._resources:
            self._resources[key] = factory()
        return self._resources[key]

    def _claim(self, name: str, method: str, path: str) -> str:
        return self.context.claim_name(name, f"{self.name} {display_method(method)} {path}")

    def _bucket(self) -> Deferred:
        infra = self.context.infrastructure
        bucket_name = safe_bucket_name(self.name)
        return self.context.shared(f"bucket:{bucket_name}", lambda: infra.create_bucket(bucket_name))

    def _storage_role(self, key: str) -> Deferred:
        infra = self.context.infrastructure
        return self._provision(
            f"role:{key}",
            lambda: infra.create_role(key, APIGATEWAY_ASSUME_ROLE_POLICY, [S3_FULL_ACCESS_POLICY_ARN]),
        )

    def _object(self, bucket: Deferred, key: str, source: str, content_type: Optional[str]) -> None:
        infra = self.context.infrastructure
        self._provision(
            f"object:{key}",
            lambda: infra.create_bucket_object(key, bucket, key, source, content_type),
        )

    def _build_static(self, document: RoutingDocument, route: StaticRoute) -> None:
        region = self.config.AWS_REGION
        bucket = self._bucket()
        key = self._claim(self.name + sha1hash(f"static:{route.path}"), "get", route.path)
        role = self._storage_role(key)

        if not route.is_directory:
            content_type = route.options.content_type or mimetypes.guess_type(route.local_path)[0]
            self._object(bucket, key, route.local_path, content_type)
            document.paths.setdefault(route.path, {})["get"] = storage_operation(region, bucket, key, role)
            return

        index = route.options.index_file()
        index_path = os.path.join(route.local_path, index) if index else None
        for full, relative in walk_files(route.local_path):
            object_key = f"{key}/{relative}"
            self._object(bucket, object_key, full, mimetypes.guess_type(full)[0])
            if index_path is not None and os.path.abspath(full) == os.path.abspath(index_path):
                document.paths.setdefault(route.path, {})["get"] = storage_operation(
                    region, bucket, object_key, role
                )

        document.paths.setdefault(route.path + "{proxy+}", {})[ANY_METHOD] = storage_operation(
            region, bucket, key, role, PROXY_PARAM
        )

    def _build_proxy(self, document: RoutingDocument, route: ProxyRoute) -> None:
        connection_id = None
        if route.is_endpoint:
            infra = self.context.infrastructure
            name = self._claim(compute_unit_name(self.name, ANY_METHOD, route.path), ANY_METHOD, route.path)
            connection_id = self._provision(f"vpc_link:{name}", lambda: infra.create_vpc_link(name, route.target))

        document.paths.setdefault(route.path, {})[ANY_METHOD] = proxy_operation(
            route.target, connection_id=connection_id
        )
        document.paths.setdefault(route.path + "{proxy+}", {})[ANY_METHOD] = proxy_operation(
            route.target, PROXY_PARAM, connection_id=connection_id
        )

    def _build_handler(self, document: RoutingDocument, route: HandlerRoute) -> ComputeUnit:
        infra = self.context.infrastructure
        name = self._claim(compute_unit_name(self.name, route.method, route.path), route.method, route.path)
        arn = self._provision(
            f"function:{name}",
            lambda: infra.create_function(
                name, create_route_function(route.handlers, route.method, route.path, name)
            ),
        )
        document.paths.setdefault(route.path, {})[route.method] = lambda_operation(self.config.AWS_REGION, arn)
        return ComputeUnit(name=name, arn=arn, method=route.method, path=route.path)
