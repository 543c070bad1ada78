"""
Local emulation server.

Serves the registrations of an API in-process with FastAPI:
- handler routes run through the same event translation and handler chain
  a deployed compute unit uses,
- static routes are read from the local filesystem with the same index
  policy,
- proxy routes are forwarded with httpx.
"""

import base64
import logging
import mimetypes
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from cloudhttp.common.core.http_client import HttpClientFactory
from cloudhttp.common.core.logging_config import setup_logging

from ..config import config
from ..core.deferred import Deferred
from ..core.event_builder import V1ProxyEventBuilder
from ..core.naming import compute_unit_name
from ..exceptions import CloudHttpError, StaticSourceError
from ..http_api import API
from ..models.context import InputContext
from ..models.routes import HandlerRoute, ProxyRoute, StaticRoute
from ..runtime import RouteFunction, create_route_function
from ..services.route_registry import Registration
from .exceptions import (
    UpstreamError,
    cloudhttp_exception_handler,
    global_exception_handler,
    http_exception_handler,
)
from .middleware import access_log_middleware

logger = logging.getLogger("cloudhttp.api.local")

ALL_METHODS = ["GET", "PUT", "POST", "DELETE", "OPTIONS", "HEAD", "PATCH"]

# Not forwarded in either direction.
HOP_BY_HOP_HEADERS = frozenset(
    [
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
        "host",
        "content-length",
        "content-encoding",
    ]
)


def _filter_headers(headers: Any) -> Dict[str, str]:
    return {k: v for k, v in headers.items() if k.lower() not in HOP_BY_HOP_HEADERS}


def result_to_response(result: Dict[str, Any]) -> Response:
    """Convert a compute-unit result into an HTTP response."""
    body = result.get("body") or ""
    if result.get("isBase64Encoded"):
        content = base64.b64decode(body)
    else:
        content = body.encode("utf-8")
    return Response(
        content=content,
        status_code=int(result.get("statusCode", 200)),
        headers=dict(result.get("headers") or {}),
    )


class LocalRouter:
    """Answers local requests from the registrations of one API."""

    def __init__(self, api: API):
        self.api = api
        self.event_builder = V1ProxyEventBuilder()
        self._functions: Dict[int, RouteFunction] = {}
        for registration in api.registry.registrations():
            if isinstance(registration.route, HandlerRoute):
                self._function_for(registration.route)

    def _function_for(self, route: HandlerRoute) -> RouteFunction:
        # Routes registered after the app was created are built on first use.
        function = self._functions.get(id(route))
        if function is None:
            name = compute_unit_name(self.api.name, route.method, route.path)
            function = create_route_function(route.handlers, route.method, route.path, name)
            self._functions[id(route)] = function
        return function

    async def handle(self, request: Request, client: httpx.AsyncClient) -> Response:
        path = request.url.path
        found = self.api.registry.match(request.method, path)
        if found is None:
            raise StarletteHTTPException(status_code=404, detail="Not Found")
        registration, params = found
        route = registration.route

        if isinstance(route, HandlerRoute):
            return await self._invoke(request, registration, params)
        if isinstance(route, StaticRoute):
            return self._serve_static(route, params)
        if isinstance(route, ProxyRoute):
            return await self._forward(request, route, params, client)
        raise TypeError(f"Unknown route kind: {type(route).__name__}")

    async def _invoke(self, request: Request, registration: Registration, params: Dict[str, str]) -> Response:
        function = self._function_for(registration.route)
        headers = dict(request.headers)
        multi_headers: Dict[str, list] = {}
        for key, value in request.headers.items():
            multi_headers.setdefault(key, []).append(value)
        multi_query: Dict[str, list] = {}
        for key, value in request.query_params.multi_items():
            multi_query.setdefault(key, []).append(value)

        context = InputContext(
            function_name=function.name,
            method=request.method,
            path=request.url.path,
            headers=headers,
            multi_headers=multi_headers,
            query_params=dict(request.query_params),
            multi_query_params=multi_query,
            body=await request.body(),
            path_params=params,
            route_path=registration.path,
        )
        event = self.event_builder.build(context)
        result = await function.invoke(event)
        return result_to_response(result)

    def _serve_static(self, route: StaticRoute, params: Dict[str, str]) -> Response:
        if not route.is_directory:
            if not os.path.isfile(route.local_path):
                raise StaticSourceError(route.local_path)
            media_type = route.options.content_type or mimetypes.guess_type(route.local_path)[0]
            return FileResponse(route.local_path, media_type=media_type)

        relative = params.get("proxy")
        if relative is None:
            relative = route.options.index_file()
            if relative is None:
                raise StarletteHTTPException(status_code=404, detail="Not Found")

        root = os.path.realpath(route.local_path)
        target = os.path.realpath(os.path.join(root, relative))
        if os.path.commonpath([root, target]) != root or not os.path.isfile(target):
            raise StarletteHTTPException(status_code=404, detail="Not Found")
        return FileResponse(target)

    async def _forward(
        self, request: Request, route: ProxyRoute, params: Dict[str, str], client: httpx.AsyncClient
    ) -> Response:
        base = route.target
        if isinstance(base, Deferred):
            base = await base.get()
        url = base + params.get("proxy", "")

        try:
            upstream = await client.request(
                request.method,
                url,
                params=request.query_params.multi_items(),
                headers=_filter_headers(request.headers),
                content=await request.body(),
                timeout=config.PROXY_TIMEOUT,
            )
        except httpx.HTTPError as e:
            raise UpstreamError(url, e) from e

        logger.debug(
            "Proxied request",
            extra={"method": request.method, "upstream": url, "status": upstream.status_code},
        )
        return Response(
            content=upstream.content,
            status_code=upstream.status_code,
            headers=_filter_headers(upstream.headers),
        )


def create_local_app(api: API, client: Optional[httpx.AsyncClient] = None) -> FastAPI:
    """
    Build a FastAPI application serving the routes of api.

    client is used for proxy routes; by default one is created from
    HttpClientFactory for the lifetime of the application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, "http_client", None) is None:
            owned = HttpClientFactory(config).create_async_client(timeout=config.PROXY_TIMEOUT)
            app.state.http_client = owned
        logger.info("Local server ready", extra={"api": api.name, "routes": len(api.registry)})

        yield

        if owned is not None:
            await owned.aclose()
            app.state.http_client = None

    # No docs routes: every path belongs to the emulated API.
    app = FastAPI(
        title=api.name,
        version=config.API_VERSION,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.http_client = client
    app.state.router = LocalRouter(api)

    app.middleware("http")(access_log_middleware)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(CloudHttpError, cloudhttp_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    @app.api_route("/{full_path:path}", methods=ALL_METHODS, include_in_schema=False)
    async def catch_all(request: Request):
        return await app.state.router.handle(request, app.state.http_client)

    return app


def serve_local(api: API, host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Run the local emulation of api under uvicorn."""
    setup_logging(settings=config)
    uvicorn.run(
        create_local_app(api),
        host=host or config.LOCAL_HOST,
        port=port or config.LOCAL_PORT,
        log_config=None,
    )
