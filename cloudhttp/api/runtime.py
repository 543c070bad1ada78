"""
Compute-unit runtime.

Entry point executed for every incoming event: translate the event into a
Request/Response pair, drive the route's handler chain, and return the
result produced when the response is finalized.
"""

import asyncio
import base64
import contextvars
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Mapping, Sequence

from cloudhttp.common.core.lambda_logging import compute_unit_logging

from .core.adapter import translate_event
from .core.dispatcher import HandlerChain, RouteHandler
from .core.methods import display_method
from .exceptions import TransportShapeError
from .models.aws_v1 import APIGatewayProxyResult

logger = logging.getLogger("cloudhttp.api.runtime")


def error_result(status_code: int, message: str, detail: str) -> Dict[str, Any]:
    body = json.dumps({"message": message, "detail": detail}).encode("utf-8")
    return APIGatewayProxyResult(
        statusCode=status_code,
        headers={"content-type": "application/json"},
        body=base64.b64encode(body).decode("ascii"),
        isBase64Encoded=True,
    ).model_dump()


async def handle_event(chain: HandlerChain, event: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Process one incoming event and wait until a handler ends the response.

    A chain that never finalizes the response never returns; the platform
    timeout of the compute unit bounds it.
    """
    loop = asyncio.get_running_loop()
    done: asyncio.Future = loop.create_future()

    def _complete(result: Dict[str, Any]) -> None:
        if not done.done():
            done.set_result(result)

    def on_complete(result: Dict[str, Any]) -> None:
        loop.call_soon_threadsafe(_complete, result)

    try:
        req, res = translate_event(event, on_complete)
    except TransportShapeError as e:
        logger.error(str(e), extra={"method": chain.method, "path": chain.path})
        return error_result(500, "Internal Server Error", str(e))

    chain.dispatch(req, res)
    return await done


class RouteFunction:
    """
    Callable deployed as the compute unit of one handler route.

    Invoked synchronously by the platform as `fn(event, context)`. When the
    calling thread already runs an event loop, the synchronous entrypoint
    drives the chain on a private loop in a worker thread and blocks the
    caller; async callers should `await fn.invoke(event)` instead.
    """

    def __init__(self, name: str, chain: HandlerChain):
        self.name = name
        self.chain = chain
        self._entrypoint = compute_unit_logging(service_name=name)(self._run)

    def _run(self, event: Mapping[str, Any], context: Any) -> Dict[str, Any]:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.invoke(event))

        ctx = contextvars.copy_context()
        with ThreadPoolExecutor(max_workers=1) as executor:
            return executor.submit(ctx.run, asyncio.run, self.invoke(event)).result()

    async def invoke(self, event: Mapping[str, Any]) -> Dict[str, Any]:
        return await handle_event(self.chain, event)

    def __call__(self, event: Mapping[str, Any], context: Any = None) -> Dict[str, Any]:
        return self._entrypoint(event, context)


def create_route_function(
    handlers: Sequence[RouteHandler], method: str, path: str, name: str = "compute-unit"
) -> RouteFunction:
    chain = HandlerChain(handlers, method=display_method(method), path=path)
    return RouteFunction(name, chain)
