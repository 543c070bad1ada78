"""
Handler-chain dispatch.

Handlers run in registration order. Each handler receives (req, res, next);
calling next() runs the following handler with the same Request/Response.
A handler that finalizes the response without calling next() ends the chain.
When the handlers are exhausted the chain ends silently; answering the
request is the handlers' responsibility.

Handlers may be coroutine functions. Their coroutine is scheduled on the
running loop and the dispatcher returns immediately; the chain resumes when
the coroutine calls next().
"""

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any, Callable, Sequence, Set

from ..exceptions import HandlerExecutionError

if TYPE_CHECKING:
    from .adapter import Request, Response

logger = logging.getLogger("cloudhttp.api.dispatcher")

# (req, res, next) -> None | Awaitable[None]
RouteHandler = Callable[..., Any]


class _Dispatch:
    """State of one dispatch: a cursor over the handler list."""

    def __init__(self, chain: "HandlerChain", req: "Request", res: "Response"):
        self.chain = chain
        self.req = req
        self.res = res
        self.index = 0

    def advance(self) -> None:
        handlers = self.chain.handlers
        if self.index >= len(handlers):
            logger.debug(
                "Handler chain exhausted",
                extra={"method": self.chain.method, "path": self.chain.path},
            )
            return
        handler = handlers[self.index]
        position = self.index
        self.index += 1

        called = False

        def next_() -> None:
            nonlocal called
            if called:
                logger.warning(
                    "next() called more than once by handler %d; ignoring",
                    position,
                    extra={"method": self.chain.method, "path": self.chain.path},
                )
                return
            called = True
            self.advance()

        try:
            result = handler(self.req, self.res, next_)
        except Exception as exc:
            self.chain.fail(self.res, exc)
            return

        if inspect.isawaitable(result):
            self.chain.track(asyncio.ensure_future(result), self.res)


class HandlerChain:
    """Ordered handlers of one route."""

    def __init__(self, handlers: Sequence[RouteHandler], method: str = "", path: str = ""):
        self.handlers = tuple(handlers)
        self.method = method
        self.path = path
        self._pending: Set[asyncio.Future] = set()

    def dispatch(self, req: "Request", res: "Response") -> None:
        """Start the chain at the first handler."""
        _Dispatch(self, req, res).advance()

    def track(self, task: asyncio.Future, res: "Response") -> None:
        self._pending.add(task)

        def _done(t: asyncio.Future) -> None:
            self._pending.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                self.fail(res, exc)

        task.add_done_callback(_done)

    def fail(self, res: "Response", exc: BaseException) -> None:
        """
        Log a handler failure and answer 500 with the serialized error,
        unless the response was already sent.
        """
        error = HandlerExecutionError(self.method, self.path, exc)
        logger.error(
            str(error),
            exc_info=(type(exc), exc, exc.__traceback__),
            extra={"method": self.method, "path": self.path, "error_type": type(exc).__name__},
        )
        if res.finalized:
            return
        res.clear().status(500).json({"message": "Internal Server Error", "detail": str(exc)})
