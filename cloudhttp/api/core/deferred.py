"""
Deferred values.

Some integration fields are only known once a collaborator resource exists
(a compute unit's ARN, a service endpoint's host and port). They are carried
as Deferred values and resolved together when the routing document is
rendered.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")

_UNSET = object()


class Deferred(Generic[T]):
    """
    A value that may not be available yet.

    The source may be a plain value, an awaitable, or a zero-argument callable
    returning either. The source is evaluated at most once; every caller of
    get() receives the same result.
    """

    def __init__(self, source: Union[T, Awaitable[T], Callable[[], Any]]):
        self._source = source
        self._value: Any = _UNSET
        self._task: Optional[asyncio.Future] = None

    @classmethod
    def of(cls, value: Union["Deferred[T]", T, Awaitable[T]]) -> "Deferred[T]":
        if isinstance(value, Deferred):
            return value
        return cls(value)

    @property
    def resolved(self) -> bool:
        return self._value is not _UNSET

    def peek(self) -> T:
        """Return the resolved value; raise LookupError if not resolved yet."""
        if self._value is _UNSET:
            raise LookupError("Deferred value has not been resolved")
        return self._value

    async def get(self) -> T:
        if self._value is not _UNSET:
            return self._value
        if self._task is None:
            self._task = asyncio.ensure_future(self._evaluate())
        value = await self._task
        self._value = value
        return value

    async def _evaluate(self) -> Any:
        value = self._source
        if callable(value) and not inspect.isawaitable(value):
            value = value()
        if inspect.isawaitable(value):
            value = await value
        if isinstance(value, Deferred):
            value = await value.get()
        return value

    def apply(self, func: Callable[[T], U]) -> "Deferred[U]":
        """Derive a new Deferred by applying func once this one resolves."""

        async def _derive() -> U:
            return func(await self.get())

        return Deferred(_derive)

    def __repr__(self) -> str:
        if self._value is _UNSET:
            return "Deferred(<pending>)"
        return f"Deferred({self._value!r})"


async def resolve_all(value: Any) -> Any:
    """Recursively replace every Deferred inside dicts and lists with its value."""
    if isinstance(value, Deferred):
        return await resolve_all(await value.get())
    if isinstance(value, dict):
        keys = list(value.keys())
        resolved = await asyncio.gather(*(resolve_all(value[k]) for k in keys))
        return dict(zip(keys, resolved))
    if isinstance(value, (list, tuple)):
        return list(await asyncio.gather(*(resolve_all(v) for v in value)))
    return value
