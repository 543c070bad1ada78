import asyncio

import pytest

from cloudhttp.api.core.deferred import Deferred, resolve_all


@pytest.mark.asyncio
async def test_plain_value():
    deferred = Deferred(5)

    assert await deferred.get() == 5
    assert deferred.resolved
    assert deferred.peek() == 5


def test_peek_before_resolution_raises():
    with pytest.raises(LookupError):
        Deferred(lambda: 1).peek()


@pytest.mark.asyncio
async def test_callable_source_is_evaluated_once():
    calls = []

    async def fetch():
        calls.append(1)
        await asyncio.sleep(0)
        return "value"

    deferred = Deferred(fetch)
    results = await asyncio.gather(deferred.get(), deferred.get(), deferred.get())

    assert results == ["value", "value", "value"]
    assert calls == [1]


@pytest.mark.asyncio
async def test_awaitable_source():
    async def fetch():
        return {"hostname": "svc", "port": 80}

    assert await Deferred(fetch()).get() == {"hostname": "svc", "port": 80}


@pytest.mark.asyncio
async def test_nested_deferred_is_flattened():
    inner = Deferred("inner")

    assert await Deferred(lambda: inner).get() == "inner"


@pytest.mark.asyncio
async def test_apply_derives_a_new_value():
    base = Deferred("arn:1")
    derived = base.apply(lambda arn: arn + "/invocations")

    assert await derived.get() == "arn:1/invocations"
    assert await base.get() == "arn:1"


def test_of_returns_existing_deferred():
    deferred = Deferred(1)

    assert Deferred.of(deferred) is deferred
    assert isinstance(Deferred.of(2), Deferred)


@pytest.mark.asyncio
async def test_resolve_all_walks_containers():
    value = {"a": Deferred(1), "b": [Deferred("x"), 2], "c": {"d": Deferred(lambda: 3)}}

    assert await resolve_all(value) == {"a": 1, "b": ["x", 2], "c": {"d": 3}}
