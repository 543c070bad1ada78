import asyncio
import base64
import json
from unittest.mock import Mock

import pytest

from cloudhttp.api.core.dispatcher import HandlerChain
from cloudhttp.api.runtime import RouteFunction, create_route_function, error_result, handle_event
from cloudhttp.common.core.request_context import get_request_id


def greet(req, res, next):
    res.json({"hello": req.params.get("name"), "request_id": get_request_id()})


def test_route_function_serves_an_event(make_event, decode_body):
    function = create_route_function([greet], "get", "/hello/{name}", "myapi1234abcd")
    event = make_event(path="/hello/world", pathParameters={"name": "world"})

    result = function(event, Mock(aws_request_id="platform-request"))

    assert isinstance(function, RouteFunction)
    assert function.name == "myapi1234abcd"
    assert function.chain.method == "GET"
    assert result["statusCode"] == 200
    assert json.loads(decode_body(result)) == {"hello": "world", "request_id": "platform-request"}
    assert get_request_id() is None


def test_route_function_waits_for_async_handlers(make_event, decode_body):
    async def slow(req, res, next):
        await asyncio.sleep(0.01)
        res.end("late")

    result = create_route_function([slow], "any", "/slow")(make_event(path="/slow"))

    assert decode_body(result) == b"late"


def test_malformed_event_answers_500(decode_body):
    function = create_route_function([greet], "get", "/hello/{name}")

    result = function({"path": "/hello/x"})

    assert result["statusCode"] == 500
    assert json.loads(decode_body(result))["message"] == "Internal Server Error"


def test_handler_failure_answers_500(make_event, decode_body):
    def broken(req, res, next):
        raise KeyError("missing")

    result = create_route_function([broken], "post", "/x")(make_event(method="POST", path="/x"))

    assert result["statusCode"] == 500
    assert json.loads(decode_body(result))["detail"] == "'missing'"


@pytest.mark.asyncio
async def test_handle_event_inside_running_loop(make_event, decode_body):
    chain = HandlerChain([lambda req, res, next: res.end(req.body)], "POST", "/echo")

    result = await handle_event(chain, make_event(method="POST", path="/echo", body="ping"))

    assert decode_body(result) == b"ping"


@pytest.mark.asyncio
async def test_invoke_inside_running_loop(make_event, decode_body):
    function = create_route_function([lambda req, res, next: res.end("ok")], "get", "/")

    result = await function.invoke(make_event())

    assert decode_body(result) == b"ok"


@pytest.mark.asyncio
async def test_sync_entrypoint_inside_running_loop(make_event, decode_body):
    function = create_route_function([greet], "get", "/hello/{name}")
    event = make_event(path="/hello/loop", pathParameters={"name": "loop"})

    result = function(event, Mock(aws_request_id="nested-request"))

    assert result["statusCode"] == 200
    assert json.loads(decode_body(result)) == {"hello": "loop", "request_id": "nested-request"}


def test_error_result_shape(decode_body):
    result = error_result(502, "Bad Gateway", "upstream down")

    assert result["statusCode"] == 502
    assert result["isBase64Encoded"] is True
    assert json.loads(base64.b64decode(result["body"])) == {"message": "Bad Gateway", "detail": "upstream down"}
