import base64
import json

import pytest

from cloudhttp.api.config import config
from cloudhttp.api.core.adapter import Response, decode_body, translate_event
from cloudhttp.api.exceptions import ResponseFinalizedError, TransportShapeError


def _collect():
    results = []
    return results, results.append


class TestTranslateEvent:
    def test_request_fields(self, make_event):
        event = make_event(
            method="POST",
            path="/users/42",
            headers={"Host": "api.example.com", "Content-Type": "text/plain", "X-Forwarded-Proto": "https"},
            body=base64.b64encode(b"hello").decode(),
            is_base64=True,
            pathParameters={"id": "42"},
            queryStringParameters={"q": "x"},
        )
        req, res = translate_event(event, lambda result: None)

        assert req.method == "POST"
        assert req.path == "/users/42"
        assert req.body == b"hello"
        assert req.params == {"id": "42"}
        assert req.query == {"q": "x"}
        assert req.headers["content-type"] == "text/plain"
        assert req.get_header("Content-Type") == "text/plain"
        assert req.raw_headers == (
            "Host",
            "api.example.com",
            "Content-Type",
            "text/plain",
            "X-Forwarded-Proto",
            "https",
        )
        assert req.hostname == "api.example.com"
        assert req.protocol == "https"
        assert req.base_url == "/" + config.STAGE_NAME
        assert isinstance(res, Response)

    def test_content_length_is_synthesized(self, make_event):
        req, _ = translate_event(make_event(body="héllo"), lambda result: None)

        assert req.body == "héllo".encode("utf-8")
        assert req.headers["content-length"] == str(len("héllo".encode("utf-8")))

    def test_absent_body_is_empty(self, make_event):
        req, _ = translate_event(make_event(body=None), lambda result: None)

        assert req.body == b""
        assert req.headers["content-length"] == "0"
        assert req.params == {}
        assert req.query == {}

    def test_json_and_text_helpers(self, make_event):
        req, _ = translate_event(make_event(body='{"a": 1}'), lambda result: None)

        assert req.json() == {"a": 1}
        assert req.text() == '{"a": 1}'

    @pytest.mark.parametrize("missing", ["path", "httpMethod", "headers"])
    def test_missing_required_field(self, make_event, missing):
        event = make_event()
        del event[missing]

        with pytest.raises(TransportShapeError):
            translate_event(event, lambda result: None)

    def test_non_mapping_event(self):
        with pytest.raises(TransportShapeError):
            translate_event("not an event", lambda result: None)

    def test_invalid_base64_body(self):
        with pytest.raises(TransportShapeError):
            decode_body("***", True)


class TestResponse:
    def test_end_reports_accumulated_state_once(self):
        results, on_complete = _collect()
        res = Response(on_complete)

        res.status(201).set_header("X-Test", "1").write("a")
        res.write(b"b")
        res.end("c")

        assert res.finalized
        assert len(results) == 1
        result = results[0]
        assert result["statusCode"] == 201
        assert result["headers"] == {"X-Test": "1"}
        assert result["isBase64Encoded"] is True
        assert base64.b64decode(result["body"]) == b"abc"

    def test_defaults(self):
        results, on_complete = _collect()
        Response(on_complete).end()

        assert results[0]["statusCode"] == 200
        assert results[0]["body"] == ""

    def test_headers_are_case_insensitive(self):
        res = Response(lambda result: None)
        res.set_header("Content-Type", "text/plain")
        res.set_header("content-type", "text/html")

        assert res.get_header("CONTENT-TYPE") == "text/html"
        assert res.headers == {"content-type": "text/html"}

    def test_write_encoding(self):
        res = Response(lambda result: None)
        res.write("é", encoding="latin-1")

        assert res.body == b"\xe9"

    @pytest.mark.parametrize(
        "data, encoding, expected",
        [
            ("aGVsbG8=", "base64", b"hello"),
            ("aGVsbG8", "base64", b"hello"),
            ("_-8", "base64url", b"\xff\xef"),
            ("68656c6c6f", "hex", b"hello"),
            ("\xe9", "binary", b"\xe9"),
            ("hi", "utf8", b"hi"),
            ("hi", "ucs2", b"h\x00i\x00"),
        ],
    )
    def test_end_with_buffer_encodings(self, data, encoding, expected):
        results, on_complete = _collect()
        Response(on_complete).end(data, encoding)

        assert base64.b64decode(results[0]["body"]) == expected

    def test_write_rejects_other_types(self):
        with pytest.raises(TypeError):
            Response(lambda result: None).write(123)

    def test_mutation_after_end_raises(self):
        results, on_complete = _collect()
        res = Response(on_complete)
        res.end()

        with pytest.raises(ResponseFinalizedError):
            res.write("late")
        with pytest.raises(ResponseFinalizedError):
            res.end()
        with pytest.raises(ResponseFinalizedError):
            res.status(500)
        with pytest.raises(ResponseFinalizedError):
            res.set_header("a", "b")
        assert len(results) == 1

    def test_json(self):
        results, on_complete = _collect()
        Response(on_complete).json({"ok": True})

        assert results[0]["headers"] == {"content-type": "application/json"}
        assert json.loads(base64.b64decode(results[0]["body"])) == {"ok": True}

    def test_redirect(self):
        results, on_complete = _collect()
        Response(on_complete).redirect("/login")
        Response(on_complete).redirect(301, "https://example.com/")

        assert results[0]["statusCode"] == 302
        assert results[0]["headers"] == {"Location": "/login"}
        assert results[1]["statusCode"] == 301
        assert results[1]["headers"] == {"Location": "https://example.com/"}

    def test_clear(self):
        res = Response(lambda result: None)
        res.status(404).set_header("a", "b").write("x")
        res.clear()

        assert res.status_code == 200
        assert res.headers == {}
        assert res.body == b""

    def test_locals(self):
        res = Response(lambda result: None)
        res.locals["user"] = "alice"

        assert res.locals == {"user": "alice"}
