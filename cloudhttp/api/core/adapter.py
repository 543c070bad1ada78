"""
Request/Response adaptation.

Converts an IncomingEvent (API Gateway proxy event) into a portable Request
and a Response bound to a completion callback. The Response buffers status,
headers and body until end() finalizes it; the callback then receives the
accumulated state with the body base64-encoded.
"""

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from ..config import config
from ..exceptions import ResponseFinalizedError, TransportShapeError
from ..models.aws_v1 import APIGatewayProxyEvent, APIGatewayProxyResult

logger = logging.getLogger("cloudhttp.api.adapter")

CompletionCallback = Callable[[Dict[str, Any]], None]

# Buffer-style encoding names that str.encode does not know.
_TEXT_ENCODING_ALIASES = {
    "binary": "latin-1",
    "ucs2": "utf-16-le",
    "ucs-2": "utf-16-le",
    "utf16le": "utf-16-le",
}


def encode_chunk(data: str, encoding: Optional[str] = None) -> bytes:
    """
    Convert a string body chunk to bytes.

    `base64` and `hex` decode the string into the bytes it represents; any
    other name is a text codec (utf-8 by default).
    """
    name = (encoding or "utf-8").lower()
    if name in ("base64", "base64url"):
        if name == "base64url":
            data = data.replace("-", "+").replace("_", "/")
        return base64.b64decode(data + "=" * (-len(data) % 4))
    if name == "hex":
        return bytes.fromhex(data)
    return data.encode(_TEXT_ENCODING_ALIASES.get(name, name))


@dataclass(frozen=True)
class Request:
    """
    Immutable view of one HTTP request.

    `headers` has lower-cased names; `raw_headers` keeps the original names as
    a flat [name, value, name, value, ...] sequence.
    """

    body: bytes
    method: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    raw_headers: Tuple[str, ...] = ()
    params: Dict[str, str] = field(default_factory=dict)
    query: Dict[str, str] = field(default_factory=dict)
    protocol: Optional[str] = None
    hostname: Optional[str] = None
    base_url: str = ""

    def get_header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding)

    def json(self) -> Any:
        return json.loads(self.body or b"null")


class Response:
    """
    Mutable response accumulator: Open until end(), Finalized afterwards.

    Mutations after finalization raise ResponseFinalizedError.
    """

    def __init__(self, on_complete: CompletionCallback):
        self._on_complete = on_complete
        self._status_code = 200
        # lower-cased name -> (name as last set, value)
        self._headers: Dict[str, Tuple[str, str]] = {}
        self._body = bytearray()
        self._finalized = False
        self.locals: Dict[str, Any] = {}

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def headers(self) -> Dict[str, str]:
        return {name: value for name, value in self._headers.values()}

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    @property
    def finalized(self) -> bool:
        return self._finalized

    def _ensure_open(self, operation: str) -> None:
        if self._finalized:
            raise ResponseFinalizedError(operation)

    def status(self, code: int) -> "Response":
        self._ensure_open("set status")
        self._status_code = int(code)
        return self

    def set_header(self, name: str, value: str) -> "Response":
        self._ensure_open("set header")
        self._headers[name.lower()] = (name, str(value))
        return self

    def get_header(self, name: str) -> Optional[str]:
        entry = self._headers.get(name.lower())
        return entry[1] if entry else None

    def write(self, data: Union[str, bytes], encoding: Optional[str] = None) -> "Response":
        self._ensure_open("write")
        if isinstance(data, str):
            data = encode_chunk(data, encoding)
        elif not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"write() expects str or bytes, got {type(data).__name__}")
        self._body.extend(data)
        return self

    def end(self, data: Union[str, bytes, None] = None, encoding: Optional[str] = None) -> None:
        self._ensure_open("end")
        if data is not None:
            self.write(data, encoding)
        self._finalized = True
        result = APIGatewayProxyResult(
            statusCode=self._status_code,
            headers=self.headers,
            body=base64.b64encode(bytes(self._body)).decode("ascii"),
            isBase64Encoded=True,
        )
        self._on_complete(result.model_dump())

    def json(self, obj: Any) -> None:
        self.set_header("content-type", "application/json")
        self.end(json.dumps(obj))

    def redirect(self, url_or_status: Union[str, int], url: Optional[str] = None) -> None:
        """redirect(url) answers 302; redirect(status, url) uses the given status."""
        if url is None:
            status, location = 302, url_or_status
        else:
            status, location = url_or_status, url
        self.status(int(status))
        self.set_header("Location", str(location))
        self.end()

    def clear(self) -> "Response":
        """Discard buffered status, headers and body of an open response."""
        self._ensure_open("clear")
        self._status_code = 200
        self._headers.clear()
        self._body.clear()
        return self


def decode_body(body: Optional[str], is_base64: bool) -> bytes:
    if body is None:
        return b""
    if is_base64:
        try:
            return base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError) as e:
            raise TransportShapeError(f"body is not valid base64: {e}") from e
    return body.encode("utf-8")


def parse_event(event: Union[Mapping[str, Any], APIGatewayProxyEvent]) -> APIGatewayProxyEvent:
    if isinstance(event, APIGatewayProxyEvent):
        return event
    if not isinstance(event, Mapping):
        raise TransportShapeError(f"expected a mapping, got {type(event).__name__}")
    try:
        return APIGatewayProxyEvent.model_validate(dict(event))
    except ValidationError as e:
        raise TransportShapeError(str(e)) from e


def translate_event(
    event: Union[Mapping[str, Any], APIGatewayProxyEvent], on_complete: CompletionCallback
) -> Tuple[Request, Response]:
    """
    Build the Request/Response pair for one incoming event.

    Raises:
        TransportShapeError: the event is missing path, httpMethod or headers,
            or carries an undecodable body.
    """
    ev = parse_event(event)
    body = decode_body(ev.body, ev.isBase64Encoded)

    headers: Dict[str, str] = {}
    raw_headers = []
    for name, value in ev.headers.items():
        headers[name.lower()] = value
        raw_headers.append(name)
        raw_headers.append(value)
    # The transport strips content-length.
    headers["content-length"] = str(len(body))

    request = Request(
        body=body,
        method=ev.httpMethod,
        path=ev.path,
        headers=headers,
        raw_headers=tuple(raw_headers),
        params=dict(ev.pathParameters or {}),
        query=dict(ev.queryStringParameters or {}),
        protocol=headers.get("x-forwarded-proto"),
        hostname=headers.get("host"),
        base_url="/" + config.STAGE_NAME,
    )
    logger.debug(
        "Translated incoming event",
        extra={"method": request.method, "path": request.path, "body_length": len(body)},
    )
    return request, Response(on_complete)
