"""
Pydantic models for the routing document (Swagger 2.0 with API Gateway extensions).

Integration fields that depend on provisioned resources (`uri`,
`credentials`, `connectionId`) may hold a Deferred until the document is
resolved. Use `await document.resolved()` before serializing.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from ..core.deferred import Deferred
from ..core.methods import method_matches
from ..core.path_pattern import PathPattern

INTEGRATION_KEY = "x-amazon-apigateway-integration"
BINARY_MEDIA_TYPES_KEY = "x-amazon-apigateway-binary-media-types"
GATEWAY_RESPONSES_KEY = "x-amazon-apigateway-gateway-responses"

DeferredStr = Union[str, Deferred]


class SwaggerInfo(BaseModel):
    title: str
    version: str


class SwaggerHeader(BaseModel):
    type: str = "string"


class SwaggerSchema(BaseModel):
    type: str


class SwaggerResponse(BaseModel):
    description: str
    schema_: Optional[SwaggerSchema] = Field(default=None, alias="schema")
    headers: Optional[Dict[str, SwaggerHeader]] = None

    model_config = ConfigDict(populate_by_name=True)


class SwaggerParameter(BaseModel):
    name: str
    in_: str = Field(default="path", alias="in")
    required: bool = True
    type: str = "string"

    model_config = ConfigDict(populate_by_name=True)


class IntegrationResponse(BaseModel):
    statusCode: str
    responseParameters: Optional[Dict[str, str]] = None


class ApiGatewayIntegration(BaseModel):
    uri: DeferredStr
    httpMethod: str
    type: str
    passthroughBehavior: str = "when_no_match"
    credentials: Optional[DeferredStr] = None
    requestParameters: Optional[Dict[str, str]] = None
    responses: Optional[Dict[str, IntegrationResponse]] = None
    connectionType: Optional[str] = None
    connectionId: Optional[DeferredStr] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    async def resolved(self) -> "ApiGatewayIntegration":
        uri, credentials, connection_id = await asyncio.gather(
            _resolve(self.uri), _resolve(self.credentials), _resolve(self.connectionId)
        )
        return self.model_copy(
            update={"uri": uri, "credentials": credentials, "connectionId": connection_id}
        )


class SwaggerOperation(BaseModel):
    parameters: Optional[List[SwaggerParameter]] = None
    responses: Optional[Dict[str, SwaggerResponse]] = None
    integration: ApiGatewayIntegration = Field(alias=INTEGRATION_KEY)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    async def resolved(self) -> "SwaggerOperation":
        return self.model_copy(update={"integration": await self.integration.resolved()})


class RoutingDocument(BaseModel):
    """
    path → method key → SwaggerOperation.

    Method keys are lower-case HTTP methods or the any-method sentinel.
    """

    swagger: str = "2.0"
    info: SwaggerInfo
    paths: Dict[str, Dict[str, SwaggerOperation]] = Field(default_factory=dict)
    binary_media_types: List[str] = Field(
        default_factory=lambda: ["*/*"], alias=BINARY_MEDIA_TYPES_KEY
    )
    gateway_responses: Dict[str, Any] = Field(default_factory=dict, alias=GATEWAY_RESPONSES_KEY)

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    async def resolved(self) -> "RoutingDocument":
        """Return a copy whose deferred integration fields are all resolved."""
        keys = [(p, m) for p, methods in self.paths.items() for m in methods]
        operations = await asyncio.gather(*(self.paths[p][m].resolved() for p, m in keys))
        paths: Dict[str, Dict[str, SwaggerOperation]] = {p: {} for p in self.paths}
        for (p, m), op in zip(keys, operations):
            paths[p][m] = op
        return self.model_copy(update={"paths": paths})

    def to_dict(self) -> Dict[str, Any]:
        """Serialize a resolved document."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def match(
        self, method: str, path: str
    ) -> Optional[Tuple[str, str, SwaggerOperation, Dict[str, str]]]:
        """
        Find the operation answering a concrete request.

        Returns (path key, method key, operation, path parameters) or None.
        A concrete method key wins over the any-method key on the same path.
        """
        candidates = []
        for key, methods in self.paths.items():
            pattern = PathPattern.compile(key)
            params = pattern.match(path)
            if params is None:
                continue
            for method_key in methods:
                if method_matches(method_key, method):
                    exact = 0 if method_key == method.lower() else 1
                    candidates.append((pattern.specificity, exact, key, method_key, params))
        if not candidates:
            return None
        candidates.sort(key=lambda c: (c[0], c[1]))
        _, _, key, method_key, params = candidates[0]
        return key, method_key, self.paths[key][method_key], params

    def resolve(self, method: str, path: str) -> Optional[str]:
        """
        Upstream URI a concrete request is sent to, with path parameters
        substituted through the integration's request parameter mapping.
        The document must already be resolved.
        """
        found = self.match(method, path)
        if found is None:
            return None
        _, _, operation, params = found
        uri = operation.integration.uri
        if isinstance(uri, Deferred):
            uri = uri.peek()
        mapping = operation.integration.requestParameters or {}
        for target, source in mapping.items():
            name = target.rsplit(".", 1)[-1]
            value = params.get(source.rsplit(".", 1)[-1])
            if value is not None:
                uri = uri.replace("{" + name + "}", value)
        return uri


async def _resolve(value: Any) -> Any:
    if isinstance(value, Deferred):
        return await value.get()
    return value
