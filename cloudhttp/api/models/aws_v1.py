# cloudhttp/api/models/aws_v1.py

"""
Pydantic models for AWS API Gateway v1 (REST API) proxy integration events.

Reference: https://docs.aws.amazon.com/apigateway/latest/developerguide/set-up-lambda-proxy-integrations.html#api-gateway-simple-proxy-for-lambda-input-format

APIGatewayProxyEvent is the IncomingEvent a compute unit receives;
APIGatewayProxyResult is the completion result handed back to the transport.
"""

from typing import Dict, Any, Optional, List
from pydantic import BaseModel, Field, ConfigDict


class ApiGatewayIdentity(BaseModel):
    """API Gateway Identity object."""

    sourceIp: Optional[str] = None
    userAgent: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class ApiGatewayRequestContext(BaseModel):
    """API Gateway Request Context object."""

    accountId: Optional[str] = None
    resourceId: Optional[str] = None
    apiId: Optional[str] = None
    identity: Optional[ApiGatewayIdentity] = None
    authorizer: Optional[Dict[str, Any]] = None
    requestId: Optional[str] = None
    stage: str = "stage"
    path: Optional[str] = None
    resourcePath: Optional[str] = None
    httpMethod: Optional[str] = None
    protocol: str = "HTTP/1.1"

    model_config = ConfigDict(extra="allow")


class APIGatewayProxyEvent(BaseModel):
    """
    AWS API Gateway Proxy Integration (v1) Event Structure

    `path`, `httpMethod` and `headers` are required. The transport sends null
    for empty query/path parameter maps; those are normalized to empty dicts.
    Use model_dump(exclude_none=True, by_alias=True) to convert to a dict.
    """

    resource: Optional[str] = None
    path: str
    httpMethod: str
    headers: Dict[str, str]
    multiValueHeaders: Optional[Dict[str, List[str]]] = None
    queryStringParameters: Optional[Dict[str, str]] = None
    multiValueQueryStringParameters: Optional[Dict[str, List[str]]] = None
    pathParameters: Optional[Dict[str, str]] = None
    stageVariables: Optional[Dict[str, str]] = None
    requestContext: Optional[ApiGatewayRequestContext] = None
    body: Optional[str] = None
    isBase64Encoded: bool = False

    model_config = ConfigDict(extra="allow")


class APIGatewayProxyResult(BaseModel):
    """Completion result of a compute-unit invocation."""

    statusCode: int = 200
    headers: Dict[str, str] = Field(default_factory=dict)
    body: str = ""
    isBase64Encoded: bool = True
