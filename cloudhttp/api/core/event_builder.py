import base64
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict

from cloudhttp.common.core.request_context import get_request_id

from ..config import config
from ..models.aws_v1 import (
    ApiGatewayIdentity,
    APIGatewayProxyEvent,
    ApiGatewayRequestContext,
)
from ..models.context import InputContext

logger = logging.getLogger("cloudhttp.api.event_builder")


class EventBuilder(ABC):
    @abstractmethod
    def build(self, context: InputContext) -> Dict[str, Any]:
        """
        Build an event dictionary from an InputContext.
        """
        pass


class V1ProxyEventBuilder(EventBuilder):
    """API Gateway V1 (REST API) compatible event builder."""

    def build(self, context: InputContext) -> Dict[str, Any]:
        """
        Build an API Gateway Lambda Proxy Integration-compatible event object from context.
        """
        body = context.body

        # Text bodies travel as-is, anything else base64-encoded.
        is_base64 = "gzip" in context.headers.get("content-encoding", "").lower()
        if is_base64:
            body_content = base64.b64encode(body).decode("utf-8")
        else:
            try:
                body_content = body.decode("utf-8")
            except UnicodeDecodeError:
                body_content = base64.b64encode(body).decode("utf-8")
                is_base64 = True

        aws_request_id = get_request_id() or str(uuid.uuid4())

        event_model = APIGatewayProxyEvent(
            resource=context.route_path or context.path,
            path=context.path,
            httpMethod=context.method,
            headers=context.headers,
            multiValueHeaders=context.multi_headers or None,
            queryStringParameters=context.query_params or None,
            multiValueQueryStringParameters=context.multi_query_params or None,
            pathParameters=context.path_params or None,
            requestContext=ApiGatewayRequestContext(
                identity=ApiGatewayIdentity(
                    sourceIp=context.headers.get("x-forwarded-for", "unknown"),
                    userAgent=context.headers.get("user-agent"),
                ),
                requestId=aws_request_id,
                path=context.path,
                resourcePath=context.route_path or context.path,
                httpMethod=context.method,
                stage=config.STAGE_NAME,
            ),
            body=body_content if body_content else None,
            isBase64Encoded=is_base64,
        )
        logger.debug(
            "Built proxy event",
            extra={"function_name": context.function_name, "path": context.path},
        )

        return event_model.model_dump(exclude_none=True, by_alias=True)
