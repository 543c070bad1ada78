"""
HTTP API configuration definition.

Loads configuration from environment variables and provides a Pydantic model.
Uses pydantic-settings for type safety and defaults.
"""

import sys
from typing import List

from pydantic import Field

from cloudhttp.common.core.config import BaseAppConfig


class ApiConfig(BaseAppConfig):
    """
    Configuration for routing-document generation, compute units and local emulation.
    """

    # Provider settings
    AWS_REGION: str = Field(default="us-east-1", description="Region used in integration ARNs")
    AWS_ACCOUNT_ID: str = Field(default="123456789012", description="Account used in ARNs")
    STAGE_NAME: str = Field(default="stage", description="Stage that serves the latest deployment")

    # Routing document settings
    SWAGGER_VERSION: str = Field(default="2.0", description="Routing document format version")
    API_VERSION: str = Field(default="1.0", description="info.version of the routing document")
    BINARY_MEDIA_TYPES: List[str] = Field(
        default_factory=lambda: ["*/*"], description="Payload types passed through untouched"
    )
    COMPUTE_UNIT_HASH_LENGTH: int = Field(
        default=8, ge=4, le=40, description="Hex chars of the (method, path) hash in unit names"
    )

    # Local emulation
    LOCAL_HOST: str = Field(default="127.0.0.1", description="Local server bind host")
    LOCAL_PORT: int = Field(default=8000, description="Local server bind port")
    PROXY_TIMEOUT: float = Field(default=30.0, description="Upstream proxy timeout (seconds)")


# Load config as a singleton.
try:
    config = ApiConfig()
except Exception as e:
    sys.stderr.write(f"Failed to load configuration: {e}\n")
    raise
