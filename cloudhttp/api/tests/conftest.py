import base64

import pytest

from cloudhttp.api.config import ApiConfig
from cloudhttp.api.context import DeploymentContext
from cloudhttp.api.http_api import API
from cloudhttp.api.services.infrastructure import InMemoryInfrastructure


@pytest.fixture
def settings():
    return ApiConfig(
        AWS_REGION="us-east-1",
        AWS_ACCOUNT_ID="123456789012",
        STAGE_NAME="stage",
        SWAGGER_VERSION="2.0",
        API_VERSION="1.0",
    )


@pytest.fixture
def infrastructure(settings):
    return InMemoryInfrastructure(settings)


@pytest.fixture
def context(infrastructure, settings):
    return DeploymentContext(infrastructure, settings)


@pytest.fixture
def api(context):
    return API("myapi", context)


@pytest.fixture
def site_dir(tmp_path):
    """A static site: index.html, about.html and css/site.css."""
    root = tmp_path / "site"
    (root / "css").mkdir(parents=True)
    (root / "index.html").write_text("<h1>home</h1>")
    (root / "about.html").write_text("<h1>about</h1>")
    (root / "css" / "site.css").write_text("body { color: red; }")
    return root


def _make_event(method="GET", path="/", headers=None, body=None, is_base64=False, **extra):
    event = {
        "path": path,
        "httpMethod": method,
        "headers": headers if headers is not None else {"Host": "api.example.com"},
        "body": body,
        "isBase64Encoded": is_base64,
    }
    event.update(extra)
    return event


def _decode_body(result):
    return base64.b64decode(result["body"])


@pytest.fixture
def make_event():
    """Factory for API Gateway proxy events."""
    return _make_event


@pytest.fixture
def decode_body():
    """Decode the base64 body of a compute-unit result."""
    return _decode_body
