import json

import pytest

from cloudhttp.api.core.methods import ANY_METHOD
from cloudhttp.api.core.naming import compute_unit_name, permission_name, sha1hash
from cloudhttp.api.exceptions import AlreadyPublishedError, CloudHttpError, RouteConflictError
from cloudhttp.api.http_api import HttpDeployment
from cloudhttp.api.models.routes import CloudDomain, ProviderDomain
from cloudhttp.api.models.swagger import INTEGRATION_KEY

REGION = "us-east-1"
ACCOUNT = "123456789012"


def hello(req, res, next):
    res.end("hello " + req.params.get("name", "world"))


def test_route_helpers_register_methods(api):
    api.get("/a", hello).put("/a", hello).post("/a", hello).delete("/a", hello)
    api.options("/a", hello).head("/a", hello).patch("/a", hello).all("/a", hello)

    methods = {r.method for r in api.registry.registrations()}
    assert methods == {"get", "put", "post", "delete", "options", "head", "patch", ANY_METHOD}


def test_duplicate_route_is_rejected(api):
    api.get("/a", hello)

    with pytest.raises(RouteConflictError):
        api.route("GET", "/a", hello)


def test_publish_twice_fails(api):
    api.get("/a", hello)
    deployment = api.publish()

    assert isinstance(deployment, HttpDeployment)
    with pytest.raises(AlreadyPublishedError):
        api.publish()
    assert api.deployment is deployment


def test_routes_are_frozen_after_publish(api):
    api.publish()

    with pytest.raises(CloudHttpError):
        api.get("/late", hello)
    with pytest.raises(CloudHttpError):
        api.attach_custom_domain(ProviderDomain(domainName="api.example.com", certificateArn="arn:cert"))


@pytest.mark.asyncio
async def test_deployment_url(api):
    api.get("/a", hello)
    deployment = api.publish()

    api_id = sha1hash("myapi", 10)
    assert await deployment.url.get() == f"https://{api_id}.execute-api.{REGION}.amazonaws.com/stage/"


@pytest.mark.asyncio
async def test_rest_api_receives_rendered_document(api, infrastructure):
    api.get("/hello/{name}", hello)
    deployment = api.publish()

    (rest_api,) = infrastructure.find("rest_api", "myapi")
    body = await rest_api.properties["body"].get()
    swagger = await deployment.swagger()

    assert json.loads(body) == swagger
    assert swagger["paths"]["/hello/{name}"]["get"][INTEGRATION_KEY]["type"] == "aws_proxy"

    (deployment_resource,) = infrastructure.find("deployment")
    assert await deployment_resource.properties["version"].get() == sha1hash(body)
    (stage,) = infrastructure.find("stage")
    assert stage.properties["stage_name"] == "stage"


@pytest.mark.asyncio
async def test_invoke_permissions(api, infrastructure):
    api.get("/hello/{name}", hello)
    api.all("/any", hello)
    api.publish()

    api_id = sha1hash("myapi", 10)
    execution_arn = f"arn:aws:execute-api:{REGION}:{ACCOUNT}:{api_id}/"
    permissions = {p.name: p for p in infrastructure.find("permission")}

    get_permission = permissions[permission_name("myapi", "get", "/hello/{name}")]
    assert await get_permission.properties["source_arn"].get() == execution_arn + "stage/GET/hello/{name}"
    function_name = compute_unit_name("myapi", "get", "/hello/{name}")
    assert await get_permission.properties["function"].get() == (
        f"arn:aws:lambda:{REGION}:{ACCOUNT}:function:{function_name}"
    )

    any_permission = permissions[permission_name("myapi", ANY_METHOD, "/any")]
    assert await any_permission.properties["source_arn"].get() == execution_arn + "stage/*/any"


def test_static_and_proxy_routes_get_no_permissions(api, infrastructure, site_dir):
    api.static("/", str(site_dir))
    api.proxy("/docs", "https://docs.example.com")
    deployment = api.publish()

    assert deployment.compute_units == []
    assert infrastructure.find("permission") == []


@pytest.mark.asyncio
async def test_custom_domains(api, infrastructure):
    api.attach_custom_domain(ProviderDomain(domainName="api.example.com", certificateArn="arn:cert"))
    api.attach_custom_domain(
        CloudDomain(
            domainName="www.example.com",
            certificateBody="body",
            certificatePrivateKey="key",
            certificateChain="chain",
        )
    )
    deployment = api.publish()

    names = [await d.get() for d in deployment.custom_domain_names]
    assert len(names) == 2
    assert all(name.endswith(".cloudfront.net") for name in names)
    certificates = {d.properties["domain_name"]: d.properties["certificate"] for d in infrastructure.find("domain")}
    assert certificates == {"api.example.com": "arn", "www.example.com": "body"}


def test_published_compute_unit_is_invocable(api, infrastructure, make_event, decode_body):
    api.get("/hello/{name}", hello)
    api.publish()

    function = infrastructure.functions[compute_unit_name("myapi", "get", "/hello/{name}")]
    result = function(make_event(path="/hello/bob", pathParameters={"name": "bob"}), None)

    assert result["statusCode"] == 200
    assert decode_body(result) == b"hello bob"
