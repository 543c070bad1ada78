"""
Infrastructure effects.

The routing compiler never talks to a cloud provider directly. Every
resource it needs (compute units, buckets, roles, the REST API itself) is
requested by name through an Infrastructure implementation, which returns
Deferred handles for values only known after provisioning.

InMemoryInfrastructure records the requested resources and fabricates
provider-shaped identifiers. It backs tests and dry runs, and keeps the
compute-unit callables so they can be invoked in-process.
"""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..config import ApiConfig, config as default_config
from ..core.deferred import Deferred
from ..core.naming import sha1hash
from ..models.routes import CloudDomain, Domain

logger = logging.getLogger("cloudhttp.api.infrastructure")

APIGATEWAY_ASSUME_ROLE_POLICY = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Sid": "",
            "Effect": "Allow",
            "Principal": {"Service": "apigateway.amazonaws.com"},
            "Action": "sts:AssumeRole",
        }
    ],
}

S3_FULL_ACCESS_POLICY_ARN = "arn:aws:iam::aws:policy/AmazonS3FullAccess"


@dataclass
class DeploymentHandle:
    id: Deferred
    execution_arn: Deferred
    invoke_url: Deferred


@dataclass
class ProvisionedResource:
    kind: str
    name: str
    properties: Dict[str, Any] = field(default_factory=dict)


class Infrastructure(ABC):
    """Boundary to the provisioning layer."""

    @abstractmethod
    def create_bucket(self, name: str) -> Deferred:
        """Create a storage bucket; resolves to the bucket name."""

    @abstractmethod
    def create_bucket_object(
        self, name: str, bucket: Deferred, key: str, source: str, content_type: Optional[str]
    ) -> None:
        """Upload a local file as a bucket object."""

    @abstractmethod
    def create_role(self, name: str, assume_role_policy: Mapping[str, Any], policy_arns: List[str]) -> Deferred:
        """Create a role; resolves to the role ARN."""

    @abstractmethod
    def create_function(self, name: str, handler: Callable[[Any, Any], Any]) -> Deferred:
        """Create a compute unit running handler; resolves to its ARN."""

    @abstractmethod
    def create_vpc_link(self, name: str, target: Deferred) -> Deferred:
        """Create a private link to an endpoint; resolves to the link id."""

    @abstractmethod
    def create_rest_api(self, name: str, body: Deferred) -> Deferred:
        """Create the gateway from a routing document; resolves to the API id."""

    @abstractmethod
    def create_deployment(self, name: str, rest_api: Deferred, version: Deferred) -> DeploymentHandle:
        """Deploy the current routing document of rest_api."""

    @abstractmethod
    def create_stage(self, name: str, stage_name: str, rest_api: Deferred, deployment: DeploymentHandle) -> None:
        """Point a named stage at a deployment."""

    @abstractmethod
    def create_permission(self, name: str, function: Deferred, source_arn: Deferred) -> None:
        """Allow the gateway to invoke a compute unit."""

    @abstractmethod
    def create_domain(self, name: str, domain: Domain, rest_api: Deferred, stage_name: str) -> Deferred:
        """Map a custom domain to a stage; resolves to the DNS target name."""


class InMemoryInfrastructure(Infrastructure):
    def __init__(self, settings: Optional[ApiConfig] = None):
        self.config = settings or default_config
        self.resources: List[ProvisionedResource] = []
        self.functions: Dict[str, Callable[[Any, Any], Any]] = {}

    def _record(self, kind: str, name: str, **properties: Any) -> ProvisionedResource:
        resource = ProvisionedResource(kind=kind, name=name, properties=properties)
        self.resources.append(resource)
        logger.debug("Provisioned %s %s", kind, name)
        return resource

    def find(self, kind: str, name: Optional[str] = None) -> List[ProvisionedResource]:
        return [r for r in self.resources if r.kind == kind and (name is None or r.name == name)]

    def create_bucket(self, name: str) -> Deferred:
        self._record("bucket", name)
        return Deferred(name)

    def create_bucket_object(
        self, name: str, bucket: Deferred, key: str, source: str, content_type: Optional[str]
    ) -> None:
        self._record(
            "bucket_object",
            name,
            bucket=bucket,
            key=key,
            source=os.path.abspath(source),
            content_type=content_type,
        )

    def create_role(self, name: str, assume_role_policy: Mapping[str, Any], policy_arns: List[str]) -> Deferred:
        self._record("role", name, assume_role_policy=dict(assume_role_policy), policy_arns=list(policy_arns))
        return Deferred(f"arn:aws:iam::{self.config.AWS_ACCOUNT_ID}:role/{name}")

    def create_function(self, name: str, handler: Callable[[Any, Any], Any]) -> Deferred:
        self._record("function", name)
        self.functions[name] = handler
        return Deferred(
            f"arn:aws:lambda:{self.config.AWS_REGION}:{self.config.AWS_ACCOUNT_ID}:function:{name}"
        )

    def create_vpc_link(self, name: str, target: Deferred) -> Deferred:
        self._record("vpc_link", name, target=target)
        return Deferred(f"vl-{sha1hash(name, 10)}")

    def create_rest_api(self, name: str, body: Deferred) -> Deferred:
        self._record("rest_api", name, body=body)
        return Deferred(sha1hash(name, 10))

    def create_deployment(self, name: str, rest_api: Deferred, version: Deferred) -> DeploymentHandle:
        self._record("deployment", name, rest_api=rest_api, version=version)
        region = self.config.AWS_REGION
        account = self.config.AWS_ACCOUNT_ID
        return DeploymentHandle(
            id=version.apply(lambda v: f"dep-{v}"),
            execution_arn=rest_api.apply(lambda api_id: f"arn:aws:execute-api:{region}:{account}:{api_id}/"),
            invoke_url=rest_api.apply(lambda api_id: f"https://{api_id}.execute-api.{region}.amazonaws.com/"),
        )

    def create_stage(self, name: str, stage_name: str, rest_api: Deferred, deployment: DeploymentHandle) -> None:
        self._record("stage", name, stage_name=stage_name, rest_api=rest_api, deployment=deployment.id)

    def create_permission(self, name: str, function: Deferred, source_arn: Deferred) -> None:
        self._record(
            "permission",
            name,
            action="lambda:invokeFunction",
            principal="apigateway.amazonaws.com",
            function=function,
            source_arn=source_arn,
        )

    def create_domain(self, name: str, domain: Domain, rest_api: Deferred, stage_name: str) -> Deferred:
        certificate = "body" if isinstance(domain, CloudDomain) else "arn"
        self._record(
            "domain", name, domain_name=domain.domainName, certificate=certificate, rest_api=rest_api, stage_name=stage_name
        )
        return Deferred(f"d{sha1hash(domain.domainName, 13)}.cloudfront.net")
