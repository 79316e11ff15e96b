# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from contextlib import AbstractAsyncContextManager
from logging import Logger
from types import TracebackType
from typing import Any, NamedTuple, Self

# 3p
from azure.core.credentials_async import AsyncTokenCredential
from azure.core.exceptions import HttpResponseError
from azure.mgmt.resource.resources.aio import ResourceManagementClient
from azure.mgmt.resource.resources.models import (
    Deployment,
    DeploymentMode,
    DeploymentProperties,
    ResourceGroup,
)
from tenacity import retry, stop_after_attempt

# project
from deploy.common import MAX_ATTEMPTS, is_exception_retryable
from deploy.concurrency import safe_collect
from deploy.template import TemplateParameters, read_template, serialize_parameters

SUCCEEDED_STATE = "Succeeded"
MISSING_REGISTRATION_FOR_LOCATION = "MissingRegistrationForLocation"


class ValidationResult(NamedTuple):
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ProvisionResult(NamedTuple):
    provisioning_state: str | None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.provisioning_state == SUCCEEDED_STATE


class FailedOperation(NamedTuple):
    resource_type: str | None
    code: str | None
    message: str | None

    @property
    def is_location_unsupported(self) -> bool:
        return self.code == MISSING_REGISTRATION_FOR_LOCATION


def get_error_message(error: Any) -> str:
    """Best effort message from an ARM ErrorResponse or an HttpResponseError"""
    if isinstance(error, HttpResponseError):
        return str(error.message or error)
    message = getattr(error, "message", None)
    code = getattr(error, "code", None)
    if message and code:
        return f"{code}: {message}"
    return str(message or code or error)


class ResourceClient(AbstractAsyncContextManager["ResourceClient"]):
    """Creates resource groups and runs incremental ARM template deployments into them"""

    def __init__(self, log: Logger, credential: AsyncTokenCredential, subscription_id: str) -> None:
        self.log = log
        self.subscription_id = subscription_id
        self.resource_client = ResourceManagementClient(credential, subscription_id)

    async def __aenter__(self) -> Self:
        await self.resource_client.__aenter__()
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None
    ) -> None:
        await self.resource_client.__aexit__(exc_type, exc_val, exc_tb)

    @retry(stop=stop_after_attempt(MAX_ATTEMPTS), retry=is_exception_retryable, reraise=True)
    async def create_resource_group(self, location: str, resource_group: str) -> ResourceGroup:
        """Create or update, an existing group is left in place"""
        return await self.resource_client.resource_groups.create_or_update(
            resource_group, ResourceGroup(location=location)
        )

    def build_deployment(self, template_path: str, params: TemplateParameters) -> Deployment:
        return Deployment(
            properties=DeploymentProperties(
                template=read_template(template_path),
                parameters=serialize_parameters(params),
                mode=DeploymentMode.INCREMENTAL,
            )
        )

    async def validate_deployment(
        self, template_path: str, location: str, resource_group: str, deployment_name: str, params: TemplateParameters
    ) -> ValidationResult:
        deployment = self.build_deployment(template_path, params)
        self.log.debug("Validating deployment %s in %s (%s)", deployment_name, resource_group, location)
        try:
            poller = await self.resource_client.deployments.begin_validate(resource_group, deployment_name, deployment)
            result = await poller.result()
        except HttpResponseError as e:
            return ValidationResult(get_error_message(e))
        if result is not None and result.error is not None:
            return ValidationResult(get_error_message(result.error))
        return ValidationResult()

    async def create_deployment(
        self, template_path: str, location: str, resource_group: str, deployment_name: str, params: TemplateParameters
    ) -> ProvisionResult:
        deployment = self.build_deployment(template_path, params)
        self.log.debug("Creating deployment %s in %s (%s)", deployment_name, resource_group, location)
        try:
            poller = await self.resource_client.deployments.begin_create_or_update(
                resource_group, deployment_name, deployment
            )
            result = await poller.result()
        except HttpResponseError as e:
            return ProvisionResult(None, get_error_message(e))
        properties = result.properties if result else None
        state = properties.provisioning_state if properties else None
        error = properties.error if properties else None
        return ProvisionResult(str(state) if state else None, get_error_message(error) if error else None)

    async def get_deployment_outputs(self, resource_group: str, deployment_name: str) -> dict[str, Any]:
        """Raw outputs of a finished deployment, still wrapped in `{"value": X}` envelopes"""
        deployment = await self.resource_client.deployments.get(resource_group, deployment_name)
        if deployment.properties and deployment.properties.outputs:
            return dict(deployment.properties.outputs)
        return {}

    async def get_failed_operations(self, resource_group: str, deployment_name: str) -> list[FailedOperation] | None:
        """Operations of a deployment which carry an error, None if the deployment has no operations"""
        operations = await safe_collect(
            self.resource_client.deployment_operations.list(resource_group, deployment_name), self.log
        )
        if not operations:
            return None
        failed = []
        for operation in operations:
            properties = operation.properties
            status_message = properties.status_message if properties else None
            error = status_message.error if status_message else None
            if error is None:
                continue
            target = properties.target_resource if properties else None
            failed.append(FailedOperation(target.resource_type if target else None, error.code, error.message))
        return failed
