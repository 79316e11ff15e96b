# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from asyncio import to_thread
from os import path
from typing import Any, Literal, NamedTuple, TypeAlias

# project
from deploy.build import dotnet_publish, prepare_deploy_files, zip_directory
from deploy.client.identity_client import GRAPH_BASE_URL, IdentityClient
from deploy.client.resource_client import FailedOperation, ResourceClient
from deploy.client.zip_deploy_client import ZipDeployClient
from deploy.common import (
    DEFAULT_LANGUAGE,
    DeployStatus,
    get_delete_resource_group_hint,
    get_resource_group_name,
    log_errors,
    timestamp_millis,
)
from deploy.luis_publisher import LuisPublisher
from deploy.task import Task
from deploy.template import get_deployment_template_params, unpack_outputs
from settings.common import (
    APP_ID_KEY,
    APP_PASSWORD_KEY,
    LUIS_KEY,
    InvalidSettingsError,
    SettingsDocument,
    merge_settings,
    read_settings,
    write_settings,
)
from settings.deploy_config import SETTINGS_FILE_NAME

BOT_PROJECT_DEPLOY_NAME = "bot_project_deploy"

DeployStep: TypeAlias = Literal["provision", "prepare", "build", "luis", "package", "upload", "done"]


class DeployResult(NamedTuple):
    success: bool
    step: DeployStep
    error: BaseException | None = None


class LuisCredentials(NamedTuple):
    authoring_key: str | None
    authoring_region: str | None
    endpoint_key: str

    @property
    def complete(self) -> bool:
        return bool(self.authoring_key and self.authoring_region)


def resolve_luis_credentials(
    settings: SettingsDocument, authoring_key: str | None, authoring_region: str | None
) -> LuisCredentials:
    """Explicit credentials win over the ones stored in the settings document"""
    luis_settings: dict[str, Any] = settings.get(LUIS_KEY) or {}
    return LuisCredentials(
        authoring_key=authoring_key or luis_settings.get("authoringKey") or None,
        authoring_region=authoring_region or luis_settings.get("region") or None,
        endpoint_key=luis_settings.get("endpointKey") or "",
    )


class BotProjectDeploy(Task):
    """Provisions the Azure resources for a bot project and publishes the built bot to them"""

    NAME = BOT_PROJECT_DEPLOY_NAME

    def _progress(self, status: DeployStatus, message: str, *args: object) -> None:
        if status in (DeployStatus.PROVISION_ERROR, DeployStatus.DEPLOY_ERROR):
            self.log.error(message, *args, extra={"status": status})
        else:
            self.log.info(message, *args, extra={"status": status})

    # ========================= PROVISIONING =========================

    async def create(
        self,
        name: str,
        location: str,
        environment: str,
        app_password: str | None,
        luis_authoring_key: str | None = None,
    ) -> bool:
        """Provision a set of Azure resources for use with a bot, returns whether provisioning succeeded"""
        if not path.exists(self.config.settings_path):
            self._progress(
                DeployStatus.PROVISION_INFO,
                "! Could not find an '%s' file in the current directory.",
                SETTINGS_FILE_NAME,
            )
            return False

        try:
            settings = read_settings(self.config.settings_path)
        except InvalidSettingsError as e:
            self._progress(DeployStatus.PROVISION_ERROR, "! %s", e)
            return False
        app_id: str | None = settings.get(APP_ID_KEY) or None

        if not app_id:
            if not app_password:
                self._progress(DeployStatus.PROVISION_INFO, "App password is required")
                return False
            app_id = await self.create_app_registration(name, app_password)

        self._progress(DeployStatus.PROVISION_INFO, "> Create App Id Success! ID: %s", app_id)
        app_password = app_password or settings.get(APP_PASSWORD_KEY) or ""

        resource_group = get_resource_group_name(name, environment)
        deployment_name = timestamp_millis()
        params = get_deployment_template_params(
            app_id, app_password, location, name, should_create_authoring_resource=not luis_authoring_key
        )

        async with ResourceClient(self.log, self.credential, self.config.subscription_id) as client:
            self._progress(DeployStatus.PROVISION_INFO, "> Creating resource group ...")
            group = await client.create_resource_group(location, resource_group)
            self.log.debug("Resource group: %s", group)

            self._progress(DeployStatus.PROVISION_INFO, "> Validating Azure deployment ...")
            validation = await client.validate_deployment(
                self.config.template_path, location, resource_group, deployment_name, params
            )
            if not validation.ok:
                self.report_template_error(resource_group, validation.error)
                return False

            self._progress(DeployStatus.PROVISION_INFO, "> Deploying Azure services (this could take a while)...")
            deployment = await client.create_deployment(
                self.config.template_path, location, resource_group, deployment_name, params
            )
            if not deployment.succeeded:
                self.report_template_error(resource_group, deployment.error or deployment.provisioning_state)
                return False

            outputs = unpack_outputs(await client.get_deployment_outputs(resource_group, deployment_name))
            if outputs:
                update = {**outputs, APP_ID_KEY: app_id, APP_PASSWORD_KEY: app_password}
                write_settings(self.config.settings_path, merge_settings(settings, update))
                self._progress(DeployStatus.PROVISION_INFO, "Updated settings with %s", ", ".join(sorted(update)))
            else:
                self.report_failed_operations(await client.get_failed_operations(resource_group, deployment_name))

        self._progress(DeployStatus.PROVISION_SUCCESS, get_delete_resource_group_hint(resource_group))
        return True

    async def create_app_registration(self, name: str, app_password: str) -> str:
        self._progress(DeployStatus.PROVISION_INFO, "> Creating App Registration ...")
        graph_token = self.config.graph_token or await self.get_access_token(GRAPH_BASE_URL + "/.default")
        async with IdentityClient(graph_token, self.config.tenant_id) as identity_client:
            app = await identity_client.create_app(name, app_password)
        self.log.debug("Created app registration %s", app)
        return app.app_id

    def report_template_error(self, resource_group: str, error: str | None) -> None:
        self._progress(
            DeployStatus.PROVISION_ERROR,
            "! Template is not valid with provided parameters. Review the log for more information.",
        )
        self._progress(DeployStatus.PROVISION_ERROR, "! Error: %s", error)
        self._progress(DeployStatus.PROVISION_ERROR, get_delete_resource_group_hint(resource_group))

    def report_failed_operations(self, failed_operations: list[FailedOperation] | None) -> None:
        if failed_operations is None:
            self._progress(
                DeployStatus.PROVISION_ERROR, "! Deployment failed. Please refer to the log file for more information."
            )
            return
        for operation in failed_operations:
            if operation.is_location_unsupported:
                self._progress(
                    DeployStatus.PROVISION_ERROR,
                    "! Deployment failed for resource of type %s. "
                    "This resource is not available in the location provided.",
                    operation.resource_type,
                )
                continue
            self._progress(
                DeployStatus.PROVISION_ERROR, "! Deployment failed for resource of type %s.", operation.resource_type
            )
            self._progress(DeployStatus.PROVISION_ERROR, "! Code: %s.", operation.code)
            self._progress(DeployStatus.PROVISION_ERROR, "! Message: %s.", operation.message)

    # ========================= DEPLOYMENT =========================

    async def deploy(
        self,
        name: str,
        environment: str,
        luis_authoring_key: str | None = None,
        luis_authoring_region: str | None = None,
        bot_path: str | None = None,
        language: str | None = None,
    ) -> DeployResult:
        """Build the bot, publish its LUIS models when credentials are known, and push it to the web app"""
        step: DeployStep = "prepare"
        try:
            prepare_deploy_files(self.config)

            step = "build"
            if bot_path:
                self._progress(DeployStatus.DEPLOY_INFO, "Publishing dialogs from external bot project: %s", bot_path)
            await dotnet_publish(self.config, bot_path, on_output=self.log.debug)

            step = "luis"
            luis = resolve_luis_credentials(
                read_settings(self.config.settings_path), luis_authoring_key, luis_authoring_region
            )
            if luis.complete:
                await LuisPublisher(self.log, self.config).publish(
                    name,
                    environment,
                    language or DEFAULT_LANGUAGE,
                    luis.authoring_key,  # type: ignore[arg-type]
                    luis.authoring_region,  # type: ignore[arg-type]
                    luis.endpoint_key,
                    await self.get_access_token(),
                )

            step = "package"
            self._progress(DeployStatus.DEPLOY_INFO, "Packing up the bot service ...")
            file_count = await to_thread(zip_directory, self.config.publish_folder, self.config.zip_path)
            self._progress(DeployStatus.DEPLOY_INFO, "Packing Service Success! (%s files)", file_count)

            step = "upload"
            self._progress(DeployStatus.DEPLOY_INFO, "Publishing to Azure ...")
            async with ZipDeployClient(self.log, self.credential, self.config.subscription_id) as zip_client:
                response = await zip_client.deploy_zip(self.config.zip_path, name, environment)
            self.log.debug("zipdeploy response: %s", response)
        except Exception as e:
            log_errors(self.log, f"Deployment failed during {step}", e, extra={"status": DeployStatus.DEPLOY_ERROR})
            return DeployResult(False, step, e)

        self._progress(DeployStatus.DEPLOY_SUCCESS, "Publish To Azure Success!")
        return DeployResult(True, "done")

    async def create_and_deploy(
        self,
        name: str,
        location: str,
        environment: str,
        app_password: str | None,
        luis_authoring_key: str | None = None,
        luis_authoring_region: str | None = None,
        bot_path: str | None = None,
        language: str | None = None,
    ) -> DeployResult:
        """Provision the Azure resources and then deploy the bot to them, deployment is skipped if provisioning fails"""
        if not await self.create(name, location, environment, app_password, luis_authoring_key):
            return DeployResult(False, "provision")
        return await self.deploy(name, environment, luis_authoring_key, luis_authoring_region, bot_path, language)
