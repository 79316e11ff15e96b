# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from dataclasses import dataclass
from os import environ, path

# project
from settings.env import (
    ACCESS_TOKEN_SETTING,
    GRAPH_TOKEN_SETTING,
    SUBSCRIPTION_ID_SETTING,
    TENANT_ID_SETTING,
    get_config_option,
)

DEFAULT_TENANT_ID = "72f988bf-86f1-41af-91ab-2d7cd011db47"

DEPLOY_FILE_NAME = ".deployment"
ZIP_FILE_NAME = "code.zip"
SETTINGS_FILE_NAME = "appsettings.deployment.json"
DOTNET_PROJECT_FILE_NAME = "BotProject.csproj"
BOT_ASSETS_FOLDER_NAME = "ComposerDialogs"
GENERATED_FOLDER_NAME = "generated"
PUBLISH_FOLDER = path.join("bin", "Release", "netcoreapp3.1")
TEMPLATE_PATH = path.join("DeploymentTemplates", "template-with-preexisting-rg.json")


@dataclass(frozen=True)
class DeploymentConfig:
    """Everything one create/deploy invocation needs to know about the bot project.

    Paths default to the standard bot project layout under `project_path`,
    each of them can be overridden explicitly.
    """

    subscription_id: str
    project_path: str
    access_token: str | None = None
    graph_token: str | None = None
    tenant_id: str = DEFAULT_TENANT_ID

    deploy_file_path_override: str | None = None
    zip_path_override: str | None = None
    publish_folder_override: str | None = None
    settings_path_override: str | None = None
    deployment_settings_path_override: str | None = None
    template_path_override: str | None = None
    dotnet_project_path_override: str | None = None
    remote_bot_path_override: str | None = None
    generated_folder_override: str | None = None

    @property
    def deploy_file_path(self) -> str:
        """The .deployment descriptor which points at the build project"""
        return self.deploy_file_path_override or path.join(self.project_path, DEPLOY_FILE_NAME)

    @property
    def zip_path(self) -> str:
        return self.zip_path_override or path.join(self.project_path, ZIP_FILE_NAME)

    @property
    def publish_folder(self) -> str:
        """Built, ready to deploy code assets"""
        return self.publish_folder_override or path.join(self.project_path, PUBLISH_FOLDER)

    @property
    def settings_path(self) -> str:
        return self.settings_path_override or path.join(self.project_path, SETTINGS_FILE_NAME)

    @property
    def deployment_settings_path(self) -> str:
        """The settings file inside the publish folder, which receives the LUIS configuration"""
        return self.deployment_settings_path_override or path.join(self.publish_folder, SETTINGS_FILE_NAME)

    @property
    def template_path(self) -> str:
        return self.template_path_override or path.join(self.project_path, TEMPLATE_PATH)

    @property
    def dotnet_project_path(self) -> str:
        return self.dotnet_project_path_override or path.join(self.project_path, DOTNET_PROJECT_FILE_NAME)

    @property
    def local_bot_path(self) -> str:
        return path.join(self.project_path, BOT_ASSETS_FOLDER_NAME)

    @property
    def remote_bot_path(self) -> str:
        """Declarative assets copied into the publish folder"""
        return self.remote_bot_path_override or path.join(self.publish_folder, BOT_ASSETS_FOLDER_NAME)

    @property
    def generated_folder(self) -> str:
        return self.generated_folder_override or path.join(self.remote_bot_path, GENERATED_FOLDER_NAME)


def config_from_env(project_path: str, subscription_id: str | None = None) -> DeploymentConfig:
    return DeploymentConfig(
        subscription_id=subscription_id or get_config_option(SUBSCRIPTION_ID_SETTING),
        project_path=project_path,
        access_token=environ.get(ACCESS_TOKEN_SETTING) or None,
        graph_token=environ.get(GRAPH_TOKEN_SETTING) or None,
        tenant_id=environ.get(TENANT_ID_SETTING) or DEFAULT_TENANT_ID,
    )
