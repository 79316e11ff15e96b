# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from collections.abc import Callable
from json import JSONDecodeError, loads
from logging import Logger
from os import makedirs, path, walk
from shutil import copyfile
from tempfile import TemporaryDirectory
from typing import Any, NamedTuple, TypeAlias

# project
from deploy.build import BuildError
from deploy.client.luis_client import LuisClient, find_account
from deploy.common import DeployStatus, get_luis_account_name, get_luis_endpoint
from deploy.concurrency import run_process
from settings.common import LUIS_KEY, update_settings
from settings.deploy_config import DeploymentConfig

LU_EXTENSION = ".lu"
LUIS_SETTINGS_MARKER = "luis.settings"

BuildResult: TypeAlias = dict[str, bytes]
"""Relative path of each generated asset to its content"""

LuisAppIds: TypeAlias = dict[str, str]


class LuLoadResult(NamedTuple):
    root: str
    files: list[str]
    culture: str
    suffix: str
    region: str


def get_files(directory: str) -> list[str]:
    return sorted(path.join(root, file) for root, _, files in walk(directory) for file in files)


def is_lu_model(file_path: str) -> bool:
    return file_path.endswith(LU_EXTENSION) and path.getsize(file_path) > 0


class LuBuilder:
    """Drives the external `bf luis:build` tool: load sources, build models, write dialog assets"""

    COMMAND = ("bf", "luis:build")

    def __init__(self, on_message: Callable[[str], None]) -> None:
        self.on_message = on_message

    def load_contents(self, files: list[str], culture: str, suffix: str, region: str) -> LuLoadResult:
        missing = [file for file in files if not path.isfile(file)]
        if missing:
            raise BuildError(f"LU model files not found: {', '.join(missing)}")
        root = path.commonpath([path.dirname(path.abspath(file)) for file in files]) if files else path.curdir
        return LuLoadResult(root, files, culture, suffix, region)

    async def build(self, load_result: LuLoadResult, authoring_key: str, bot_name: str) -> BuildResult:
        with TemporaryDirectory() as in_dir, TemporaryDirectory() as out_dir:
            for file in load_result.files:
                staged = path.join(in_dir, path.relpath(path.abspath(file), load_result.root))
                makedirs(path.dirname(staged), exist_ok=True)
                copyfile(file, staged)
            exit_code = await run_process(
                *self.COMMAND,
                "--in",
                in_dir,
                "--out",
                out_dir,
                "--authoringKey",
                authoring_key,
                "--botName",
                bot_name,
                "--suffix",
                load_result.suffix,
                "--region",
                load_result.region,
                "--defaultCulture",
                load_result.culture,
                "--log",
                on_output=self.on_message,
            )
            if exit_code != 0:
                raise BuildError(f"luis:build exited with code {exit_code}")
            result: BuildResult = {}
            for file in get_files(out_dir):
                with open(file, "rb") as f:
                    result[path.relpath(file, out_dir)] = f.read()
            return result

    def write_dialog_assets(self, build_result: BuildResult, force: bool, out_folder: str) -> list[str]:
        written = []
        for relative_path, content in build_result.items():
            target = path.join(out_folder, relative_path)
            if path.exists(target) and not force:
                continue
            makedirs(path.dirname(target), exist_ok=True)
            with open(target, "wb") as f:
                f.write(content)
            written.append(target)
        return written


def collect_luis_app_ids(folder: str) -> LuisAppIds:
    """Merge the `luis` app id mapping of every luis.settings file under `folder`"""
    app_ids: LuisAppIds = {}
    for file in get_files(folder):
        if LUIS_SETTINGS_MARKER not in path.basename(file):
            continue
        with open(file, encoding="utf-8") as f:
            try:
                luis_settings: dict[str, Any] = loads(f.read())
            except JSONDecodeError as e:
                raise BuildError(f"Invalid LUIS settings file {file}") from e
        app_ids.update(luis_settings.get(LUIS_KEY) or {})
    return app_ids


def get_luis_config(region: str, endpoint_key: str, app_ids: LuisAppIds) -> dict[str, str]:
    return {"endpoint": get_luis_endpoint(region), "endpointKey": endpoint_key, **app_ids}


class LuisPublisher:
    def __init__(
        self,
        log: Logger,
        config: DeploymentConfig,
        builder_factory: Callable[[Callable[[str], None]], LuBuilder] = LuBuilder,
    ) -> None:
        self.log = log
        self.config = config
        self.builder_factory = builder_factory

    def _info(self, message: str, *args: object) -> None:
        self.log.info(message, *args, extra={"status": DeployStatus.DEPLOY_INFO})

    async def publish(
        self,
        name: str,
        environment: str,
        language: str,
        authoring_key: str,
        authoring_region: str,
        endpoint_key: str,
        access_token: str,
    ) -> LuisAppIds:
        """Build and publish every LU model of the deployed bot, then bind the LUIS account to each app"""
        model_files = [file for file in get_files(self.config.remote_bot_path) if is_lu_model(file)]
        makedirs(self.config.generated_folder, exist_ok=True)

        if model_files:
            builder = self.builder_factory(self._info)
            load_result = builder.load_contents(model_files, language, environment, authoring_region)
            build_result = await builder.build(load_result, authoring_key, name)
            builder.write_dialog_assets(build_result, True, self.config.generated_folder)
            self._info("lubuild succeed")
        else:
            self._info("No LU models found in %s, skipping lubuild", self.config.remote_bot_path)

        app_ids = collect_luis_app_ids(self.config.remote_bot_path)
        luis_config = get_luis_config(authoring_region, endpoint_key, app_ids)
        update_settings(self.config.deployment_settings_path, {LUIS_KEY: luis_config})

        if app_ids:
            await self.assign_account(name, environment, luis_config["endpoint"], authoring_key, access_token, app_ids)
        self._info("Luis Publish Success! ...")
        return app_ids

    async def assign_account(
        self,
        name: str,
        environment: str,
        endpoint: str,
        authoring_key: str,
        access_token: str,
        app_ids: LuisAppIds,
    ) -> None:
        async with LuisClient(endpoint, access_token, authoring_key) as client:
            accounts = await client.get_azure_accounts()
            account = find_account(accounts, get_luis_account_name(name, environment))
            for app_id in app_ids.values():
                self._info("Assigning to luis app id: %s", app_id)
                response = await client.assign_azure_account(app_id, account)
                self.log.debug("Assigned account to %s: %s", app_id, response)
