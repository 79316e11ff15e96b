# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from collections.abc import Callable
from logging import getLogger
from os import makedirs, path, remove, walk
from shutil import copytree
from zipfile import ZIP_DEFLATED, ZipFile

# project
from deploy.common import DeployError
from deploy.concurrency import run_process
from settings.deploy_config import DOTNET_PROJECT_FILE_NAME, DeploymentConfig

log = getLogger(__name__)

DEPLOY_FILE_CONTENT = f"[config]\nproject = {DOTNET_PROJECT_FILE_NAME}"
ZIP_COMPRESS_LEVEL = 9


class BuildError(DeployError):
    """An external build tool exited unsuccessfully or its inputs are missing"""


def prepare_deploy_files(config: DeploymentConfig) -> None:
    """Write the .deployment descriptor if missing and remove any stale archive"""
    if not path.exists(config.deploy_file_path):
        with open(config.deploy_file_path, "w", encoding="utf-8") as f:
            f.write(DEPLOY_FILE_CONTENT)
        log.debug("Created deployment descriptor %s", config.deploy_file_path)
    if path.exists(config.zip_path):
        remove(config.zip_path)
        log.debug("Removed stale archive %s", config.zip_path)


def copy_bot_assets(source: str, destination: str) -> None:
    if not path.isdir(source):
        raise BuildError(f"Bot assets folder {source} does not exist")
    copytree(source, destination, dirs_exist_ok=True)


async def dotnet_publish(
    config: DeploymentConfig, bot_path: str | None = None, on_output: Callable[[str], None] | None = None
) -> None:
    """Build the runtime into the publish folder, then copy the declarative assets next to it"""
    exit_code = await run_process(
        "dotnet",
        "publish",
        config.dotnet_project_path,
        "-c",
        "release",
        "-o",
        config.publish_folder,
        "-v",
        "q",
        on_output=on_output,
    )
    if exit_code != 0:
        raise BuildError(f"dotnet publish exited with code {exit_code}")

    copy_bot_assets(bot_path or config.local_bot_path, config.remote_bot_path)


def zip_directory(source: str, out: str) -> int:
    """Zip the contents of `source` (not the folder itself) into `out`, returns the number of files"""
    makedirs(path.dirname(path.abspath(out)), exist_ok=True)
    out_path = path.abspath(out)
    file_count = 0
    with ZipFile(out, "w", ZIP_DEFLATED, compresslevel=ZIP_COMPRESS_LEVEL) as archive:
        for root, _, files in walk(source):
            for file in sorted(files):
                file_path = path.join(root, file)
                if path.abspath(file_path) == out_path:
                    continue
                archive.write(file_path, path.relpath(file_path, source))
                file_count += 1
    return file_count
