# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from os import listdir, makedirs, path
from unittest.mock import ANY
from zipfile import ZipFile

# project
from deploy.build import (
    DEPLOY_FILE_CONTENT,
    BuildError,
    copy_bot_assets,
    dotnet_publish,
    prepare_deploy_files,
    zip_directory,
)
from deploy.tests.common import ProjectTestCase
from settings.deploy_config import DeploymentConfig


class TestBuild(ProjectTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.config = DeploymentConfig(subscription_id="sub1", project_path=self.project_path)
        self.run_process = self.patch_path("deploy.build.run_process", return_value=0)

    def test_prepare_creates_descriptor_and_removes_stale_zip(self):
        self.write_text(self.config.zip_path, "old archive")

        prepare_deploy_files(self.config)

        with open(self.config.deploy_file_path) as f:
            self.assertEqual(f.read(), DEPLOY_FILE_CONTENT)
        self.assertFalse(path.exists(self.config.zip_path))

    def test_prepare_keeps_existing_descriptor(self):
        self.write_text(self.config.deploy_file_path, "[config]\nproject = Custom.csproj")

        prepare_deploy_files(self.config)

        with open(self.config.deploy_file_path) as f:
            self.assertEqual(f.read(), "[config]\nproject = Custom.csproj")

    def test_copy_missing_assets(self):
        with self.assertRaises(BuildError):
            copy_bot_assets(self.project_file("missing"), self.project_file("out"))

    async def test_dotnet_publish_copies_local_assets(self):
        self.write_text(path.join(self.config.local_bot_path, "main.dialog"), "{}")

        await dotnet_publish(self.config)

        self.run_process.assert_awaited_once_with(
            "dotnet",
            "publish",
            self.config.dotnet_project_path,
            "-c",
            "release",
            "-o",
            self.config.publish_folder,
            "-v",
            "q",
            on_output=None,
        )
        self.assertEqual(listdir(self.config.remote_bot_path), ["main.dialog"])

    async def test_dotnet_publish_external_bot(self):
        external = self.project_file("external")
        self.write_text(path.join(external, "dialogs", "greeting.lu"), "# Greeting")
        on_output = print

        await dotnet_publish(self.config, external, on_output=on_output)

        self.run_process.assert_awaited_once_with(*[ANY] * 9, on_output=on_output)
        self.assertTrue(path.isfile(path.join(self.config.remote_bot_path, "dialogs", "greeting.lu")))

    async def test_dotnet_publish_failure(self):
        self.run_process.return_value = 1

        with self.assertRaises(BuildError):
            await dotnet_publish(self.config)

    def test_zip_directory(self):
        self.write_text(self.project_file("publish", "BotProject.dll"), "dll")
        self.write_text(self.project_file("publish", "ComposerDialogs", "main.dialog"), "{}")
        makedirs(self.project_file("publish", "empty"))

        count = zip_directory(self.project_file("publish"), self.config.zip_path)

        self.assertEqual(count, 2)
        with ZipFile(self.config.zip_path) as archive:
            self.assertEqual(
                sorted(archive.namelist()), sorted(["BotProject.dll", path.join("ComposerDialogs", "main.dialog")])
            )
            self.assertEqual(archive.read("BotProject.dll"), b"dll")

    def test_zip_directory_skips_output_file(self):
        self.write_text(self.project_file("BotProject.dll"), "dll")

        count = zip_directory(self.project_path, self.config.zip_path)

        self.assertEqual(count, 1)
        with ZipFile(self.config.zip_path) as archive:
            self.assertEqual(archive.namelist(), ["BotProject.dll"])
