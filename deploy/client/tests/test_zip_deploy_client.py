# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from logging import getLogger
from unittest.mock import AsyncMock, MagicMock

# 3p
from aiohttp import BasicAuth
from azure.mgmt.web.models import User

# project
from deploy.client.zip_deploy_client import UploadError, ZipDeployClient, get_publishing_credentials
from deploy.tests.common import AsyncMockClient, ProjectTestCase, mock_response

TIMESTAMP = "1600000000000"


class TestZipDeployClient(ProjectTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.patch_path("deploy.client.zip_deploy_client.timestamp_millis", return_value=TIMESTAMP)
        self.web_client = AsyncMockClient()
        self.web_client_class = self.patch_path(
            "deploy.client.zip_deploy_client.WebSiteManagementClient", return_value=self.web_client
        )
        self.rest_client = AsyncMockClient()
        self.rest_client.post = AsyncMock(return_value=mock_response(200, text="deployed"))
        self.patch_path("deploy.client.zip_deploy_client.ClientSession", return_value=self.rest_client)
        self.zip_path = self.project_file("code.zip")
        self.write_text(self.zip_path, "zip bytes")
        self.credential = MagicMock()

    def test_publishing_credentials(self):
        self.assertEqual(get_publishing_credentials("bot1", "dev"), ("bot1-dev", f"bot1-dev-{TIMESTAMP}"))

    async def test_deploy_zip(self):
        async with ZipDeployClient(getLogger("test"), self.credential, "sub1") as client:
            response = await client.deploy_zip(self.zip_path, "bot1", "dev")

        self.assertEqual(response, "deployed")
        self.web_client_class.assert_called_once_with(self.credential, "sub1")
        self.web_client.update_publishing_user.assert_awaited_once_with(
            User(publishing_user_name="bot1-dev", publishing_password=f"bot1-dev-{TIMESTAMP}")
        )
        self.rest_client.post.assert_awaited_once_with(
            "https://bot1-dev.scm.azurewebsites.net/zipdeploy",
            data=b"zip bytes",
            auth=BasicAuth("bot1-dev", f"bot1-dev-{TIMESTAMP}"),
            headers={"Content-Type": "application/zip", "Content-Length": "9"},
        )

    async def test_upload_failure(self):
        self.rest_client.post.return_value = mock_response(401, text="Unauthorized")

        async with ZipDeployClient(getLogger("test"), self.credential, "sub1") as client:
            with self.assertRaises(UploadError):
                await client.deploy_zip(self.zip_path, "bot1", "dev")

        self.assertEqual(self.rest_client.post.await_count, 5)
