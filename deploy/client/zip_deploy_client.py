# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from asyncio import gather
from contextlib import AbstractAsyncContextManager
from logging import Logger
from types import TracebackType
from typing import Self

# 3p
from aiohttp import BasicAuth, ClientSession
from azure.core.credentials_async import AsyncTokenCredential
from azure.mgmt.web.aio import WebSiteManagementClient
from azure.mgmt.web.models import User
from tenacity import retry, stop_after_attempt

# project
from deploy.common import MAX_ATTEMPTS, DeployError, get_resource_group_name, get_zip_deploy_url, timestamp_millis

ZIP_CONTENT_TYPE = "application/zip"


class UploadError(DeployError):
    pass


def get_publishing_credentials(name: str, environment: str) -> tuple[str, str]:
    """Deployment user and a fresh password, the password is never stored"""
    user_name = get_resource_group_name(name, environment)
    return user_name, f"{user_name}-{timestamp_millis()}"


class ZipDeployClient(AbstractAsyncContextManager["ZipDeployClient"]):
    def __init__(self, log: Logger, credential: AsyncTokenCredential, subscription_id: str) -> None:
        self.log = log
        self.web_client = WebSiteManagementClient(credential, subscription_id)
        self.rest_client = ClientSession()

    async def __aenter__(self) -> Self:
        await gather(self.web_client.__aenter__(), self.rest_client.__aenter__())
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None
    ) -> None:
        await gather(
            self.web_client.__aexit__(exc_type, exc_val, exc_tb),
            self.rest_client.__aexit__(exc_type, exc_val, exc_tb),
        )

    async def deploy_zip(self, zip_path: str, name: str, environment: str) -> str:
        """Set throwaway publishing credentials and push the archive to the site's zipdeploy endpoint"""
        self.log.info("Retrieve publishing details ...")
        user_name, password = get_publishing_credentials(name, environment)
        user = await self.web_client.update_publishing_user(
            User(publishing_user_name=user_name, publishing_password=password)
        )
        self.log.debug("Updated publishing user %s", getattr(user, "publishing_user_name", user_name))

        with open(zip_path, "rb") as f:
            zip_data = f.read()
        return await self.upload_zip(get_zip_deploy_url(name, environment), zip_data, BasicAuth(user_name, password))

    @retry(stop=stop_after_attempt(MAX_ATTEMPTS), reraise=True)
    async def upload_zip(self, url: str, zip_data: bytes, auth: BasicAuth) -> str:
        resp = await self.rest_client.post(
            url,
            data=zip_data,
            auth=auth,
            headers={"Content-Type": ZIP_CONTENT_TYPE, "Content-Length": str(len(zip_data))},
        )
        content = (await resp.content.read()).decode()
        if not resp.ok:
            raise UploadError(f"Failed to upload zip to {url}: {resp.status} ({resp.reason})\n{content}")
        return content
