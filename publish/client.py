# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from types import TracebackType
from typing import Any, Self
from urllib.parse import quote

# 3p
from aiohttp import ClientSession
from tenacity import retry, stop_after_attempt

# project
from deploy.common import MAX_ATTEMPTS, is_exception_retryable
from settings.publish_history import PublishStatus, PublishTarget

NOT_FOUND = 404


class PublishApiClient:
    """Client for the authoring server's publish endpoints"""

    def __init__(self, base_url: str, access_token: str | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.session: ClientSession | None = None

    def _get_url(self, action: str, project_id: str, target_name: str) -> str:
        return f"{self.base_url}/api/publish/{quote(project_id)}/{action}/{quote(target_name)}"

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    @retry(stop=stop_after_attempt(MAX_ATTEMPTS), retry=is_exception_retryable, reraise=True)
    async def get_publish_status(self, project_id: str, target: PublishTarget) -> PublishStatus | None:
        assert self.session is not None, "PublishApiClient must be used as an async context manager"
        async with self.session.get(
            self._get_url("status", project_id, target["name"]), headers=self._get_headers()
        ) as resp:
            if resp.status == NOT_FOUND:
                return None
            resp.raise_for_status()
            body: dict[str, Any] = await resp.json()
        return PublishStatus.from_dict(body)

    @retry(stop=stop_after_attempt(MAX_ATTEMPTS), retry=is_exception_retryable, reraise=True)
    async def get_publish_history(self, project_id: str, target: PublishTarget) -> list[PublishStatus]:
        """Publish history of the target, oldest first"""
        assert self.session is not None, "PublishApiClient must be used as an async context manager"
        async with self.session.get(
            self._get_url("history", project_id, target["name"]), headers=self._get_headers(), raise_for_status=True
        ) as resp:
            body: list[dict[str, Any]] = await resp.json()
        # the server lists the most recent publish first
        return [PublishStatus.from_dict(entry) for entry in reversed(body)]

    async def publish_to_target(
        self, project_id: str, target: PublishTarget, metadata: dict[str, Any], sensitive_settings: dict[str, Any]
    ) -> PublishStatus:
        assert self.session is not None, "PublishApiClient must be used as an async context manager"
        async with self.session.post(
            self._get_url("publish", project_id, target["name"]),
            json={"metadata": metadata, "sensitiveSettings": sensitive_settings},
            headers=self._get_headers(),
            raise_for_status=True,
        ) as resp:
            body: dict[str, Any] = await resp.json()
        return PublishStatus.from_dict(body)

    async def __aenter__(self) -> Self:
        self.session = ClientSession()
        await self.session.__aenter__()
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_value: BaseException | None, traceback: TracebackType | None
    ) -> None:
        await self.session.__aexit__(exc_type, exc_value, traceback)  # type: ignore
