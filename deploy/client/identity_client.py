# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from datetime import UTC, datetime
from types import TracebackType
from typing import Any, NamedTuple, Self

# 3p
from aiohttp import ClientSession
from tenacity import retry, stop_after_attempt

# project
from deploy.common import MAX_ATTEMPTS, is_exception_retryable

GRAPH_BASE_URL = "https://graph.windows.net"
GRAPH_API_VERSION = "1.6"
BOT_FRAMEWORK_REDIRECT_URL = "https://token.botframework.com/.auth/web/redirect"
PASSWORD_LIFETIME_YEARS = 2


class AppRegistration(NamedTuple):
    app_id: str
    object_id: str | None
    display_name: str


def add_years(start: datetime, years: int) -> datetime:
    try:
        return start.replace(year=start.year + years)
    except ValueError:
        # Feb 29th in a non leap year
        return start.replace(year=start.year + years, day=28)


def create_app_payload(display_name: str, app_password: str, start: datetime) -> dict[str, Any]:
    return {
        "displayName": display_name,
        "passwordCredentials": [
            {
                "value": app_password,
                "startDate": start.isoformat(),
                "endDate": add_years(start, PASSWORD_LIFETIME_YEARS).isoformat(),
            }
        ],
        "availableToOtherTenants": True,
        "replyUrls": [BOT_FRAMEWORK_REDIRECT_URL],
    }


class IdentityClient:
    """Registers the application identity the bot authenticates with at runtime"""

    def __init__(self, graph_token: str, tenant_id: str, base_url: str = GRAPH_BASE_URL) -> None:
        self.graph_token = graph_token
        self.tenant_id = tenant_id
        self.base_url = base_url
        self.session: ClientSession | None = None

    def _get_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.graph_token}", "Content-Type": "application/json"}

    @retry(stop=stop_after_attempt(MAX_ATTEMPTS), retry=is_exception_retryable, reraise=True)
    async def create_app(self, display_name: str, app_password: str) -> AppRegistration:
        assert self.session is not None, "IdentityClient must be used as an async context manager"
        url = f"{self.base_url}/{self.tenant_id}/applications?api-version={GRAPH_API_VERSION}"
        payload = create_app_payload(display_name, app_password, datetime.now(UTC))
        async with self.session.post(url, json=payload, headers=self._get_headers(), raise_for_status=True) as resp:
            body = await resp.json()
        return AppRegistration(app_id=body["appId"], object_id=body.get("objectId"), display_name=display_name)

    async def __aenter__(self) -> Self:
        self.session = ClientSession()
        await self.session.__aenter__()
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_value: BaseException | None, traceback: TracebackType | None
    ) -> None:
        await self.session.__aexit__(exc_type, exc_value, traceback)  # type: ignore
