# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from types import TracebackType
from typing import Any, Self, TypeAlias

# 3p
from aiohttp import ClientSession
from tenacity import retry, stop_after_attempt

# project
from deploy.common import MAX_ATTEMPTS, DeployError, is_exception_retryable

AzureAccount: TypeAlias = dict[str, Any]
"""Account descriptor as returned by the LUIS authoring API, passed back verbatim when assigning"""

LUIS_API_PATH = "/luis/api/v2.0"


class LuisAccountNotFoundError(DeployError, LookupError):
    def __init__(self, account_name: str) -> None:
        super().__init__(f"No LUIS azure account named {account_name} is available to the authoring key")
        self.account_name = account_name


def find_account(accounts: list[AzureAccount], account_name: str) -> AzureAccount:
    for account in accounts:
        if account.get("AccountName") == account_name:
            return account
    raise LuisAccountNotFoundError(account_name)


class LuisClient:
    """Authoring REST calls used to bind a prediction resource to published LUIS apps"""

    def __init__(self, endpoint: str, access_token: str, authoring_key: str) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.access_token = access_token
        self.authoring_key = authoring_key
        self.session: ClientSession | None = None

    def _get_url(self, path: str) -> str:
        return f"{self.endpoint}{LUIS_API_PATH}/{path}"

    def _get_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}", "Ocp-Apim-Subscription-Key": self.authoring_key}

    @retry(stop=stop_after_attempt(MAX_ATTEMPTS), retry=is_exception_retryable, reraise=True)
    async def get_azure_accounts(self) -> list[AzureAccount]:
        assert self.session is not None, "LuisClient must be used as an async context manager"
        async with self.session.get(
            self._get_url("azureaccounts"), headers=self._get_headers(), raise_for_status=True
        ) as resp:
            return await resp.json(content_type=None)

    @retry(stop=stop_after_attempt(MAX_ATTEMPTS), retry=is_exception_retryable, reraise=True)
    async def assign_azure_account(self, app_id: str, account: AzureAccount) -> str:
        assert self.session is not None, "LuisClient must be used as an async context manager"
        async with self.session.post(
            self._get_url(f"apps/{app_id}/azureaccounts"),
            json=account,
            headers=self._get_headers(),
            raise_for_status=True,
        ) as resp:
            return await resp.text()

    async def __aenter__(self) -> Self:
        self.session = ClientSession()
        await self.session.__aenter__()
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_value: BaseException | None, traceback: TracebackType | None
    ) -> None:
        await self.session.__aexit__(exc_type, exc_value, traceback)  # type: ignore
