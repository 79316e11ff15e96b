# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from asyncio import create_task
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import UTC, datetime
from logging import ERROR, INFO, Handler, LogRecord, getLogger
from time import time
from traceback import format_exception
from types import TracebackType
from typing import Any, NamedTuple, Self
from uuid import uuid4

# 3p
from azure.core.credentials import AccessToken
from azure.identity.aio import DefaultAzureCredential
from datadog_api_client import AsyncApiClient, Configuration
from datadog_api_client.v2.api.logs_api import LogsApi
from datadog_api_client.v2.api.metrics_api import MetricsApi
from datadog_api_client.v2.model.http_log import HTTPLog
from datadog_api_client.v2.model.http_log_item import HTTPLogItem
from datadog_api_client.v2.model.metric_payload import MetricPayload
from datadog_api_client.v2.model.metric_point import MetricPoint
from datadog_api_client.v2.model.metric_series import MetricSeries

# project
from deploy.common import BOT_DEPLOY_METRIC_PREFIX, DeployStatus
from settings.deploy_config import DeploymentConfig
from settings.env import get_datadog_site, telemetry_enabled

log = getLogger(__name__)

# silence azure logging except for errors
getLogger("azure").setLevel(ERROR)

MANAGEMENT_SCOPE = "https://management.azure.com/.default"
STATIC_TOKEN_LIFETIME_SECONDS = 3600

IGNORED_LOG_EXTRAS = {"created", "relativeCreated", "thread", "args", "msg", "message", "status"}


class ProgressEvent(NamedTuple):
    status: DeployStatus
    message: str
    time: str


ProgressCallback = Callable[[ProgressEvent], Any]


def get_error_telemetry(
    exc_info: tuple[type[BaseException], BaseException, TracebackType | None] | tuple[None, None, None] | None,
) -> dict[str, str]:
    telemetry = {}
    if not exc_info:
        return telemetry
    exc_type, exc, tb = exc_info
    if exc_type:
        telemetry["exception"] = exc_type.__name__
    if exc_type or exc or tb:
        telemetry["exc_info"] = "".join(format_exception(exc_type, value=exc, tb=tb, limit=20))
    return telemetry


class ProgressHandler(Handler):
    """Forwards log records tagged with a `status` extra to a progress callback"""

    def __init__(self, callback: ProgressCallback) -> None:
        super().__init__()
        self.callback = callback

    def emit(self, record: LogRecord) -> None:
        status = getattr(record, "status", None)
        if not isinstance(status, DeployStatus):
            return
        try:
            self.callback(ProgressEvent(status, record.getMessage(), datetime.now(UTC).isoformat()))
        except Exception:
            self.handleError(record)


class ListHandler(Handler):
    """A logging handler that appends log messages to a list"""

    def __init__(self, logs: list[LogRecord]):
        super().__init__()
        self.log_list = logs

    def emit(self, record: LogRecord) -> None:
        record.asctime = datetime.now(UTC).isoformat()
        self.log_list.append(record)


class StaticTokenCredential:
    """AsyncTokenCredential over a bearer token obtained elsewhere, e.g. `az account get-access-token`"""

    def __init__(self, token: str) -> None:
        self.token = token

    async def get_token(self, *scopes: str, **kwargs: Any) -> AccessToken:
        return AccessToken(self.token, int(time()) + STATIC_TOKEN_LIFETIME_SECONDS)

    async def close(self) -> None:
        pass

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_value: BaseException | None, traceback: TracebackType | None
    ) -> None:
        pass


class Task(AbstractAsyncContextManager["Task"]):
    NAME: str

    def __init__(self, config: DeploymentConfig, progress_callback: ProgressCallback | None = None) -> None:
        self.config = config
        self.credential: StaticTokenCredential | DefaultAzureCredential = (
            StaticTokenCredential(config.access_token) if config.access_token else DefaultAzureCredential()
        )

        self.start_time = time()
        self.execution_id = str(uuid4())
        self.tags = ["service:bot-deploy", f"task:{self.NAME}"]
        self.telemetry_enabled = telemetry_enabled()
        self.log = log.getChild(self.__class__.__name__)
        self._handlers: list[Handler] = []
        self._logs: list[LogRecord] = []
        if progress_callback is not None:
            # progress events are INFO records, the callback must see them whatever the ambient level
            if self.log.getEffectiveLevel() > INFO:
                self.log.setLevel(INFO)
            self._handlers.append(ProgressHandler(progress_callback))
        if self.telemetry_enabled:
            log.info("Telemetry enabled, will submit logs for %s", self.NAME)
            self._handlers.append(ListHandler(self._logs))
        for handler in self._handlers:
            self.log.addHandler(handler)

    async def get_access_token(self, scope: str = MANAGEMENT_SCOPE) -> str:
        """Bearer token for REST calls which are not covered by an SDK client"""
        token = await self.credential.get_token(scope)
        return token.token

    async def __aenter__(self) -> Self:
        await self.credential.__aenter__()
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_value: BaseException | None, traceback: TracebackType | None
    ) -> None:
        submit_telemetry = create_task(self.submit_telemetry())
        await self.credential.__aexit__(exc_type, exc_value, traceback)
        try:
            await submit_telemetry
        except Exception:
            log.exception("Failed to submit telemetry")
        for handler in self._handlers:
            self.log.removeHandler(handler)

    async def submit_telemetry(self) -> None:
        if not self.telemetry_enabled or not self._logs:
            return
        dd_logs = [
            HTTPLogItem(
                **{
                    **{k: str(v) for k, v in record.__dict__.items() if k.lower() not in IGNORED_LOG_EXTRAS},
                    **{
                        "message": record.getMessage(),
                        "ddsource": "azure",
                        "service": "bot-deploy",
                        "time": record.asctime,
                        "level": record.levelname,
                        "deploy_status": getattr(getattr(record, "status", None), "value", ""),
                        "execution_id": self.execution_id,
                        "task": self.NAME,
                    },
                    **get_error_telemetry(record.exc_info),
                }
            )
            for record in self._logs
        ]
        self._logs.clear()
        dd_metric = MetricSeries(
            metric=BOT_DEPLOY_METRIC_PREFIX + "runtime_seconds",
            points=[MetricPoint(timestamp=int(self.start_time), value=time() - self.start_time)],
            tags=self.tags,
        )
        configuration = Configuration()
        if site := get_datadog_site():
            configuration.server_variables["site"] = site
        async with AsyncApiClient(configuration) as datadog_client:
            await LogsApi(datadog_client).submit_log(HTTPLog(value=dd_logs), ddtags=",".join(self.tags))  # type: ignore
            await MetricsApi(datadog_client).submit_metrics(MetricPayload(series=[dd_metric]))  # type: ignore
