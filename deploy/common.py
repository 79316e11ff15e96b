# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from asyncio import TimeoutError as AsyncTimeoutError
from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from logging import Logger
from time import time
from typing import Final

# 3p
from aiohttp import ClientConnectionError, ClientResponseError
from azure.core.exceptions import HttpResponseError, ServiceResponseTimeoutError
from tenacity import RetryCallState

BOT_DEPLOY_METRIC_PREFIX = "bot_deploy."

MAX_ATTEMPTS = 5

LUIS_ACCOUNT_SUFFIX: Final = "-luis"
HOSTING_DOMAIN: Final = "azurewebsites.net"
LUIS_ENDPOINT_DOMAIN: Final = "api.cognitive.microsoft.com"
DEFAULT_LANGUAGE: Final = "en-us"


class DeployError(Exception):
    """Base class for failures of a deploy stage"""

    pass


class DeployStatus(Enum):
    PROVISION_INFO = "PROVISION_INFO"
    PROVISION_ERROR = "PROVISION_ERROR"
    PROVISION_SUCCESS = "PROVISION_SUCCESS"
    DEPLOY_INFO = "DEPLOY_INFO"
    DEPLOY_ERROR = "DEPLOY_ERROR"
    DEPLOY_SUCCESS = "DEPLOY_SUCCESS"


def get_resource_group_name(name: str, environment: str) -> str:
    return f"{name}-{environment}"


def get_luis_account_name(name: str, environment: str) -> str:
    return get_resource_group_name(name, environment) + LUIS_ACCOUNT_SUFFIX


def get_zip_deploy_url(name: str, environment: str) -> str:
    return f"https://{name}-{environment}.scm.{HOSTING_DOMAIN}/zipdeploy"


def get_luis_endpoint(region: str) -> str:
    return f"https://{region}.{LUIS_ENDPOINT_DOMAIN}"


def get_delete_resource_group_hint(resource_group: str) -> str:
    return f"+ To delete this resource group, run 'az group delete -g {resource_group} --no-wait'"


def timestamp_millis() -> str:
    """Current epoch time in milliseconds, used for deployment names and throwaway publishing passwords

    Example:
    >>> timestamp_millis()
    "1600000000000"
    """
    return str(int(time() * 1000))


def now() -> str:
    """Return the current time in ISO format"""
    return datetime.now().isoformat()


def log_errors(
    log: Logger,
    message: str,
    *maybe_errors: object | Exception,
    reraise: bool = False,
    extra: Mapping[str, object] | None = None,
) -> list[Exception]:
    """Log and return any errors in `maybe_errors`.
    If reraise is True, the first error will be raised"""
    errors = [e for e in maybe_errors if isinstance(e, Exception)]
    if errors:
        log.exception("%s: %s", message, errors, extra=extra)
        if reraise:
            raise errors[0]

    return errors


def is_retryable_error(e: BaseException) -> bool:
    if isinstance(e, HttpResponseError | ClientResponseError):
        status = e.status_code if isinstance(e, HttpResponseError) else e.status
        return status is not None and (status == 429 or status >= 500)
    return isinstance(e, AsyncTimeoutError | ServiceResponseTimeoutError | ClientConnectionError)


def is_exception_retryable(state: RetryCallState) -> bool:
    if (future := state.outcome) and (e := future.exception()):
        return is_retryable_error(e)
    return False
