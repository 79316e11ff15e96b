# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from collections.abc import Callable
from logging import getLogger
from os import environ
from typing import TypeVar

T = TypeVar("T")

log = getLogger(__name__)


# Settings
SUBSCRIPTION_ID_SETTING = "AZURE_SUBSCRIPTION_ID"
ACCESS_TOKEN_SETTING = "AZURE_ACCESS_TOKEN"
GRAPH_TOKEN_SETTING = "AZURE_GRAPH_TOKEN"
TENANT_ID_SETTING = "AZURE_TENANT_ID"
LOG_LEVEL_SETTING = "LOG_LEVEL"
TELEMETRY_SETTING = "BOT_DEPLOY_TELEMETRY"
DD_API_KEY_SETTING = "DD_API_KEY"
DD_SITE_SETTING = "DD_SITE"
PUBLISH_STATUS_INTERVAL_SETTING = "PUBLISH_STATUS_INTERVAL"


class MissingConfigOptionError(Exception):
    def __init__(self, option: str) -> None:
        super().__init__(f"Missing required configuration option: {option}")


def get_config_option(name: str) -> str:
    """Get a configuration option from the environment or raise a helpful error"""
    if option := environ.get(name):
        return option
    raise MissingConfigOptionError(name)


def parse_config_option(name: str, parse: Callable[[str], T | None], default: T) -> T:
    """Get a configuration option from the environment, parse it, or return a default"""
    try:
        value = environ.get(name)
        if value is None:
            return default
        result = parse(value)
        if result is None:
            log.error(f"Invalid value for configuration option {name}: {value}")
            return default
        return result
    except ValueError:
        log.error(f"Invalid value for configuration option {name}: {environ.get(name)}")
        return default


def is_truthy(setting_name: str) -> bool:
    return environ.get(setting_name, "").lower().strip() in {"t", "true", "1", "y", "yes"}


LOG_LEVELS = frozenset({"ERROR", "WARN", "WARNING", "INFO", "DEBUG"})


def get_log_level() -> str:
    """The configured log level, INFO when unset or unrecognized"""
    level = environ.get(LOG_LEVEL_SETTING, "INFO").upper()
    return level if level in LOG_LEVELS else "INFO"


def parse_positive_float(value: str) -> float | None:
    parsed = float(value)
    return parsed if parsed > 0 else None


def telemetry_enabled() -> bool:
    return bool(is_truthy(TELEMETRY_SETTING) and environ.get(DD_API_KEY_SETTING))


def get_datadog_site() -> str | None:
    """Datadog site telemetry is sent to, the client default when unset"""
    return environ.get(DD_SITE_SETTING) or None
