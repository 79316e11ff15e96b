# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from logging import Logger
from typing import Any

# 3p
from yaml import YAMLError, safe_load

DEPLOY_OPTION_KEYS = frozenset(
    {
        "name",
        "environment",
        "location",
        "app_password",
        "luis_authoring_key",
        "luis_authoring_region",
        "bot_path",
        "language",
        "project_path",
        "subscription_id",
    }
)


def load_deploy_options(deploy_options_yaml: str, log: Logger) -> dict[str, Any]:
    """Parse a YAML file of deploy options, unknown keys are dropped with a warning"""
    try:
        parsed_yaml = safe_load(deploy_options_yaml)
    except YAMLError:
        log.exception("Error parsing deploy options as YAML:\n%s", deploy_options_yaml)
        return {}

    if not parsed_yaml:
        return {}

    if not isinstance(parsed_yaml, dict):
        log.error("Deploy options must be a mapping, got %s", type(parsed_yaml).__name__)
        return {}

    unknown = set(parsed_yaml) - DEPLOY_OPTION_KEYS
    if unknown:
        log.warning("Ignoring unknown deploy options: %s", ", ".join(sorted(map(str, unknown))))
    return {key: value for key, value in parsed_yaml.items() if key in DEPLOY_OPTION_KEYS and value is not None}
