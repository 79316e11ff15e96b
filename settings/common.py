# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from collections.abc import Callable, Mapping
from copy import deepcopy
from json import JSONDecodeError, dumps, loads
from logging import getLogger
from os import path, remove, replace
from tempfile import NamedTemporaryFile
from typing import Any, TypeAlias, TypeVar

# 3p
from jsonschema import ValidationError, validate

log = getLogger(__name__)

T = TypeVar("T")

SettingsDocument: TypeAlias = dict[str, Any]
"""A JSON object persisted to disk, e.g. appsettings.deployment.json"""

APP_ID_KEY = "MicrosoftAppId"
APP_PASSWORD_KEY = "MicrosoftAppPassword"
LUIS_KEY = "luis"
PUBLISH_TARGETS_KEY = "publishTargets"

SETTINGS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        APP_ID_KEY: {"type": "string"},
        APP_PASSWORD_KEY: {"type": "string"},
        LUIS_KEY: {"type": "object"},
        PUBLISH_TARGETS_KEY: {"type": "array"},
    },
    "additionalProperties": True,
}


class SettingsNotFoundError(FileNotFoundError):
    def __init__(self, settings_path: str) -> None:
        super().__init__(f"Could not find a settings file at {settings_path}")
        self.settings_path = settings_path


class InvalidSettingsError(ValueError):
    pass


def deserialize_document(
    document_str: str, schema: dict[str, Any], post_processing: Callable[[T], T | None] = lambda x: x
) -> T | None:
    try:
        document = loads(document_str)
        validate(instance=document, schema=schema)
        return post_processing(document)
    except (JSONDecodeError, ValidationError):
        return None


def read_settings(settings_path: str) -> SettingsDocument:
    """Read and validate a settings document, raising if it is missing or malformed"""
    if not path.isfile(settings_path):
        raise SettingsNotFoundError(settings_path)
    with open(settings_path, encoding="utf-8") as f:
        content = f.read()
    settings: SettingsDocument | None = deserialize_document(content, SETTINGS_SCHEMA)
    if settings is None:
        raise InvalidSettingsError(f"Settings file {settings_path} is not a valid settings document")
    return settings


def merge_settings(settings: Mapping[str, Any], update: Mapping[str, Any]) -> SettingsDocument:
    """Return a copy of `settings` with only the top level keys present in `update` replaced"""
    merged = deepcopy(dict(settings))
    for key, value in update.items():
        merged[key] = deepcopy(value)
    return merged


def write_settings(settings_path: str, settings: Mapping[str, Any]) -> None:
    """Atomically rewrite the settings document, a reader never sees a partial file"""
    directory = path.dirname(path.abspath(settings_path))
    with NamedTemporaryFile("w", encoding="utf-8", dir=directory, suffix=".tmp", delete=False) as f:
        f.write(dumps(settings, indent=4))
        tmp_path = f.name
    try:
        replace(tmp_path, settings_path)
    except OSError:
        remove(tmp_path)
        raise
    log.debug("Wrote settings to %s", settings_path)


def update_settings(settings_path: str, update: Mapping[str, Any]) -> SettingsDocument:
    """Read, merge and rewrite the settings document at `settings_path`"""
    settings = merge_settings(read_settings(settings_path), update)
    write_settings(settings_path, settings)
    return settings
