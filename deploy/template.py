# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from collections.abc import Mapping
from dataclasses import dataclass
from json import JSONDecodeError, loads
from typing import Any, Generic, TypeAlias, TypeVar

T = TypeVar("T")


class TemplateError(ValueError):
    pass


@dataclass(frozen=True)
class TemplateParameter(Generic[T]):
    """ARM binds parameters and reports outputs as `{"value": X}` envelopes"""

    value: T

    def as_dict(self) -> dict[str, T]:
        return {"value": self.value}


TemplateParameters: TypeAlias = dict[str, TemplateParameter[Any]]


def pack(value: T) -> TemplateParameter[T]:
    return TemplateParameter(value)


def unpack(wrapped: TemplateParameter[T] | Mapping[str, T]) -> T:
    if isinstance(wrapped, TemplateParameter):
        return wrapped.value
    return wrapped["value"]


def unpack_outputs(outputs: Mapping[str, Any] | None) -> dict[str, Any]:
    """Unwrap deployment outputs, entries without a value are dropped"""
    unpacked: dict[str, Any] = {}
    for key, output in (outputs or {}).items():
        if isinstance(output, TemplateParameter):
            value = output.value
        elif isinstance(output, Mapping):
            value = output.get("value")
        else:
            continue
        if value is not None:
            unpacked[key] = value
    return unpacked


def serialize_parameters(params: TemplateParameters) -> dict[str, dict[str, Any]]:
    return {name: param.as_dict() for name, param in params.items()}


def get_deployment_template_params(
    app_id: str,
    app_password: str,
    location: str,
    name: str,
    should_create_authoring_resource: bool,
) -> TemplateParameters:
    return {
        "appId": pack(app_id),
        "appSecret": pack(app_password),
        "appServicePlanLocation": pack(location),
        "botId": pack(name),
        "shouldCreateAuthoringResource": pack(should_create_authoring_resource),
    }


def read_template(template_path: str) -> dict[str, Any]:
    """Load an ARM template, raising TemplateError if it is not a JSON object"""
    with open(template_path, encoding="utf-8") as f:
        content = f.read()
    try:
        template = loads(content)
    except JSONDecodeError as e:
        raise TemplateError(f"Template {template_path} is not valid JSON: {e}") from e
    if not isinstance(template, dict):
        raise TemplateError(f"Template {template_path} must contain a JSON object")
    return template
