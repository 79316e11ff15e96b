# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from collections.abc import Iterable, Mapping
from datetime import datetime
from enum import IntEnum
from typing import Any, Final, NamedTuple, NotRequired, TypedDict

# project
from settings.common import deserialize_document


class PublishStatusCode(IntEnum):
    SUCCESS = 200
    PENDING = 202
    FAILED = 500


TERMINAL_STATUS_CODES: Final = frozenset({PublishStatusCode.SUCCESS, PublishStatusCode.FAILED})


class PublishTarget(TypedDict):
    """A publish profile as stored in the bot settings, unknown keys are carried along untouched"""

    name: str
    type: str
    lastPublished: NotRequired[str]


class PublishStatus(NamedTuple):
    status: int
    message: str = ""
    comment: str = ""
    time: str = ""
    id: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == PublishStatusCode.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUS_CODES

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "PublishStatus":
        return cls(
            status=int(raw["status"]),
            message=raw.get("message") or "",
            comment=raw.get("comment") or "",
            time=raw.get("time") or "",
            id=raw.get("id"),
        )


PUBLISH_STATUS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "status": {"type": "integer"},
        "message": {"type": ["string", "null"]},
        "comment": {"type": ["string", "null"]},
        "time": {"type": ["string", "null"]},
        "id": {"type": ["string", "null"]},
    },
    "required": ["status"],
}

PUBLISH_HISTORY_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": {"type": "array", "items": PUBLISH_STATUS_SCHEMA},
}


class PublishHistory:
    """Append-only publish snapshots per target name, the last entry is the current status"""

    def __init__(self, history: Mapping[str, Iterable[PublishStatus]] | None = None) -> None:
        self._history: dict[str, list[PublishStatus]] = {
            target: list(entries) for target, entries in (history or {}).items()
        }

    def append(self, target_name: str, status: PublishStatus) -> None:
        self._history.setdefault(target_name, []).append(status)

    def extend(self, target_name: str, statuses: Iterable[PublishStatus]) -> None:
        self._history.setdefault(target_name, []).extend(statuses)

    def entries(self, target_name: str) -> list[PublishStatus]:
        return list(self._history.get(target_name, ()))

    def latest(self, target_name: str) -> PublishStatus | None:
        entries = self._history.get(target_name)
        return entries[-1] if entries else None

    def targets(self) -> list[str]:
        return list(self._history)

    def as_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {target: [entry._asdict() for entry in entries] for target, entries in self._history.items()}

    def __eq__(self, other: object) -> bool:
        return isinstance(other, PublishHistory) and self._history == other._history

    def __repr__(self) -> str:
        return f"PublishHistory({self._history!r})"


def _to_publish_history(raw: dict[str, list[dict[str, Any]]]) -> PublishHistory:
    return PublishHistory({target: map(PublishStatus.from_dict, entries) for target, entries in raw.items()})


def deserialize_publish_history(raw_history: str) -> PublishHistory | None:
    return deserialize_document(raw_history, PUBLISH_HISTORY_SCHEMA, _to_publish_history)  # type: ignore[arg-type]


def find_target(targets: Iterable[PublishTarget], target_name: str) -> PublishTarget | None:
    return next((target for target in targets if target["name"] == target_name), None)


def mark_last_published(
    targets: Iterable[PublishTarget], target_name: str, published_at: datetime
) -> list[PublishTarget]:
    """Return a new target list with `lastPublished` stamped on the named target"""
    return [
        {**target, "lastPublished": published_at.isoformat()} if target["name"] == target_name else target
        for target in targets
    ]
