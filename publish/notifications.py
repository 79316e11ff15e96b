# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol
from uuid import uuid4

# project
from settings.publish_history import PublishStatus, PublishStatusCode


class NotificationType(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    type: NotificationType
    title: str
    description: str
    id: str = field(default_factory=lambda: str(uuid4()))


class NotificationCenter(Protocol):
    def add_notification(self, notification: Notification) -> None: ...

    def delete_notification(self, notification_id: str) -> None: ...


class NotificationStore:
    """In-memory NotificationCenter, notifications are never persisted"""

    def __init__(self) -> None:
        self._notifications: dict[str, Notification] = {}

    def add_notification(self, notification: Notification) -> None:
        self._notifications[notification.id] = notification

    def delete_notification(self, notification_id: str) -> None:
        self._notifications.pop(notification_id, None)

    @property
    def notifications(self) -> list[Notification]:
        return list(self._notifications.values())


def pending_notification(bot_names: Iterable[str]) -> Notification:
    names = ", ".join(bot_names)
    return Notification(NotificationType.PENDING, "Publishing", f"Publishing {names} in progress")


def published_notification(bot_name: str, target_name: str, status: PublishStatus) -> Notification:
    if status.status == PublishStatusCode.SUCCESS:
        return Notification(
            NotificationType.SUCCESS, "Your bot was published", f"{bot_name} was published to {target_name}"
        )
    detail = f": {status.message}" if status.message else ""
    return Notification(
        NotificationType.ERROR, "Publish failed", f"{bot_name} failed to publish to {target_name}{detail}"
    )
