# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from logging import getLogger
from typing import Any, NamedTuple, Protocol

# project
from publish.notifications import Notification, NotificationCenter, pending_notification, published_notification
from publish.poller import PublishStatusPoller
from settings.common import PUBLISH_TARGETS_KEY, update_settings
from settings.publish_history import PublishStatus, PublishStatusCode, PublishTarget, find_target, mark_last_published

log = getLogger(__name__)

SaveTargets = Callable[[str, list[PublishTarget]], Awaitable[None]]


class PublishBackend(Protocol):
    async def publish_to_target(
        self, project_id: str, target: PublishTarget, metadata: dict[str, Any], sensitive_settings: dict[str, Any]
    ) -> PublishStatus: ...

    async def get_publish_status(self, project_id: str, target: PublishTarget) -> PublishStatus | None: ...


class PublishItem(NamedTuple):
    bot_id: str
    bot_name: str
    target_name: str
    targets: list[PublishTarget]
    comment: str = ""
    sensitive_settings: dict[str, Any] | None = None


def settings_file_target_store(settings_paths: dict[str, str]) -> SaveTargets:
    """SaveTargets which rewrites the publishTargets of each bot's settings file"""

    async def save_targets(bot_id: str, targets: list[PublishTarget]) -> None:
        update_settings(settings_paths[bot_id], {PUBLISH_TARGETS_KEY: targets})

    return save_targets


class BatchPublisher:
    """Publishes several bots at once, one pending notification for the batch and one completion notification per bot"""

    def __init__(
        self,
        backend: PublishBackend,
        notifications: NotificationCenter,
        save_targets: SaveTargets,
        interval: float | None = None,
    ) -> None:
        self.backend = backend
        self.notifications = notifications
        self.save_targets = save_targets
        self.poller = PublishStatusPoller(backend.get_publish_status, self._on_complete, interval)
        self.pending: Notification | None = None
        self._bot_names: dict[str, str] = {}

    async def publish(self, items: list[PublishItem]) -> None:
        self._bot_names.update({item.bot_id: item.bot_name for item in items})
        self.pending = pending_notification(item.bot_name for item in items)
        self.notifications.add_notification(self.pending)

        for item in items:
            target = find_target(item.targets, item.target_name)
            if target is None:
                log.warning("Publish target %s not found for bot %s", item.target_name, item.bot_id)
                continue
            self.poller.start_publish(item.bot_id, target)
            try:
                status = await self.backend.publish_to_target(
                    item.bot_id, target, {"comment": item.comment}, item.sensitive_settings or {}
                )
            except Exception as e:
                log.exception("Failed to publish bot %s to %s", item.bot_id, item.target_name)
                self.poller.observe(item.bot_id, target, PublishStatus(PublishStatusCode.FAILED, str(e)))
                continue

            updated_targets = mark_last_published(item.targets, item.target_name, datetime.now(UTC))
            await self.save_targets(item.bot_id, updated_targets)
            self.poller.observe(item.bot_id, find_target(updated_targets, item.target_name) or target, status)

    def _on_complete(self, bot_id: str, target: PublishTarget, status: PublishStatus) -> None:
        if self.pending is not None:
            self.notifications.delete_notification(self.pending.id)
        self.notifications.add_notification(
            published_notification(self._bot_names.get(bot_id, bot_id), target["name"], status)
        )

    async def wait(self) -> None:
        await self.poller.wait()

    def close(self) -> None:
        self.poller.close()
