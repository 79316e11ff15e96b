# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from unittest import TestCase

# project
from publish.notifications import (
    Notification,
    NotificationStore,
    NotificationType,
    pending_notification,
    published_notification,
)
from settings.publish_history import PublishStatus


class TestNotifications(TestCase):
    def test_pending_notification(self):
        notification = pending_notification(["bot1", "bot2"])

        self.assertEqual(notification.type, NotificationType.PENDING)
        self.assertEqual(notification.description, "Publishing bot1, bot2 in progress")

    def test_published_notification(self):
        success = published_notification("bot1", "azure", PublishStatus(200, "Success"))
        failure = published_notification("bot1", "azure", PublishStatus(500))

        self.assertEqual((success.type, success.title), (NotificationType.SUCCESS, "Your bot was published"))
        self.assertEqual(failure.type, NotificationType.ERROR)
        self.assertEqual(failure.description, "bot1 failed to publish to azure")

    def test_notification_ids_are_unique(self):
        self.assertNotEqual(pending_notification(["bot1"]).id, pending_notification(["bot1"]).id)

    def test_store(self):
        store = NotificationStore()
        first = Notification(NotificationType.PENDING, "Publishing", "Publishing bot1 in progress")
        second = Notification(NotificationType.SUCCESS, "Your bot was published", "bot1 was published to azure")

        store.add_notification(first)
        store.add_notification(second)
        store.delete_notification(first.id)
        store.delete_notification("unknown")

        self.assertEqual(store.notifications, [second])
