# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from datetime import UTC, datetime
from json import dumps
from unittest import TestCase

# project
from settings.publish_history import (
    PublishHistory,
    PublishStatus,
    PublishTarget,
    deserialize_publish_history,
    find_target,
    mark_last_published,
)

PENDING = PublishStatus(202, "Accepted for publishing.", time="2020-04-01T00:00:00Z", id="job1")
SUCCESS = PublishStatus(200, "Success", time="2020-04-01T00:01:00Z", id="job1")
FAILED = PublishStatus(500, "Bad credentials", id="job2")


class TestPublishStatus(TestCase):
    def test_from_dict(self):
        status = PublishStatus.from_dict({"status": 202, "message": None, "time": "now", "extra": True})

        self.assertEqual(status, PublishStatus(202, "", "", "now", None))
        self.assertTrue(status.is_pending)
        self.assertFalse(status.is_terminal)

    def test_terminal_statuses(self):
        self.assertTrue(SUCCESS.is_terminal)
        self.assertTrue(FAILED.is_terminal)
        self.assertFalse(PublishStatus(404).is_terminal)


class TestPublishHistory(TestCase):
    def test_latest_is_last_entry(self):
        history = PublishHistory()
        history.append("azure", PENDING)
        history.append("azure", SUCCESS)

        self.assertEqual(history.latest("azure"), SUCCESS)
        self.assertEqual(history.entries("azure"), [PENDING, SUCCESS])
        self.assertIsNone(history.latest("other"))

    def test_entries_are_a_copy(self):
        history = PublishHistory({"azure": [PENDING]})

        history.entries("azure").append(SUCCESS)

        self.assertEqual(history.entries("azure"), [PENDING])

    def test_extend_and_targets(self):
        history = PublishHistory()
        history.extend("azure", [PENDING, SUCCESS])
        history.extend("local", [FAILED])

        self.assertEqual(history.targets(), ["azure", "local"])
        self.assertEqual(history.latest("local"), FAILED)

    def test_deserialize(self):
        raw = dumps({"azure": [PENDING._asdict(), SUCCESS._asdict()]})

        self.assertEqual(deserialize_publish_history(raw), PublishHistory({"azure": [PENDING, SUCCESS]}))

    def test_as_dict(self):
        history = PublishHistory({"azure": [FAILED]})

        self.assertEqual(deserialize_publish_history(dumps(history.as_dict())), history)

    def test_deserialize_invalid(self):
        self.assertIsNone(deserialize_publish_history("not json"))
        self.assertIsNone(deserialize_publish_history(dumps({"azure": [{"message": "no status"}]})))
        self.assertIsNone(deserialize_publish_history(dumps(["azure"])))


class TestPublishTargets(TestCase):
    def setUp(self) -> None:
        self.targets: list[PublishTarget] = [
            {"name": "azure", "type": "azurePublish", "configuration": "{}"},  # type: ignore[typeddict-unknown-key]
            {"name": "local", "type": "localPublish"},
        ]

    def test_find_target(self):
        self.assertEqual(find_target(self.targets, "local"), {"name": "local", "type": "localPublish"})
        self.assertIsNone(find_target(self.targets, "missing"))

    def test_mark_last_published(self):
        published_at = datetime(2020, 4, 1, 12, 30, tzinfo=UTC)

        updated = mark_last_published(self.targets, "azure", published_at)

        self.assertEqual(
            updated,
            [
                {
                    "name": "azure",
                    "type": "azurePublish",
                    "configuration": "{}",
                    "lastPublished": "2020-04-01T12:30:00+00:00",
                },
                {"name": "local", "type": "localPublish"},
            ],
        )
        self.assertNotIn("lastPublished", self.targets[0])
