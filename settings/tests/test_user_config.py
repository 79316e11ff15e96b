# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from logging import Logger
from unittest import TestCase

# project
from settings.user_config import load_deploy_options


class TestLoadDeployOptions(TestCase):
    def test_empty_options(self):
        self.assertEqual(load_deploy_options("", Logger("test")), {})

    def test_valid_options(self):
        options = """
        name: mybot
        environment: dev
        location: westus
        luis_authoring_key:
        """

        self.assertEqual(
            load_deploy_options(options, Logger("test")),
            {"name": "mybot", "environment": "dev", "location": "westus"},
        )

    def test_unknown_options_are_dropped(self):
        log = Logger("test")
        with self.assertLogs(log, level="WARNING") as ctx:
            options = load_deploy_options("name: mybot\ncolor: blue\n", log)

        self.assertEqual(options, {"name": "mybot"})
        self.assertIn("color", ctx.output[0])

    def test_invalid_yaml(self):
        options = """
        name: mybot
          environment: dev
        """

        log = Logger("test")
        with self.assertLogs(log, level="ERROR"):
            self.assertEqual(load_deploy_options(options, log), {})

    def test_non_mapping_yaml(self):
        log = Logger("test")
        with self.assertLogs(log, level="ERROR"):
            self.assertEqual(load_deploy_options("- mybot\n- dev\n", log), {})
