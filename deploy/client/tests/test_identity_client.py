# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from datetime import UTC, datetime
from unittest import TestCase

# project
from deploy.client.identity_client import AppRegistration, IdentityClient, add_years, create_app_payload
from deploy.tests.common import AsyncTestCase, mock_response, mock_session


class TestIdentityHelpers(TestCase):
    def test_add_years(self):
        self.assertEqual(add_years(datetime(2020, 4, 1, tzinfo=UTC), 2), datetime(2022, 4, 1, tzinfo=UTC))

    def test_add_years_leap_day(self):
        self.assertEqual(add_years(datetime(2020, 2, 29, tzinfo=UTC), 2), datetime(2022, 2, 28, tzinfo=UTC))

    def test_create_app_payload(self):
        payload = create_app_payload("bot1", "Passw0rd!", datetime(2020, 4, 1, tzinfo=UTC))

        self.assertEqual(
            payload,
            {
                "displayName": "bot1",
                "passwordCredentials": [
                    {
                        "value": "Passw0rd!",
                        "startDate": "2020-04-01T00:00:00+00:00",
                        "endDate": "2022-04-01T00:00:00+00:00",
                    }
                ],
                "availableToOtherTenants": True,
                "replyUrls": ["https://token.botframework.com/.auth/web/redirect"],
            },
        )


class TestIdentityClient(AsyncTestCase):
    def setUp(self) -> None:
        self.response = mock_response(201, json={"appId": "app-id", "objectId": "object-id"})
        self.session = mock_session(self.response)
        self.patch_path("deploy.client.identity_client.ClientSession", return_value=self.session)

    async def test_create_app(self):
        async with IdentityClient("graph-token", "tenant1") as client:
            app = await client.create_app("bot1", "Passw0rd!")

        self.assertEqual(app, AppRegistration("app-id", "object-id", "bot1"))
        (url,) = self.session.post.call_args.args
        kwargs = self.session.post.call_args.kwargs
        self.assertEqual(url, "https://graph.windows.net/tenant1/applications?api-version=1.6")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer graph-token")
        self.assertEqual(kwargs["json"]["displayName"], "bot1")
        self.assertEqual(kwargs["json"]["passwordCredentials"][0]["value"], "Passw0rd!")
        self.assertTrue(kwargs["raise_for_status"])
        self.session.__aexit__.assert_awaited_once()
