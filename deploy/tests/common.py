# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from collections.abc import AsyncIterable
from json import dumps, loads
from os import makedirs, path
from tempfile import TemporaryDirectory
from typing import Any, TypeVar
from unittest import IsolatedAsyncioTestCase
from unittest.mock import AsyncMock, MagicMock, Mock, call, patch

T = TypeVar("T")


class AsyncTestCase(IsolatedAsyncioTestCase):
    def patch_path(self, path: str, **kwargs: Any) -> MagicMock | AsyncMock:
        p = patch(path, **kwargs)
        self.addCleanup(p.stop)
        return p.start()

    def assertCalledTimesWith(self, mock: AsyncMock, times: int, /, *args: Any, **kwargs: Any):
        self.assertEqual(mock.await_count, times)
        self.assertEqual([call(*args, **kwargs)] * times, mock.await_args_list)


class ProjectTestCase(AsyncTestCase):
    """Runs each test against a throwaway bot project directory"""

    def setUp(self) -> None:
        super().setUp()
        tmp = TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.project_path = tmp.name

    def project_file(self, *parts: str) -> str:
        return path.join(self.project_path, *parts)

    def write_json(self, file_path: str, content: Any) -> None:
        makedirs(path.dirname(file_path), exist_ok=True)
        with open(file_path, "w", encoding="utf-8") as f:
            f.write(dumps(content))

    def write_text(self, file_path: str, content: str) -> None:
        makedirs(path.dirname(file_path), exist_ok=True)
        with open(file_path, "w", encoding="utf-8") as f:
            f.write(content)

    def read_json(self, file_path: str) -> Any:
        with open(file_path, encoding="utf-8") as f:
            return loads(f.read())


async def async_generator(*items: T) -> AsyncIterable[T]:
    for x in items:
        if isinstance(x, Exception):
            raise x
        yield x


class UnexpectedException(Exception):
    """Testing for exceptions that we havent accounted for"""

    pass


def mock(**kwargs: Any) -> Mock:
    m = Mock()
    for k, v in kwargs.items():
        setattr(m, k, v)
    return m


def AsyncMockClient(**kwargs: Any) -> AsyncMock:
    """An AsyncMock with the context manager methods set up to use as a client"""
    m = AsyncMock(**kwargs)
    m.__aenter__.return_value = m
    m.__aexit__.return_value = None
    return m


def mock_response(status: int = 200, json: Any = None, text: str = "") -> AsyncMock:
    """An aiohttp response usable both awaited directly and as `async with session.get(...)`"""
    resp = AsyncMockClient()
    resp.status = status
    resp.ok = 200 <= status < 300
    resp.reason = "OK" if resp.ok else "Error"
    resp.json.return_value = json
    resp.text.return_value = text
    resp.content.read.return_value = text.encode()
    resp.raise_for_status = Mock()
    return resp


def mock_session(*responses: AsyncMock) -> AsyncMock:
    """An aiohttp ClientSession whose get/post return the given responses in order"""
    session = AsyncMockClient()
    session.get = MagicMock(side_effect=list(responses))
    session.post = MagicMock(side_effect=list(responses))
    return session

