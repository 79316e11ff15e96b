# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from asyncio import create_subprocess_exec
from asyncio.subprocess import PIPE, STDOUT
from collections.abc import AsyncIterable, Callable
from logging import Logger
from typing import TypeVar

T = TypeVar("T")


async def safe_collect(it: AsyncIterable[T], log: Logger) -> list[T]:
    """Helper for collecting an async iterable, logs a warning if an error was thrown but returns the result so far"""
    collected = []
    try:
        async for item in it:
            collected.append(item)
    except Exception as e:
        log.warning("Ignored error while collecting async iterable: %s", e)
    return collected


async def run_process(*args: str, on_output: Callable[[str], None] | None = None, cwd: str | None = None) -> int:
    """Run an external process to completion, forwarding each line of combined output to `on_output`"""
    process = await create_subprocess_exec(*args, stdout=PIPE, stderr=STDOUT, cwd=cwd)
    assert process.stdout is not None
    async for raw_line in process.stdout:
        line = raw_line.decode(errors="replace").rstrip()
        if line and on_output:
            on_output(line)
    return await process.wait()
