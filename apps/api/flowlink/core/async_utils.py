from __future__ import annotations

import asyncio
from typing import Awaitable, Coroutine, TypeVar

import anyio

T = TypeVar("T")


async def run_with_timeout(awaitable: Awaitable[T], *, timeout: float | None) -> T:
    """
    Await with an upper bound on wall-clock time.

    Raises TimeoutError when the ceiling is exceeded. Work already committed
    by the awaited coroutine is not rolled back.
    """
    if timeout is None:
        return await awaitable
    with anyio.fail_after(timeout):
        return await awaitable


def run_async(coro: Coroutine[object, object, T], *, timeout: float | None = None) -> T:
    """
    Run an async coroutine from sync code (CLI, worker bootstrap).

    Raises if called from an async context in the same thread (use await instead).
    """

    async def _runner() -> T:
        return await run_with_timeout(coro, timeout=timeout)

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return anyio.run(_runner)
    raise RuntimeError("run_async called from async context; use await instead")
