"""
Store calls that task cancellation cannot interrupt half-way.

A DBAPI call abandoned mid-flight leaves the session's connection unusable,
so a cancelled caller waits for the call to finish before CancelledError
propagates. Staged changes and the connection are left as the call left them.
"""

import asyncio
from typing import Awaitable, TypeVar

from dataaccess.logging.logger import get_logger

T = TypeVar("T")

logger = get_logger("repository")


async def run_to_completion(awaitable: Awaitable[T]) -> T:
    """Await a store call; on cancellation, let it finish, then re-raise CancelledError."""
    async def _call():
        return await awaitable

    task = asyncio.create_task(_call())
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        while not task.done():
            try:
                await asyncio.wait({task})
            except asyncio.CancelledError:
                continue
        if not task.cancelled() and task.exception() is not None:
            logger.warning(f"Store call failed after cancellation: {task.exception()!r}")
        raise
