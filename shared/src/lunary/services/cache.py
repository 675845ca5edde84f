"""Get-or-build primitive shared by the global and per-user caches."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def get_or_build(
    key: object,
    *,
    load: Callable[[], Awaitable[T | None]],
    build: Callable[[], Awaitable[T]],
    store: Callable[[T], Awaitable[None]],
) -> T:
    """Return the cached value for key, building and storing it on a miss.

    Concurrent builders may both miss; store must be an upsert so the race
    resolves to last-writer-wins.
    """
    cached = await load()
    if cached is not None:
        return cached
    logger.debug("Cache miss for %s; building", key)
    value = await build()
    await store(value)
    return value
