from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReadinessSignal:
    """One-shot readiness flag. Fires at most once and never resets."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_set(self) -> bool:
        return self._event.is_set()

    def fire(self) -> bool:
        if self._event.is_set():
            return False
        self._event.set()
        return True

    async def wait(self) -> None:
        await self._event.wait()


class SupportsReadiness(Protocol):
    @property
    def ready(self) -> bool: ...

    async def wait_ready(self) -> None: ...


def deferred_until_ready(
    method: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[T]]:
    """Park calls made before the owner is ready, then run them once with their original arguments.

    Parked calls resume independently when readiness fires, so their relative
    order is not preserved. Once ready, calls go straight through.
    """

    @functools.wraps(method)
    async def wrapper(self: SupportsReadiness, *args: Any, **kwargs: Any) -> T:
        if not self.ready:
            logger.debug("Deferring %s until store is ready", method.__name__)
            await self.wait_ready()
        return await method(self, *args, **kwargs)

    return wrapper
