"""Absolute time bound of one apply."""

from __future__ import annotations

import asyncio
import time
from typing import Callable

from provisioner.errors import DeadlineExceededError


class Deadline:
    """Deadline derived from the resource ``timeout``.

    Every retry loop of an apply shares one instance; once it has elapsed,
    the loop that is waiting to retry gives up.
    """

    def __init__(self, timeout: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.timeout = timeout
        self._clock = clock
        self._expires_at = clock() + timeout

    def remaining(self) -> float:
        return max(self._expires_at - self._clock(), 0.0)

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def error(self) -> DeadlineExceededError:
        return DeadlineExceededError(self.timeout)

    async def pause(self, delay: float) -> bool:
        """Wait *delay* seconds before the next retry.

        Returns ``False`` when the deadline elapses first, in which case the
        caller must stop retrying.
        """
        remaining = self.remaining()
        if delay < remaining:
            await asyncio.sleep(delay)
            return True
        await asyncio.sleep(remaining)
        return False
