"""
Outbound rate limiting for artifact syncs.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from ..config import DEFAULT_RATE_LIMIT_SECONDS


@dataclass
class FixedIntervalGate:
    """
    Releases callers at most once per ``interval_seconds``.

    The first ``wait()`` returns immediately; each later one sleeps until
    ``interval_seconds`` have passed since the previous release. Concurrent
    waiters are released one at a time.
    """
    interval_seconds: float = DEFAULT_RATE_LIMIT_SECONDS
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    _next_release: Optional[float] = field(default=None, init=False, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    async def wait(self) -> float:
        """Wait for the gate. Returns the number of seconds slept."""
        async with self._lock:
            slept = 0.0
            if self._next_release is not None:
                remaining = self._next_release - self.clock()
                if remaining > 0:
                    await self.sleep(remaining)
                    slept = remaining
            self._next_release = self.clock() + self.interval_seconds
            return slept
