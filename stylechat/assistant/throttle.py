"""Minimum-interval throttle for outbound provider calls.

The throttle spaces call *issuance*: the time of a call is recorded just
before it is made, so a slow call does not shorten the gap before the next
one. Waiting happens under an ``asyncio.Lock``; concurrent callers are
released one interval apart instead of all at the same deadline.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from stylechat.metrics import metrics_service

# Configure module logger
logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MIN_INTERVAL_MS = 4500


class RequestThrottle:
    """Keeps successive calls at least ``min_interval_ms`` apart.

    Args:
        min_interval_ms: Minimum spacing between the start of two calls.
        clock: Monotonic clock in seconds.
        sleep: Coroutine used to wait; replaced in tests.
    """

    def __init__(
        self,
        min_interval_ms: int = DEFAULT_MIN_INTERVAL_MS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if min_interval_ms < 0:
            raise ValueError(f"min_interval_ms must be >= 0, got {min_interval_ms}")
        self.min_interval_ms = min_interval_ms
        self._clock = clock
        self._sleep = sleep
        self._last_call: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def last_call(self) -> Optional[float]:
        return self._last_call

    async def wait_turn(self) -> float:
        """Wait until a call is allowed and claim the slot.

        Returns:
            Milliseconds spent waiting.
        """
        async with self._lock:
            waited_ms = 0.0
            if self._last_call is not None:
                elapsed_ms = (self._clock() - self._last_call) * 1000
                if elapsed_ms < self.min_interval_ms:
                    waited_ms = self.min_interval_ms - elapsed_ms
                    logger.info(
                        "Throttling outbound call",
                        extra={"wait_ms": round(waited_ms, 2)},
                    )
                    metrics_service.record_throttle_wait(waited_ms)
                    await self._sleep(waited_ms / 1000)
            self._last_call = self._clock()
            return waited_ms

    async def call(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Run ``fn`` once the minimum interval has passed.

        Errors raised by ``fn`` propagate unchanged.
        """
        await self.wait_turn()
        return await fn(*args, **kwargs)
