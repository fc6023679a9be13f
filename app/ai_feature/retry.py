import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
    wait_incrementing,
)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry: at most `max_attempts` calls, waiting between them.

    linear=True waits delay, 2*delay, 3*delay, ...; otherwise a fixed delay.
    Only exceptions listed in `retry_on` are retried; the last one is re-raised.
    """

    max_attempts: int = 3
    delay_seconds: float = 1.0
    linear: bool = False
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, compare=False)

    def _wait(self):
        if self.linear:
            return wait_incrementing(start=self.delay_seconds, increment=self.delay_seconds)
        return wait_fixed(self.delay_seconds)

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(1, self.max_attempts)),
            wait=self._wait(),
            retry=retry_if_exception_type(self.retry_on),
            sleep=self.sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await operation()
