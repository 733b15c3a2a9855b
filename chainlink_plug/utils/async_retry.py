"""
Async retry with exponential backoff

Used for remote lookups that are expected to lag behind the chain, such as
the block explorer indexing the internal transactions of a freshly mined
registration.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from .exceptions import ExplorerError

T = TypeVar('T')
LOG = logging.getLogger(__name__)


class RetryState:
    """Tracks attempts and accumulated delay for one operation"""

    def __init__(
        self,
        max_attempts: int,
        base_delay: float,
        max_delay: float,
        exponential_base: float,
        jitter: bool
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.attempt = 0
        self.total_delay = 0.0

    def should_retry(self) -> bool:
        return self.attempt < self.max_attempts

    def next_delay(self) -> float:
        """Exponential backoff, optionally jittered by up to 25%, capped at max_delay"""
        delay = self.base_delay * (self.exponential_base ** self.attempt)

        if self.jitter:
            spread = delay * 0.25
            delay += random.uniform(-spread, spread)

        delay = min(delay, self.max_delay)
        self.total_delay += delay
        return delay

    def record_attempt(self) -> None:
        self.attempt += 1


class AsyncRetry:
    """
    Retry an async callable on selected exception types.

    `max_attempts` counts every call, including the first one; 1 disables
    retrying altogether.

    Usage:
        retry = AsyncRetry(max_attempts=5, base_delay=2.0)
        address = await retry.execute(client.find_created_contract, tx_hash)
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 2.0,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
        retry_on: Optional[Tuple[Type[Exception], ...]] = None
    ):
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.retry_on = retry_on or (ExplorerError, asyncio.TimeoutError)

    async def execute(self, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """
        Call `func` until it succeeds or the attempts are exhausted.

        Raises:
            The last exception once all attempts failed, or immediately for
            exception types not listed in `retry_on`.
        """
        state = RetryState(
            self.max_attempts,
            self.base_delay,
            self.max_delay,
            self.exponential_base,
            self.jitter
        )

        while True:
            try:
                result = await func(*args, **kwargs)
                if state.attempt > 0:
                    LOG.info(
                        f"Succeeded after {state.attempt} retries "
                        f"(waited {state.total_delay:.2f}s)"
                    )
                return result

            except Exception as e:
                if not isinstance(e, self.retry_on):
                    raise

                state.record_attempt()
                if not state.should_retry():
                    LOG.error(
                        f"Giving up after {state.max_attempts} attempts: "
                        f"{type(e).__name__}: {e}"
                    )
                    raise

                delay = state.next_delay()
                LOG.warning(
                    f"Attempt {state.attempt}/{state.max_attempts} failed: {e}. "
                    f"Retrying in {delay:.2f}s..."
                )

                await asyncio.sleep(delay)
