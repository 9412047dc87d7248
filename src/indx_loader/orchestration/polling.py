# src/indx_loader/orchestration/polling.py
import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PollOutcome(str, Enum):
    DONE = "done"
    FETCH_FAILED = "fetch_failed"
    TIMED_OUT = "timed_out"


@dataclass
class PollResult(Generic[T]):
    outcome: PollOutcome
    last_value: Optional[T] = None
    attempts: int = 0
    elapsed_seconds: float = 0.0
    error: Optional[str] = None

    @property
    def is_done(self) -> bool:
        return self.outcome == PollOutcome.DONE


async def poll_until(
    fetch: Callable[[], Awaitable[T]],
    is_done: Callable[[T], bool],
    *,
    interval_seconds: float = 0.1,
    timeout_seconds: Optional[float] = None,
    on_tick: Optional[Callable[[int, T], None]] = None,
) -> PollResult[T]:
    """
    Call ``fetch`` every ``interval_seconds`` until ``is_done(value)`` holds.

    Stops early with FETCH_FAILED when ``fetch`` raises, or TIMED_OUT once
    ``timeout_seconds`` have elapsed. ``timeout_seconds=None`` polls forever;
    cancellation is then only possible by cancelling the awaiting task.
    """
    start = time.monotonic()
    attempts = 0
    last_value: Optional[T] = None

    while True:
        attempts += 1
        try:
            last_value = await fetch()
        except Exception as e:
            elapsed = time.monotonic() - start
            logger.error(f"Polling aborted after {attempts} attempts: {e}")
            return PollResult(PollOutcome.FETCH_FAILED, last_value, attempts, elapsed, str(e))

        if on_tick is not None:
            on_tick(attempts, last_value)

        elapsed = time.monotonic() - start
        if is_done(last_value):
            return PollResult(PollOutcome.DONE, last_value, attempts, elapsed)

        if timeout_seconds is not None and elapsed >= timeout_seconds:
            logger.warning(f"Polling timed out after {elapsed:.1f}s ({attempts} attempts)")
            return PollResult(PollOutcome.TIMED_OUT, last_value, attempts, elapsed)

        await asyncio.sleep(interval_seconds)
