"""Fault-tolerant fan-out helpers: per-task deadlines and settle-all joins."""
import asyncio
import logging
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Settled(Generic[T]):
    """Outcome of one task: a value or the exception it raised."""

    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap_or(self, default: T) -> T:
        return self.value if self.error is None and self.value is not None else default


async def with_deadline(aw: Awaitable[T], timeout: Optional[float], label: str = "task") -> Optional[T]:
    """Await ``aw`` for at most ``timeout`` seconds; a timeout resolves to None."""
    if timeout is None:
        return await aw
    try:
        return await asyncio.wait_for(aw, timeout)
    except asyncio.TimeoutError:
        logger.warning("%s timed out after %.1fs", label, timeout)
        return None


async def settle_all(
    aws: Iterable[Awaitable[T]],
    timeout: Optional[float] = None,
    limit: Optional[int] = None,
    labels: Optional[list[str]] = None,
) -> list[Settled[T]]:
    """Run awaitables concurrently and collect one Settled per input, in input order.

    A failure or timeout in one task never cancels its siblings. ``limit`` bounds
    how many run at once.
    """
    aws = list(aws)
    labels = labels or [f"task[{i}]" for i in range(len(aws))]
    semaphore = asyncio.Semaphore(limit) if limit else None

    async def _run(aw: Awaitable[T], label: str) -> Any:
        if semaphore is None:
            return await with_deadline(aw, timeout, label)
        async with semaphore:
            return await with_deadline(aw, timeout, label)

    raw = await asyncio.gather(*(_run(aw, lb) for aw, lb in zip(aws, labels)), return_exceptions=True)
    results: list[Settled[T]] = []
    for label, outcome in zip(labels, raw):
        if isinstance(outcome, BaseException):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            logger.warning("%s failed: %s", label, outcome)
            results.append(Settled(error=outcome))
        else:
            results.append(Settled(value=outcome))
    return results
