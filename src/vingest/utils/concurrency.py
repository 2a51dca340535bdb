"""Structured fan-out/fan-in helpers for independent asynchronous operations."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")


@dataclass(slots=True)
class Settled(Generic[ItemT, ResultT]):
    """Outcome of one operation: either ``value`` or ``error`` is populated."""

    item: ItemT
    value: Optional[ResultT] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def gather_settled(
    items: Sequence[ItemT],
    worker: Callable[[ItemT], Awaitable[ResultT]],
    *,
    limit: int = 8,
) -> List[Settled[ItemT, ResultT]]:
    """Run ``worker`` over ``items`` concurrently and wait for every call to settle.

    At most ``limit`` calls are in flight at once. A failing call never cancels its siblings; its
    exception is captured in the corresponding :class:`Settled`. Results keep the input order.
    Cancellation of the caller still propagates.
    """

    semaphore = asyncio.Semaphore(max(1, limit))

    async def run(item: ItemT) -> Settled[ItemT, ResultT]:
        async with semaphore:
            try:
                return Settled(item=item, value=await worker(item))
            except Exception as exc:
                return Settled(item=item, error=exc)

    return list(await asyncio.gather(*(run(item) for item in items)))


__all__ = ["Settled", "gather_settled"]
