"""
FIFO admission buffer for freshly arrived blocks.

The block source pushes at network rate; the coordinator pulls one block at a
time. `enqueue` never blocks and never drops; it is the only thing that wakes
a consumer parked in `wait()`.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Deque, Iterator, Optional

from ..types import BlockKey, PendingBlock


class BlockQueue:
    def __init__(self) -> None:
        self._items: Deque[PendingBlock] = deque()
        self._not_empty = asyncio.Event()

    def enqueue(self, pending: PendingBlock) -> int:
        """Append to the tail and wake the consumer. Returns the new depth."""
        self._items.append(pending)
        self._not_empty.set()
        return len(self._items)

    def try_dequeue(self) -> Optional[PendingBlock]:
        """Pop the head, or None when empty."""
        if not self._items:
            self._not_empty.clear()
            return None
        item = self._items.popleft()
        if not self._items:
            self._not_empty.clear()
        return item

    async def wait(self) -> None:
        """Suspend until an item is enqueued (or `wake()` is called)."""
        await self._not_empty.wait()

    def wake(self) -> None:
        """Release a parked consumer without enqueuing (used on stop)."""
        self._not_empty.set()

    def clear(self) -> int:
        dropped = len(self._items)
        self._items.clear()
        self._not_empty.clear()
        return dropped

    def contains(self, key: BlockKey) -> bool:
        return any(p.key == key for p in self._items)

    def peek(self) -> Optional[PendingBlock]:
        return self._items[0] if self._items else None

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[PendingBlock]:
        return iter(tuple(self._items))


__all__ = ["BlockQueue"]
