"""
Bounded chain-tail history.

Blocks are pushed when they *start* processing, so the visible tail reflects
arrivals immediately. Only the most recent `capacity` blocks are kept; the
oldest is evicted first. Read order is oldest → newest (most-recent-last).
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterator, Optional, Tuple

from ..types import Block


class HistoryWindow:
    def __init__(self, capacity: int = 10) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._blocks: Deque[Block] = deque(maxlen=int(capacity))

    @property
    def capacity(self) -> int:
        return self._blocks.maxlen or 0

    def push(self, block: Block) -> None:
        self._blocks.append(block)

    def items(self) -> Tuple[Block, ...]:
        return tuple(self._blocks)

    def newest_first(self) -> Tuple[Block, ...]:
        return tuple(reversed(self._blocks))

    def latest(self) -> Optional[Block]:
        return self._blocks[-1] if self._blocks else None

    def clear(self) -> None:
        self._blocks.clear()

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[Block]:
        return iter(tuple(self._blocks))


__all__ = ["HistoryWindow"]
