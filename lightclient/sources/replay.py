"""
Replay a fixed list of blocks (typically loaded from a JSON fixture).

Only blocks whose network matches the started network are emitted; the rest
are skipped, so one fixture file can hold several networks.
"""

from __future__ import annotations

from pathlib import Path
from typing import AsyncIterator, Iterable, List, Union

from ..logging import get_logger
from ..types import PendingBlock
from .base import TaskBlockSource
from .fixtures import load_fixture

log = get_logger(__name__)


class ReplayBlockSource(TaskBlockSource):
    def __init__(self, blocks: Iterable[PendingBlock], *, interval: float = 0.0) -> None:
        super().__init__(interval=interval)
        self._blocks: List[PendingBlock] = list(blocks)

    @classmethod
    def from_file(cls, path: Union[str, Path], *, interval: float = 0.0) -> "ReplayBlockSource":
        return cls(load_fixture(path), interval=interval)

    def __len__(self) -> int:
        return len(self._blocks)

    def count_for(self, network: str) -> int:
        return sum(1 for p in self._blocks if p.block.network == network)

    async def produce(self, network: str) -> AsyncIterator[PendingBlock]:
        skipped = 0
        for pending in self._blocks:
            if pending.block.network != network:
                skipped += 1
                continue
            yield pending
        if skipped:
            log.debug("replay skipped blocks for other networks", extra={"skipped": skipped})


__all__ = ["ReplayBlockSource"]
