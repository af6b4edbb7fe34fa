"""
Light client • Cell Verifier

Drives verification of one block: walks the sampled cells in array order,
checks each through the VerificationPort, and reports progress after every
cell that verifies.

Per cell i:
  port.verify(proofs[i], commitments[cell.row], matrix.max_col, cell.row, cell.col)

  True              → verified; matrix gains the cell, confidence is
                      recomputed as 100 × (1 − 2^-verified), on_progress fires
  False             → failed (sampled, rejected); nothing published
  VerificationError → errored; logged, not counted

A rejected or errored cell never aborts the block. After every cell the
configured `cell_delay` elapses; after the last one, `settle_delay`.

Stop handling: `should_continue()` is checked before each call and again
once a call resolves. In-flight calls are never interrupted; a result that
resolves after stop is discarded and the settle delay is skipped.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Set, Tuple

from ..errors import VerificationError
from ..logging import get_logger
from ..metrics import LightClientMetrics
from ..types import Block, Cell, Matrix, PendingBlock, confidence_for
from .port import VerificationPort
from .probability import exact_confidence

log = get_logger(__name__)

ProgressFn = Callable[[Block, Matrix], Awaitable[None]]
ContinueFn = Callable[[], bool]
SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class BlockReport:
    """
    Outcome of one block's verification loop.

    `failed` cells were sampled and rejected, `errored` cells could not be
    checked, `skipped` cells repeated an earlier coordinate. Cells in none of
    these (nor in `verified`) were never sampled, e.g. after a stop.
    """
    block: Block
    matrix: Matrix
    sampled: int
    verified: Tuple[Cell, ...] = ()
    failed: Tuple[Cell, ...] = ()
    errored: Tuple[Cell, ...] = ()
    skipped: Tuple[Cell, ...] = ()
    aborted: bool = False

    @property
    def confidence(self) -> float:
        return self.block.confidence

    @property
    def exact_confidence(self) -> float:
        return exact_confidence(self.matrix.total_cell_count, len(self.verified))

    @property
    def not_sampled(self) -> int:
        done = len(self.verified) + len(self.failed) + len(self.errored) + len(self.skipped)
        return max(0, self.sampled - done)

    def summary(self) -> str:
        b = self.block
        text = (
            f"Block #{b.number} on {b.network}: {len(self.verified)}/{self.sampled} cells verified, "
            f"confidence {self.confidence:.2f}%"
        )
        if self.failed:
            text += f", {len(self.failed)} failed"
        if self.errored:
            text += f", {len(self.errored)} errored"
        if self.aborted:
            text += " (stopped)"
        return text


async def _noop_progress(block: Block, matrix: Matrix) -> None:
    return None


class CellVerifier:
    def __init__(
        self,
        port: VerificationPort,
        *,
        cell_delay: float = 0.1,
        settle_delay: float = 0.5,
        metrics: Optional[LightClientMetrics] = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if cell_delay < 0 or settle_delay < 0:
            raise ValueError("delays must be >= 0")
        self._port = port
        self._cell_delay = float(cell_delay)
        self._settle_delay = float(settle_delay)
        self._metrics = metrics
        self._sleep = sleep

    async def verify_block(
        self,
        pending: PendingBlock,
        matrix: Matrix,
        *,
        on_progress: Optional[ProgressFn] = None,
        should_continue: Optional[ContinueFn] = None,
    ) -> BlockReport:
        """
        Verify `pending`'s cells, starting from `matrix` (already reset by the
        caller). Blocks without DA submissions, without a matrix, or without
        cells are not sampled.
        """
        progress = on_progress or _noop_progress
        keep_going = should_continue or (lambda: True)

        block = pending.block
        verified: List[Cell] = []
        failed: List[Cell] = []
        errored: List[Cell] = []
        skipped: List[Cell] = []
        seen: Set[Tuple[int, int]] = set()
        aborted = False

        if not pending.samples_verification:
            log.debug(
                "block not sampled",
                extra={"has_da": block.has_da_submissions, "cells": len(pending.cells)},
            )
        else:
            for i, cell in enumerate(pending.cells):
                if not keep_going():
                    aborted = True
                    break
                if cell.key in seen:
                    log.debug("duplicate cell skipped", extra={"row": cell.row, "col": cell.col})
                    skipped.append(cell)
                    continue
                seen.add(cell.key)

                ok = erred = False
                try:
                    ok = await self._port.verify(
                        pending.proofs[i],
                        pending.commitments[cell.row],
                        matrix.max_col,
                        cell.row,
                        cell.col,
                    )
                except VerificationError as e:
                    log.warning("verification error: %s", e, extra={"row": cell.row, "col": cell.col})
                    errored.append(cell)
                    erred = True

                if not keep_going():
                    # result resolved after stop: drop it, publish nothing
                    aborted = True
                    break

                if ok:
                    verified.append(cell)
                    matrix = matrix.with_verified(cell)
                    block = block.with_confidence(confidence_for(len(verified)))
                    if self._metrics is not None:
                        self._metrics.note_confidence(block.confidence)
                    await progress(block, matrix)
                elif not erred:
                    failed.append(cell)

                await self._sleep(self._cell_delay)

        if not aborted:
            await self._sleep(self._settle_delay)

        return BlockReport(
            block=block,
            matrix=matrix,
            sampled=len(pending.cells) if pending.samples_verification else 0,
            verified=tuple(verified),
            failed=tuple(failed),
            errored=tuple(errored),
            skipped=tuple(skipped),
            aborted=aborted,
        )


__all__ = ["BlockReport", "CellVerifier"]
