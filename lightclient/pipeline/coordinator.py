"""
Light client • Processing Coordinator

The single consumer of the BlockQueue. It is the only entity allowed to
dequeue, and it processes blocks strictly one at a time:

    IDLE → DRAINING → VERIFYING → DRAINING → … → STOPPED

Lifecycle:
  - start() launches the consumer task (DRAINING)
  - in DRAINING, one PendingBlock is dequeued (or the task parks on the queue)
  - before any cell is checked, the block becomes current, the matrix is
    reset, the block enters the History Window, and all of it is published
  - the CellVerifier runs; each verified cell replaces the current block and
    matrix snapshots
  - on completion a BlockReport is published on "completed" and the task
    returns to DRAINING
  - stop() lets an in-flight verification call resolve, drops queued work and
    ends in STOPPED

Malformed blocks are rejected before they become current. A dequeue attempted
while a block is verifying is a StateInvariantViolation: the consumer halts
and the failure is surfaced at CRITICAL.
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import replace
from typing import Optional

from ..errors import InvalidBlock, StateInvariantViolation
from ..events import TOPIC_COMPLETED
from ..logging import context_scope, get_logger
from ..metrics import LightClientMetrics, get_metrics
from ..sampling.verifier import BlockReport, CellVerifier
from ..state import LightClientState
from ..types import Block, BlockKey, Matrix, PendingBlock
from .queue import BlockQueue

log = get_logger(__name__)


class Phase(str, enum.Enum):
    IDLE = "idle"
    DRAINING = "draining"
    VERIFYING = "verifying"
    STOPPED = "stopped"


class ProcessingCoordinator:
    def __init__(
        self,
        *,
        state: LightClientState,
        queue: BlockQueue,
        verifier: CellVerifier,
        metrics: Optional[LightClientMetrics] = None,
    ) -> None:
        self._state = state
        self._queue = queue
        self._verifier = verifier
        self._metrics = metrics or get_metrics()

        self._phase = Phase.IDLE
        self._task: Optional[asyncio.Task] = None
        self._stopping = False
        self._active: Optional[PendingBlock] = None
        self._idle = asyncio.Event()
        self.failure: Optional[Exception] = None
        self.processed = 0

    # -------------------------- introspection ---------------------------

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def active_key(self) -> Optional[BlockKey]:
        """Identity of the block being verified, if any."""
        return self._active.key if self._active is not None else None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # -------------------------- lifecycle -------------------------------

    def start(self) -> asyncio.Task:
        """Launch the consumer task; a no-op if it is already running."""
        if self._task is not None and not self._task.done():
            return self._task
        self._stopping = False
        self.failure = None
        self._phase = Phase.DRAINING
        self._task = asyncio.create_task(self._run(), name="lightclient-coordinator")
        return self._task

    async def stop(self) -> None:
        """
        Request stop, wait for the consumer to reach a safe point (an in-flight
        verification call resolves first), and drop queued blocks. Idempotent.
        """
        self._stopping = True
        self._queue.wake()
        task, self._task = self._task, None
        if task is not None:
            # The consumer's own failure was already logged and stored in self.failure.
            await asyncio.gather(task, return_exceptions=True)
        dropped = self._queue.clear()
        if dropped:
            log.info("dropped queued blocks on stop", extra={"dropped": dropped})
        self._metrics.note_dequeued(queue_depth=0)
        self._active = None
        self._state.set_processing(False)
        self._phase = Phase.STOPPED
        self._idle.set()

    async def wait_idle(self) -> None:
        """Resolve once the queue is empty and no block is verifying."""
        while self.running and (len(self._queue) or self._phase is Phase.VERIFYING):
            self._idle.clear()
            await self._idle.wait()

    # -------------------------- consumer loop ---------------------------

    async def _run(self) -> None:
        try:
            while not self._stopping:
                self._phase = Phase.DRAINING
                pending = self._dequeue()
                if pending is None:
                    self._idle.set()
                    await self._queue.wait()
                    continue
                await self._process(pending)
        except StateInvariantViolation as e:
            self.failure = e
            log.critical("pipeline halted: %s", e, extra=e.data)
            self._state.log.append(f"Pipeline halted: {e.message}", level="critical")
            raise
        except Exception as e:
            self.failure = e
            log.critical("pipeline crashed: %r", e, exc_info=True)
            self._state.log.append(f"Pipeline halted: {type(e).__name__}: {e}", level="critical")
            raise
        finally:
            self._phase = Phase.STOPPED
            self._idle.set()

    def _dequeue(self) -> Optional[PendingBlock]:
        if self._active is not None:
            raise StateInvariantViolation(
                "dequeue attempted while a block is verifying",
                data={"active": list(self.active_key or ())},
            )
        pending = self._queue.try_dequeue()
        if pending is not None:
            self._metrics.note_dequeued(queue_depth=len(self._queue))
        return pending

    async def _process(self, pending: PendingBlock) -> None:
        block = pending.block
        try:
            pending.validate()
        except InvalidBlock as e:
            log.warning("rejected block: %s", e, extra={"number": block.number})
            self._metrics.note_rejected(reason=e.code)
            self._state.log.append(f"Rejected block #{block.number}: {e.message}", level="warning")
            return

        self._active = pending
        self._phase = Phase.VERIFYING
        try:
            with context_scope(block=block.number):
                report = await self._verify(pending)
        finally:
            self._active = None

        self._state.set_processing(False)
        if report.aborted:
            log.info("block abandoned on stop", extra={"number": block.number})
        else:
            self.processed += 1
            self._state.bus.publish(TOPIC_COMPLETED, report)
            self._state.log.append(report.summary())
        self._metrics.note_processed(
            network=block.network, aborted=report.aborted, confidence=report.confidence
        )

    async def _verify(self, pending: PendingBlock) -> BlockReport:
        block = pending.block
        log.debug(
            "processing block",
            extra={
                "has_da": block.has_da_submissions,
                "cells": len(pending.cells),
                "grid": f"{pending.matrix.max_row}x{pending.matrix.max_col}" if pending.matrix else "none",
            },
        )

        # Reset regardless of what the source handed us. A sampled block starts
        # from zero confidence; unsampled blocks keep the value they arrived with.
        matrix = pending.matrix.reset() if pending.matrix is not None else Matrix.empty()
        if pending.samples_verification:
            block = block.with_confidence(0.0)
            pending = replace(pending, block=block)
        self._state.set_current_block(block)
        self._state.set_matrix(matrix)
        self._state.push_history(block)
        self._state.set_processing(True)

        return await self._verifier.verify_block(
            pending,
            matrix,
            on_progress=self._publish_progress,
            should_continue=self._should_continue,
        )

    def _should_continue(self) -> bool:
        return not self._stopping

    async def _publish_progress(self, block: Block, matrix: Matrix) -> None:
        if self._stopping:
            return
        self._state.set_current_block(block)
        self._state.set_matrix(matrix)


__all__ = ["Phase", "ProcessingCoordinator"]
