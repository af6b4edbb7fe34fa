"""Shared builders for light client tests."""

from __future__ import annotations

import asyncio
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from lightclient.errors import SourceError
from lightclient.sampling.digest import cell_proof, row_commitment
from lightclient.types import Block, Cell, Matrix, PendingBlock


def make_pending(
    number: int,
    cells: Sequence[Tuple[int, int]] = ((0, 0), (0, 1), (1, 0), (1, 1)),
    *,
    network: str = "Turing",
    rows: int = 2,
    cols: int = 2,
    has_da: bool = True,
    bad: Iterable[Tuple[int, int]] = (),
    block_hash: Optional[str] = None,
) -> PendingBlock:
    """
    Build a PendingBlock whose proofs verify under DigestVerifier, except for
    the coordinates listed in `bad`.
    """
    bad_set = set(bad)
    commitments = tuple(row_commitment(f"{network}:{number}".encode(), r) for r in range(rows))
    cell_objs = tuple(Cell(row=r, col=c) for r, c in cells)
    proofs = []
    for cell in cell_objs:
        proof = cell_proof(commitments[cell.row], cols, cell.row, cell.col)
        if cell.key in bad_set:
            proof = bytes(b ^ 0xFF for b in proof)
        proofs.append(proof)
    return PendingBlock(
        block=Block(
            network=network,
            number=number,
            hash=block_hash or f"0x{number:064x}",
            total_cell_count=rows * cols,
            sample_count=len(cell_objs),
            has_da_submissions=has_da,
        ),
        matrix=Matrix(max_row=rows, max_col=cols, total_cell_count=rows * cols),
        cells=cell_objs,
        proofs=tuple(proofs),
        commitments=commitments,
    )


class ManualSource:
    """
    Block source driven by the test: `push()` delivers through whatever sink
    the most recent start() handed over.
    """

    def __init__(self, *, fail_on_start: bool = False) -> None:
        self.fail_on_start = fail_on_start
        self.started: List[str] = []
        self.stopped = 0
        self.emit: Optional[Callable[[PendingBlock], None]] = None
        self.on_error: Optional[Callable[[SourceError], None]] = None

    def start(self, network, emit, on_error):
        self.started.append(network)
        self.emit = emit
        self.on_error = on_error
        if self.fail_on_start:
            raise RuntimeError("connection refused")
        return self.stop

    def stop(self) -> None:
        self.stopped += 1

    def push(self, pending: PendingBlock) -> None:
        assert self.emit is not None, "source not started"
        self.emit(pending)


class GatedVerifier:
    """
    Async verification primitive that parks every call until released, so
    tests can observe the pipeline mid-block.
    """

    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.calls: List[Tuple[int, int]] = []
        self.entered = asyncio.Event()
        self._gate = asyncio.Event()

    def release(self) -> None:
        self._gate.set()

    async def __call__(self, proof: bytes, commitment: bytes, grid_width: int, row: int, col: int) -> bool:
        self.calls.append((row, col))
        self.entered.set()
        await self._gate.wait()
        return self.result


async def settle(rounds: int = 20) -> None:
    """Yield to the loop enough times for zero-delay work to run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
