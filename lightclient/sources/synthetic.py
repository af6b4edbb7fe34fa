"""
Synthetic block generator.

Produces a stream of blocks for any network, numbered from `start_number`.
Every `empty_every`-th block carries no DA submissions; the rest get a
`max_row` x `max_col` grid, `samples` distinct random cells, digest proofs
(see lightclient.sampling.digest) and row commitments. Each proof is
corrupted with probability `corrupt_rate`, so the run shows failed samples
and confidence below the maximum.
"""

from __future__ import annotations

import hashlib
import random
from typing import AsyncIterator, List, Optional

from ..sampling.digest import cell_proof, row_commitment
from ..types import Block, Cell, Matrix, PendingBlock
from .base import TaskBlockSource


class SyntheticBlockSource(TaskBlockSource):
    def __init__(
        self,
        *,
        count: Optional[int] = 10,
        max_row: int = 4,
        max_col: int = 4,
        samples: int = 8,
        corrupt_rate: float = 0.0,
        empty_every: int = 0,
        start_number: int = 1,
        interval: float = 0.0,
        seed: Optional[int] = None,
    ) -> None:
        super().__init__(interval=interval)
        if max_row < 1 or max_col < 1:
            raise ValueError("grid must be at least 1x1")
        if not (0.0 <= corrupt_rate <= 1.0):
            raise ValueError("corrupt_rate must be within [0, 1]")
        self.count = count
        self.max_row = int(max_row)
        self.max_col = int(max_col)
        self.samples = max(0, min(int(samples), self.max_row * self.max_col))
        self.corrupt_rate = float(corrupt_rate)
        self.empty_every = max(0, int(empty_every))
        self.start_number = int(start_number)
        self._random = random.Random(seed)

    async def produce(self, network: str) -> AsyncIterator[PendingBlock]:
        i = 0
        while self.count is None or i < self.count:
            yield self.make_block(network, self.start_number + i)
            i += 1

    def make_block(self, network: str, number: int) -> PendingBlock:
        block_hash = "0x" + hashlib.sha256(f"{network}:{number}".encode()).hexdigest()
        total = self.max_row * self.max_col
        has_da = not (self.empty_every and number % self.empty_every == 0)
        if not has_da:
            return PendingBlock(block=Block(network=network, number=number, hash=block_hash))

        seed = bytes.fromhex(block_hash[2:])
        commitments = tuple(row_commitment(seed, r) for r in range(self.max_row))
        coords = self._random.sample(range(total), self.samples)
        cells: List[Cell] = [Cell(row=c // self.max_col, col=c % self.max_col) for c in coords]
        proofs = []
        for cell in cells:
            proof = cell_proof(commitments[cell.row], self.max_col, cell.row, cell.col)
            if self._random.random() < self.corrupt_rate:
                proof = bytes(b ^ 0xFF for b in proof)
            proofs.append(proof)

        return PendingBlock(
            block=Block(
                network=network,
                number=number,
                hash=block_hash,
                total_cell_count=total,
                sample_count=len(cells),
                has_da_submissions=True,
            ),
            matrix=Matrix(max_row=self.max_row, max_col=self.max_col, total_cell_count=total),
            cells=tuple(cells),
            proofs=tuple(proofs),
            commitments=commitments,
        )


__all__ = ["SyntheticBlockSource"]
