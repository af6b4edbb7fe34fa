"""
Light client data model.

Every type here is a frozen dataclass. The pipeline never mutates a published
object; progress is published as a fresh snapshot (`Block.with_confidence`,
`Matrix.with_verified`) so observers can never see a half-updated value.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional, Sequence, Tuple

from .errors import InvalidBlock

BlockKey = Tuple[str, int, str]


def confidence_for(verified_count: int) -> float:
    """
    Availability confidence after `verified_count` independently verified
    samples: 100 × (1 − 2^−k).
    """
    k = max(0, int(verified_count))
    return 100.0 * (1.0 - 2.0 ** -k)


@dataclass(frozen=True)
class Cell:
    """One (row, col) coordinate of a block's erasure-coded matrix."""
    row: int
    col: int
    payload: Optional[bytes] = field(default=None, compare=False, repr=False)

    @property
    def key(self) -> Tuple[int, int]:
        return (self.row, self.col)


@dataclass(frozen=True)
class Block:
    network: str
    number: int
    hash: str
    total_cell_count: int = 0
    sample_count: int = 0
    has_da_submissions: bool = False
    confidence: float = 0.0

    @property
    def key(self) -> BlockKey:
        return (self.network, self.number, self.hash)

    def with_confidence(self, value: float) -> "Block":
        return replace(self, confidence=float(value))


@dataclass(frozen=True)
class Matrix:
    """
    A block's sampling grid plus the cells verified so far, in the order
    they were verified.
    """
    max_row: int = 0
    max_col: int = 0
    total_cell_count: int = 0
    verified_cells: Tuple[Cell, ...] = ()

    @classmethod
    def empty(cls) -> "Matrix":
        return cls()

    def reset(self) -> "Matrix":
        """Same grid, nothing verified."""
        return replace(self, verified_cells=())

    def with_verified(self, cell: Cell) -> "Matrix":
        if self.is_verified(cell):
            return self
        return replace(self, verified_cells=self.verified_cells + (cell,))

    def is_verified(self, cell: Cell) -> bool:
        return any(c.key == cell.key for c in self.verified_cells)

    def contains(self, cell: Cell) -> bool:
        return 0 <= cell.row < self.max_row and 0 <= cell.col < self.max_col


@dataclass(frozen=True)
class PendingBlock:
    """
    A block waiting in the queue, with everything needed to sample it.

    `proofs[i]` proves `cells[i]`; `commitments` is indexed by row.
    """
    block: Block
    matrix: Optional[Matrix] = None
    cells: Tuple[Cell, ...] = ()
    proofs: Tuple[bytes, ...] = ()
    commitments: Tuple[bytes, ...] = ()

    def __post_init__(self) -> None:
        # Accept lists from sources but store tuples so the record stays immutable.
        for name in ("cells", "proofs", "commitments"):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value))

    @property
    def key(self) -> BlockKey:
        return self.block.key

    @property
    def samples_verification(self) -> bool:
        """True when the block carries DA data that this client should sample."""
        return bool(self.block.has_da_submissions and self.matrix is not None and self.cells)

    def validate(self) -> None:
        """
        Raise InvalidBlock when cells, proofs and commitments don't line up.
        Blocks that will not be sampled are always valid.
        """
        matrix = self.matrix
        if not self.samples_verification or matrix is None:
            return
        if len(self.proofs) != len(self.cells):
            raise InvalidBlock(
                f"{len(self.proofs)} proofs for {len(self.cells)} cells",
                data={"number": self.block.number},
            )
        for cell in self.cells:
            if not matrix.contains(cell):
                raise InvalidBlock(
                    f"cell ({cell.row}, {cell.col}) outside {matrix.max_row}x{matrix.max_col} grid",
                    data={"number": self.block.number, "row": cell.row, "col": cell.col},
                )
            if cell.row >= len(self.commitments):
                raise InvalidBlock(
                    f"no commitment for row {cell.row}",
                    data={"number": self.block.number, "row": cell.row},
                )


def make_cells(coords: Sequence[Tuple[int, int]]) -> Tuple[Cell, ...]:
    return tuple(Cell(row=r, col=c) for r, c in coords)


__all__ = [
    "BlockKey",
    "Block",
    "Cell",
    "Matrix",
    "PendingBlock",
    "confidence_for",
    "make_cells",
]
