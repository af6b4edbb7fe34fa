import dataclasses

import pytest

from lightclient.errors import InvalidBlock
from lightclient.types import Block, Cell, Matrix, PendingBlock, make_cells

from .util import make_pending


def test_block_identity_and_confidence_copy():
    b = Block(network="Turing", number=7, hash="0x07")
    c = b.with_confidence(50)
    assert b.confidence == 0.0
    assert c.confidence == 50.0
    assert c.key == b.key == ("Turing", 7, "0x07")


def test_block_is_frozen():
    b = Block(network="Turing", number=1, hash="0x01")
    with pytest.raises(dataclasses.FrozenInstanceError):
        b.confidence = 99.0  # type: ignore[misc]


def test_matrix_with_verified_appends_once_in_order():
    m = Matrix(max_row=2, max_col=2, total_cell_count=4)
    m1 = m.with_verified(Cell(1, 1))
    m2 = m1.with_verified(Cell(0, 0))
    assert m.verified_cells == ()
    assert [c.key for c in m2.verified_cells] == [(1, 1), (0, 0)]
    assert m2.with_verified(Cell(1, 1)) is m2


def test_matrix_reset_keeps_grid():
    m = Matrix(max_row=3, max_col=4, total_cell_count=12).with_verified(Cell(0, 0))
    r = m.reset()
    assert (r.max_row, r.max_col, r.total_cell_count) == (3, 4, 12)
    assert r.verified_cells == ()


def test_matrix_bounds():
    m = Matrix(max_row=2, max_col=3)
    assert m.contains(Cell(1, 2))
    assert not m.contains(Cell(2, 0))
    assert not m.contains(Cell(0, 3))
    assert not m.contains(Cell(-1, 0))


def test_cell_payload_ignored_in_equality():
    assert Cell(1, 2, payload=b"x") == Cell(1, 2)


def test_pending_block_accepts_lists():
    p = PendingBlock(block=Block("Turing", 1, "0x1"), cells=list(make_cells([(0, 0)])), proofs=[b"p"])
    assert isinstance(p.cells, tuple)
    assert isinstance(p.proofs, tuple)


def test_samples_verification_requires_da_matrix_and_cells():
    assert make_pending(1).samples_verification
    assert not make_pending(1, has_da=False).samples_verification
    assert not make_pending(1, cells=()).samples_verification
    p = make_pending(1)
    assert not dataclasses.replace(p, matrix=None).samples_verification


def test_validate_proof_count_mismatch():
    p = make_pending(3)
    bad = dataclasses.replace(p, proofs=p.proofs[:-1])
    with pytest.raises(InvalidBlock) as ei:
        bad.validate()
    assert ei.value.code == "invalid_block"


def test_validate_cell_outside_grid():
    p = make_pending(3, cells=[(0, 0)])
    bad = dataclasses.replace(p, cells=(Cell(5, 0),))
    with pytest.raises(InvalidBlock):
        bad.validate()


def test_validate_missing_row_commitment():
    p = make_pending(3, cells=[(1, 0)])
    bad = dataclasses.replace(p, commitments=p.commitments[:1])
    with pytest.raises(InvalidBlock):
        bad.validate()


def test_validate_skips_unsampled_blocks():
    p = PendingBlock(block=Block("Turing", 1, "0x1"), cells=make_cells([(9, 9)]))
    p.validate()


def test_error_problem_rendering():
    from lightclient.errors import SourceError, StateInvariantViolation

    err = SourceError.from_exc(ConnectionError("reset by peer"), data={"network": "Turing"})
    assert err.message == "ConnectionError: reset by peer"
    problem = err.to_problem()
    assert problem["type"] == "urn:lightclient:source_error"
    assert problem["data"] == {"network": "Turing"}
    assert err.recoverable
    assert not StateInvariantViolation("two dequeues").recoverable
