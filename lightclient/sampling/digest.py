"""
Deterministic stand-in for the cell proof primitive.

This is *not* a commitment scheme. A "proof" here is a SHA-256 digest binding
a row commitment to a cell coordinate and grid width:

    proof = sha256(b"lc-cell" || commitment || u32be(grid_width) || u32be(row) || u32be(col))

The synthetic and replay sources produce such proofs so the full pipeline
(and the `lightclient-run` CLI) can run without the real verifier.
"""

from __future__ import annotations

import hashlib
import hmac
import struct

_DOMAIN = b"lc-cell"


def cell_proof(commitment: bytes, grid_width: int, row: int, col: int) -> bytes:
    h = hashlib.sha256()
    h.update(_DOMAIN)
    h.update(bytes(commitment))
    h.update(struct.pack(">III", int(grid_width), int(row), int(col)))
    return h.digest()


def row_commitment(seed: bytes, row: int) -> bytes:
    """Stable fake row commitment derived from a per-block seed."""
    return hashlib.sha256(b"lc-row" + bytes(seed) + struct.pack(">I", int(row))).digest()


class DigestVerifier:
    """
    `(proof, commitment, grid_width, row, col) -> bool` over `cell_proof`.
    Counts calls, which tests use to assert sequencing.
    """

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, proof: bytes, commitment: bytes, grid_width: int, row: int, col: int) -> bool:
        self.calls += 1
        expected = cell_proof(commitment, grid_width, row, col)
        return hmac.compare_digest(bytes(proof), expected)


__all__ = ["cell_proof", "row_commitment", "DigestVerifier"]
