"""
JSON block fixtures.

A fixture is a JSON object (or a bare list of blocks):

{
  "network": "Turing",                          # default for blocks without one
  "blocks": [
    {
      "number": 12,
      "hash": "0xabc...",
      "has_da_submissions": true,               # or "hasDaSubmissions"
      "sample_count": 4,                        # or "sampleCount"
      "total_cell_count": 16,                   # or "totalCellCount"
      "confidence": 0,
      "matrix": {"max_row": 4, "max_col": 4, "total_cell_count": 16},
      "cells": [{"row": 0, "col": 1}, [2, 3]],  # objects or [row, col] pairs
      "proofs": ["0x..", "0x.."],               # hex, one per cell
      "commitments": ["0x..", ...]              # hex, one per row
    }
  ]
}

Both snake_case and the camelCase keys emitted by JavaScript clients are
accepted. `dump_fixture` writes snake_case.
"""

from __future__ import annotations

import binascii
import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..errors import SourceError
from ..types import Block, Cell, Matrix, PendingBlock


def load_fixture(path: Union[str, Path], *, network: Optional[str] = None) -> List[PendingBlock]:
    """Read and parse a fixture file. Raises SourceError on any malformed input."""
    p = Path(path)
    try:
        doc = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise SourceError.from_exc(e, data={"path": str(p)}) from e
    return parse_fixture(doc, network=network)


def parse_fixture(doc: Any, *, network: Optional[str] = None) -> List[PendingBlock]:
    if isinstance(doc, list):
        default_net, items = network, doc
    elif isinstance(doc, Mapping):
        default_net = network or doc.get("network")
        items = doc.get("blocks") or []
    else:
        raise SourceError("fixture must be an object or a list of blocks")
    if not isinstance(items, list):
        raise SourceError("fixture 'blocks' must be a list")

    out: List[PendingBlock] = []
    for i, item in enumerate(items):
        try:
            out.append(_parse_block(item, default_net))
        except (KeyError, TypeError, ValueError) as e:
            raise SourceError(f"block #{i} in fixture: {e}", data={"index": i}) from e
    return out


def _parse_block(item: Mapping[str, Any], default_net: Optional[str]) -> PendingBlock:
    net = _pick(item, "network") or default_net
    if not net:
        raise ValueError("block has no network and the fixture sets none")

    block = Block(
        network=str(net),
        number=int(_pick(item, "number", "height")),
        hash=str(_pick(item, "hash") or ""),
        total_cell_count=int(_pick(item, "total_cell_count", "totalCellCount") or 0),
        sample_count=int(_pick(item, "sample_count", "sampleCount") or 0),
        has_da_submissions=bool(_pick(item, "has_da_submissions", "hasDaSubmissions")),
        confidence=float(_pick(item, "confidence") or 0.0),
    )

    m = _pick(item, "matrix")
    matrix = None
    if m:
        matrix = Matrix(
            max_row=int(_pick(m, "max_row", "maxRow")),
            max_col=int(_pick(m, "max_col", "maxCol")),
            total_cell_count=int(_pick(m, "total_cell_count", "totalCellCount") or 0),
        )

    cells = tuple(_parse_cell(c) for c in (_pick(item, "cells", "verifiedCells") or []))
    proofs = tuple(_as_bytes(x) for x in (_pick(item, "proofs") or []))
    commitments = tuple(_as_bytes(x) for x in (_pick(item, "commitments") or []))
    return PendingBlock(block=block, matrix=matrix, cells=cells, proofs=proofs, commitments=commitments)


def _parse_cell(c: Any) -> Cell:
    if isinstance(c, Mapping):
        payload = c.get("payload") or c.get("data")
        return Cell(
            row=int(c["row"]),
            col=int(c["col"]),
            payload=_as_bytes(payload) if payload is not None else None,
        )
    if isinstance(c, (list, tuple)) and len(c) == 2:
        return Cell(row=int(c[0]), col=int(c[1]))
    raise ValueError(f"cannot parse cell from {c!r}")


def dump_fixture(blocks: Sequence[PendingBlock], path: Union[str, Path]) -> None:
    doc = {"blocks": [_block_to_dict(p) for p in blocks]}
    Path(path).write_text(json.dumps(doc, indent=2), encoding="utf-8")


def _block_to_dict(p: PendingBlock) -> Dict[str, Any]:
    b = p.block
    return {
        "network": b.network,
        "number": b.number,
        "hash": b.hash,
        "has_da_submissions": b.has_da_submissions,
        "sample_count": b.sample_count,
        "total_cell_count": b.total_cell_count,
        "confidence": b.confidence,
        "matrix": None
        if p.matrix is None
        else {
            "max_row": p.matrix.max_row,
            "max_col": p.matrix.max_col,
            "total_cell_count": p.matrix.total_cell_count,
        },
        "cells": [[c.row, c.col] for c in p.cells],
        "proofs": ["0x" + x.hex() for x in p.proofs],
        "commitments": ["0x" + x.hex() for x in p.commitments],
    }


# ------------------------------ Small utils --------------------------------


def _pick(d: Mapping[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in d:
            return d[k]
    return None


def _as_bytes(x: Any) -> bytes:
    if isinstance(x, bytes):
        return x
    if isinstance(x, bytearray):
        return bytes(x)
    if isinstance(x, str):
        s = x.strip().lower()
        if s.startswith("0x"):
            s = s[2:]
        return binascii.unhexlify(s) if s else b""
    if isinstance(x, list):
        return bytes(int(v) for v in x)
    raise ValueError(f"cannot parse bytes from {type(x).__name__}")


__all__ = ["load_fixture", "parse_fixture", "dump_fixture"]
