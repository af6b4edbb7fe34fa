"""
Data-availability light client: block sampling and confidence engine.

Public responsibilities:
- Admit blocks pushed by a network block source into a FIFO queue.
- Process one block at a time: verify sampled cells against row commitments
  through an injected verification primitive, tracking a confidence score.
- Keep a bounded chain-tail history and a user-facing event log.
- Start, stop and switch the whole pipeline between networks.

Importing `lightclient` is cheap; the pipeline lives in `lightclient.pipeline`.
"""

from __future__ import annotations

from .version import __version__, get_version
from .types import Block, Cell, Matrix, PendingBlock, confidence_for

__all__ = [
    "__version__",
    "get_version",
    "Block",
    "Cell",
    "Matrix",
    "PendingBlock",
    "confidence_for",
]
