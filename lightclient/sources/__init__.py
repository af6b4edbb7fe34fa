"""
Light client • Block sources

The network block source is an external collaborator; this package defines
its contract (base.py) and two in-process implementations used by the CLI
and tests:

  - replay.py    : replays a JSON fixture of blocks (fixtures.py parses it)
  - synthetic.py : generates blocks with digest proofs and a corrupt-proof rate
"""

from __future__ import annotations

from .base import BlockSource, EmitFn, ErrorFn, StopHandle, TaskBlockSource
from .replay import ReplayBlockSource
from .synthetic import SyntheticBlockSource

__all__ = [
    "BlockSource",
    "EmitFn",
    "ErrorFn",
    "StopHandle",
    "TaskBlockSource",
    "ReplayBlockSource",
    "SyntheticBlockSource",
]
