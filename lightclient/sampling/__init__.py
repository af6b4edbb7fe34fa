"""
Light client • Sampling

Modules:
  - port.py        : VerificationPort, async wrapper around the proof primitive
  - verifier.py    : CellVerifier, the per-block sampling loop (+ BlockReport)
  - probability.py : confidence math (2^-k model, hypergeometric reference)
  - digest.py      : deterministic stand-in primitive for simulation and tests
"""

from __future__ import annotations

from .port import VerificationPort, VerifyFn
from .probability import confidence_for, miss_probability, samples_for_confidence
from .verifier import BlockReport, CellVerifier

__all__ = [
    "VerificationPort",
    "VerifyFn",
    "CellVerifier",
    "BlockReport",
    "confidence_for",
    "miss_probability",
    "samples_for_confidence",
]
