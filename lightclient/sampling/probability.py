"""
Light client • Sampling confidence math

Key ideas
---------
- A 2D erasure-coded block can only be made unrecoverable by withholding at
  least half of a row/column extension, so each uniformly sampled cell that
  verifies independently halves the chance that an unavailable block slipped
  through. After k verified samples:

      p_miss     = 2^-k
      confidence = 100 × (1 − 2^-k)        (percent)

  This is the score the pipeline publishes; it depends only on how many cells
  verified, never on which ones.

- When the grid size N is known and samples are drawn *without* replacement,
  the exact miss probability for C withheld cells is hypergeometric:

      p_miss = C(N − C, k) / C(N, k)

  `exact_confidence` reports that figure with C = ceil(N/2); it is never
  below the headline score and is carried in block reports for reference.

APIs
----
- confidence_for(k)
- miss_probability(k)
- samples_for_confidence(target_percent)
- hypergeom_miss_prob(N, C, n)
- exact_confidence(total_cells, k)
"""

from __future__ import annotations

import math

from ..types import confidence_for


def miss_probability(verified_count: int) -> float:
    """
    Probability that `verified_count` passing samples all landed on available
    cells of a block that is in fact unavailable: 2^-k.
    """
    k = max(0, int(verified_count))
    return 2.0 ** -k


def samples_for_confidence(target_percent: float) -> int:
    """
    Smallest k with confidence_for(k) >= target_percent.

    Targets <= 0 need no samples. 100% is unreachable by sampling and raises.
    """
    t = float(target_percent)
    if t <= 0.0:
        return 0
    if t >= 100.0:
        raise ValueError("confidence target must be below 100%")
    # 1 - 2^-k >= t/100  <=>  k >= -log2(1 - t/100)
    k = int(math.ceil(-math.log2(1.0 - t / 100.0)))
    # guard float rounding at exact powers of two
    while k > 0 and confidence_for(k - 1) >= t:
        k -= 1
    while confidence_for(k) < t:
        k += 1
    return k


def hypergeom_miss_prob(N: int, C: int, n: int) -> float:
    """
    Probability of missing all C withheld cells when sampling n without replacement from N.

    p = comb(N - C, n) / comb(N, n)

    Edge handling:
      - If n <= 0: return 1.0 (no samples ⇒ always miss)
      - If C <= 0: return 1.0 (nothing withheld)
      - If C >= N or n > N - C: return 0.0 (a sample must hit a withheld cell)
    """
    N = int(N)
    C = int(C)
    n = int(n)
    if n <= 0:
        return 1.0
    if C <= 0:
        return 1.0
    if C >= N:
        return 0.0
    if n > N - C:
        return 0.0
    return float(math.comb(N - C, n) / math.comb(N, n))


def exact_confidence(total_cells: int, verified_count: int) -> float:
    """
    Confidence (percent) using the hypergeometric model over a grid of
    `total_cells`, assuming half the cells (rounded up) are withheld.

    Falls back to `confidence_for` when the grid size is unknown.
    """
    N = int(total_cells)
    if N <= 1:
        return confidence_for(verified_count)
    C = int(math.ceil(N / 2))
    return 100.0 * (1.0 - hypergeom_miss_prob(N, C, verified_count))


__all__ = [
    "confidence_for",
    "miss_probability",
    "samples_for_confidence",
    "hypergeom_miss_prob",
    "exact_confidence",
]
