"""
Prometheus metrics for the light client sampling pipeline.

This module centralizes counters, gauges and histograms for:
- Block admission, processing and rejection
- Queue depth and the active block's confidence
- Per-cell verification outcomes and latency
- Block source failures

Typical usage:

    from lightclient.metrics import get_metrics

    METRICS = get_metrics()

    with METRICS.time_cell_verify() as t:
        ok = await port.verify(...)
        t.outcome("ok" if ok else "invalid")

Tests construct `LightClientMetrics(registry=CollectorRegistry())` so every
test gets private instruments.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram


@dataclass(frozen=True)
class _Labels:
    """Canonical label keys used across metrics."""
    network: str = "network"
    outcome: str = "outcome"
    reason: str = "reason"


class _CellTimer:
    """Outcome marker yielded by `time_cell_verify`; defaults to "ok"."""

    __slots__ = ("value",)

    def __init__(self) -> None:
        self.value = "ok"

    def outcome(self, value: str) -> None:
        self.value = value


class LightClientMetrics:
    """
    Concrete metrics backed by prometheus_client.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self._labels = _Labels()
        reg = registry if registry is not None else REGISTRY

        self.blocks_admitted = Counter(
            "lc_blocks_admitted_total",
            "Blocks accepted into the processing queue",
            [self._labels.network],
            registry=reg,
        )
        self.blocks_processed = Counter(
            "lc_blocks_processed_total",
            "Blocks whose verification loop completed",
            [self._labels.network, self._labels.outcome],
            registry=reg,
        )
        self.blocks_rejected = Counter(
            "lc_blocks_rejected_total",
            "Blocks rejected before processing",
            [self._labels.reason],
            registry=reg,
        )
        self.queue_depth = Gauge(
            "lc_queue_depth",
            "Blocks waiting in the processing queue",
            registry=reg,
        )
        self.confidence = Gauge(
            "lc_block_confidence_percent",
            "Confidence of the block currently (or last) processed",
            registry=reg,
        )
        self.cell_verify_total = Counter(
            "lc_cell_verify_total",
            "Cell verification attempts grouped by outcome",
            [self._labels.outcome],
            registry=reg,
        )
        self.cell_verify_duration = Histogram(
            "lc_cell_verify_duration_seconds",
            "Cell verification call duration (seconds)",
            registry=reg,
            buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
        )
        self.source_errors = Counter(
            "lc_source_errors_total",
            "Block source failures",
            [self._labels.network],
            registry=reg,
        )

    # ---------------------------- pipeline notes -----------------------------

    def note_admitted(self, *, network: str, queue_depth: int) -> None:
        self.blocks_admitted.labels(network).inc()
        self.queue_depth.set(queue_depth)

    def note_dequeued(self, *, queue_depth: int) -> None:
        self.queue_depth.set(queue_depth)

    def note_rejected(self, *, reason: str) -> None:
        self.blocks_rejected.labels(reason).inc()

    def note_processed(self, *, network: str, aborted: bool, confidence: float) -> None:
        self.blocks_processed.labels(network, "aborted" if aborted else "done").inc()
        self.confidence.set(confidence)

    def note_confidence(self, value: float) -> None:
        self.confidence.set(value)

    def note_source_error(self, *, network: str) -> None:
        self.source_errors.labels(network).inc()

    # --------------------------- cell verify timer ---------------------------

    @contextmanager
    def time_cell_verify(self) -> Iterator[_CellTimer]:
        """
        Context manager around a single verification call.

            with METRICS.time_cell_verify() as t:
                if not ok:
                    t.outcome("invalid")

        An exception escaping the block is recorded as "error" unless an
        outcome was already marked.
        """
        start = time.perf_counter()
        marker = _CellTimer()
        try:
            yield marker
        except BaseException:
            if marker.value == "ok":
                marker.outcome("error")
            raise
        finally:
            self.cell_verify_total.labels(marker.value).inc()
            self.cell_verify_duration.observe(max(0.0, time.perf_counter() - start))


# ------------------------------- public API ----------------------------------

_METRICS_SINGLETON: Optional[LightClientMetrics] = None


def get_metrics(registry: Optional[CollectorRegistry] = None) -> LightClientMetrics:
    """
    Return a process-wide LightClientMetrics singleton. The first call can
    inject a custom registry; subsequent calls ignore the registry parameter.
    """
    global _METRICS_SINGLETON
    if _METRICS_SINGLETON is None:
        _METRICS_SINGLETON = LightClientMetrics(registry=registry)
    return _METRICS_SINGLETON


__all__ = [
    "LightClientMetrics",
    "get_metrics",
]
