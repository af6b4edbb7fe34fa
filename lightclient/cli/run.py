from __future__ import annotations

"""
lightclient-run: drive the sampling pipeline from the command line.

Examples
--------
  # 20 synthetic blocks on Turing, 1 in 8 proofs corrupted, no pacing
  lightclient-run --count 20 --corrupt-rate 0.125 --cell-delay 0 --settle-delay 0

  # Replay a fixture and switch to Mainnet after 3 completed blocks
  lightclient-run --fixture blocks.json --switch-to Mainnet --switch-after 3 --json

Output is one line per completed block (or one JSON object per line with
--json). Exit code is 0 on success, 1 if the pipeline halted, 2 on bad input.
"""

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from typing import Any, Dict, Optional, TextIO

from lightclient.config import LightClientConfig, get_config
from lightclient.errors import ConfigError, SourceError
from lightclient.events import TOPIC_COMPLETED
from lightclient.logging import configure_from_config, get_logger
from lightclient.metrics import LightClientMetrics
from lightclient.pipeline.controller import RunController
from lightclient.sampling.digest import DigestVerifier
from lightclient.sampling.port import VerifyFn
from lightclient.sampling.verifier import BlockReport
from lightclient.sources.base import TaskBlockSource
from lightclient.sources.replay import ReplayBlockSource
from lightclient.sources.synthetic import SyntheticBlockSource

log = get_logger("lightclient.cli.run")

# How often the run loop re-checks whether the source is drained.
_POLL = 0.05


def _stderr(msg: str) -> None:
    print(msg, file=sys.stderr)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Light client • run — sample blocks and report availability confidence"
    )
    p.add_argument("--network", default=None, help="network to start on (default: $LC_NETWORK)")

    src = p.add_argument_group("block source")
    src.add_argument("--fixture", default=None, help="replay blocks from a JSON fixture instead of generating them")
    src.add_argument("--count", type=int, default=10, help="synthetic blocks per run (default: %(default)s)")
    src.add_argument("--rows", type=int, default=4, help="synthetic grid rows (default: %(default)s)")
    src.add_argument("--cols", type=int, default=4, help="synthetic grid columns (default: %(default)s)")
    src.add_argument("--samples", type=int, default=8, help="cells sampled per block (default: %(default)s)")
    src.add_argument("--corrupt-rate", type=float, default=0.0, help="probability a proof is corrupted")
    src.add_argument("--empty-every", type=int, default=0, help="every Nth block carries no DA data")
    src.add_argument("--seed", type=int, default=None, help="RNG seed for reproducible runs")
    src.add_argument("--interval", type=float, default=0.0, help="seconds between block arrivals")

    run = p.add_argument_group("run")
    run.add_argument("--cell-delay", type=int, default=None, help="ms to pause after each cell (default: config)")
    run.add_argument("--settle-delay", type=int, default=None, help="ms to pause after each block (default: config)")
    run.add_argument("--switch-to", default=None, help="switch to this network mid-run")
    run.add_argument("--switch-after", type=int, default=1, help="completed blocks before --switch-to (default: %(default)s)")
    run.add_argument("--duration", type=float, default=None, help="stop after this many seconds")
    run.add_argument("--metrics-port", type=int, default=None, help="expose Prometheus metrics on this port")
    run.add_argument("--log-level", default=None, help="override $LC_LOG_LEVEL")
    run.add_argument("--json", action="store_true", help="emit one JSON object per completed block")
    return p.parse_args(argv)


def build_config(args: argparse.Namespace, base: Optional[LightClientConfig] = None) -> LightClientConfig:
    cfg = base or get_config()
    changes: Dict[str, int] = {}
    if args.cell_delay is not None:
        changes["cell_delay_ms"] = args.cell_delay
    if args.settle_delay is not None:
        changes["settle_delay_ms"] = args.settle_delay
    if changes:
        cfg = cfg.with_sampling(**changes)
    known = cfg.networks.known_networks
    for name in (args.network, args.switch_to):
        if name is not None and name not in known:
            raise ConfigError(f"unknown network {name!r} (known: {', '.join(known)})")
    return cfg


def build_source(args: argparse.Namespace) -> TaskBlockSource:
    if args.fixture:
        return ReplayBlockSource.from_file(args.fixture, interval=args.interval)
    return SyntheticBlockSource(
        count=args.count,
        max_row=args.rows,
        max_col=args.cols,
        samples=args.samples,
        corrupt_rate=args.corrupt_rate,
        empty_every=args.empty_every,
        seed=args.seed,
        interval=args.interval,
    )


def report_to_dict(report: BlockReport) -> Dict[str, Any]:
    b = report.block
    return {
        "network": b.network,
        "number": b.number,
        "hash": b.hash,
        "has_da_submissions": b.has_da_submissions,
        "sampled": report.sampled,
        "verified": len(report.verified),
        "failed": len(report.failed),
        "errored": len(report.errored),
        "confidence": round(report.confidence, 6),
        "exact_confidence": round(report.exact_confidence, 6),
    }


def _settled(controller: RunController, source: TaskBlockSource) -> bool:
    return (
        source.finished.is_set()
        and len(controller.queue) == 0
        and controller.coordinator.active_key is None
    )


async def run(
    args: argparse.Namespace,
    *,
    config: LightClientConfig,
    out: Optional[TextIO] = None,
    verify_fn: Optional[VerifyFn] = None,
    metrics: Optional[LightClientMetrics] = None,
) -> int:
    out = out or sys.stdout
    source = build_source(args)
    controller = RunController(
        source=source,
        verify_fn=verify_fn or DigestVerifier(),
        config=config,
        metrics=metrics,
    )
    sub = controller.observer.subscribe(TOPIC_COMPLETED)

    loop = asyncio.get_running_loop()
    deadline = loop.time() + args.duration if args.duration else None
    completed = 0
    switched = args.switch_to is None

    await controller.start(args.network or config.networks.default_network)
    try:
        while True:
            if deadline is not None and loop.time() >= deadline:
                log.info("duration elapsed")
                break
            if controller.coordinator.failure is not None:
                break
            try:
                evt = await asyncio.wait_for(sub.__anext__(), timeout=_POLL)
            except asyncio.TimeoutError:
                if _settled(controller, source):
                    break
                continue
            except StopAsyncIteration:
                break

            report: BlockReport = evt.payload
            completed += 1
            if args.json:
                out.write(json.dumps(report_to_dict(report)) + "\n")
            else:
                out.write(report.summary() + "\n")
            out.flush()

            if not switched and completed >= args.switch_after:
                switched = True
                await controller.switch_network(args.switch_to)
    finally:
        await controller.aclose()

    if controller.coordinator.failure is not None:
        _stderr(f"error: {controller.coordinator.failure}")
        return 1
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)

    try:
        cfg = build_config(args)
    except ConfigError as e:
        _stderr(f"error: {e.message}")
        return 2

    if args.log_level:
        cfg = replace(cfg, logging=replace(cfg.logging, level=args.log_level.upper()))
    configure_from_config(cfg)

    if args.metrics_port is not None:
        from prometheus_client import start_http_server

        start_http_server(args.metrics_port)
        log.info("metrics exposed", extra={"port": args.metrics_port})

    try:
        return asyncio.run(run(args, config=cfg))
    except SourceError as e:
        _stderr(f"error: {e.message}")
        return 2
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
