"""
Light client • Run Controller

Owns the run lifecycle: whether the pipeline is running, which network it
targets, and how the block source is wired to the queue.

    controller = RunController(source=..., verify_fn=..., config=...)
    await controller.start("Turing")
    ...
    await controller.switch_network("Mainnet")   # stop → flush → start
    await controller.stop()

Rules:
  - start(network) resets queue, history, current block, matrix and the event
    log, marks the run running, starts the coordinator, then the source.
  - stop() stops the source, marks not running, stops the coordinator (which
    drops queued work). Safe when idle, safe twice.
  - switch_network(new) while running is stop() then start(new); while
    stopped it only records the selection.
  - Source failures are logged and never end the run.

Each start() opens a new run generation. The admission sink handed to the
source is bound to its generation, so late arrivals from a stopped run (or
the previous network) are dropped instead of leaking into the new one.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

from ..config import LightClientConfig, get_config
from ..errors import ConfigError, LightClientError, SourceError
from ..events import EventBus
from ..logging import bind, get_logger, short_uuid, unbind
from ..metrics import LightClientMetrics, get_metrics
from ..sampling.port import VerificationPort, VerifyFn
from ..sampling.verifier import CellVerifier
from ..sources.base import BlockSource, StopHandle, maybe_await
from ..state import LightClientState, ObserverSurface
from ..types import PendingBlock
from .coordinator import ProcessingCoordinator
from .queue import BlockQueue

log = get_logger(__name__)


class RunController:
    def __init__(
        self,
        *,
        source: BlockSource,
        verify_fn: Optional[VerifyFn] = None,
        port: Optional[VerificationPort] = None,
        config: Optional[LightClientConfig] = None,
        bus: Optional[EventBus] = None,
        metrics: Optional[LightClientMetrics] = None,
    ) -> None:
        if port is None and verify_fn is None:
            raise TypeError("either verify_fn or port is required")
        cfg = config or get_config()
        self.config = cfg
        self._source = source
        self._metrics = metrics or get_metrics()
        self.bus = bus or EventBus()

        self.state = LightClientState(
            self.bus,
            network=cfg.networks.default_network,
            history_size=cfg.history.block_list_size,
            log_limit=cfg.history.log_limit,
        )
        self.queue = BlockQueue()
        port = port or VerificationPort(
            verify_fn,  # type: ignore[arg-type]
            timeout=cfg.sampling.verify_timeout,
            metrics=self._metrics,
        )
        self.verifier = CellVerifier(
            port,
            cell_delay=cfg.sampling.cell_delay,
            settle_delay=cfg.sampling.settle_delay,
            metrics=self._metrics,
        )
        self.coordinator = ProcessingCoordinator(
            state=self.state,
            queue=self.queue,
            verifier=self.verifier,
            metrics=self._metrics,
        )
        self.observer = ObserverSurface(self.state)

        self._lock = asyncio.Lock()
        self._stop_source: Optional[StopHandle] = None
        self._generation = 0
        self.state.log.reset(f"Initiating script for {self.state.network}")

    # -------------------------- read access ---------------------------

    @property
    def running(self) -> bool:
        return self.state.running

    @property
    def network(self) -> str:
        return self.state.network

    @property
    def generation(self) -> int:
        return self._generation

    # -------------------------- lifecycle -----------------------------

    def check_network(self, network: str) -> str:
        """Raise ConfigError unless `network` is a configured network."""
        known = self.config.networks.known_networks
        if network not in known:
            raise ConfigError(f"unknown network {network!r}", data={"known": list(known)})
        return network

    def select_network(self, network: str) -> str:
        """Validate and record the selected network (no other side effect)."""
        self.state.set_network(self.check_network(network))
        return network

    async def start(self, network: Optional[str] = None) -> None:
        async with self._lock:
            await self._start_locked(network or self.state.network)

    async def stop(self) -> None:
        async with self._lock:
            await self._stop_locked()

    async def switch_network(self, network: str) -> None:
        self.check_network(network)
        async with self._lock:
            self.state.log.append(f"Switching to {network} network")
            if not self.state.running:
                self.select_network(network)
                return
            await self._stop_locked()
            await self._start_locked(network)

    async def wait_idle(self) -> None:
        """Resolve once every admitted block has been processed."""
        await self.coordinator.wait_idle()

    async def aclose(self) -> None:
        await self.stop()
        self.bus.close()

    # -------------------------- internals -----------------------------

    async def _start_locked(self, network: str) -> None:
        self.check_network(network)
        if self.state.running:
            await self._stop_locked()
        self.select_network(network)

        self._generation += 1
        generation = self._generation
        bind(network=network, run_id=short_uuid())

        # Fresh run: nothing from a previous run may survive.
        self.queue.clear()
        self.state.reset_run()
        self.state.log.reset(f"Initiating script for {network}")
        self.state.set_running(True)
        self.coordinator.start()
        log.info("run started", extra={"generation": generation})

        emit = self._make_sink(generation, network)
        on_error = self._make_error_handler(generation, network)
        try:
            self._stop_source = await maybe_await(self._source.start(network, emit, on_error))
        except LightClientError as e:
            on_error(e if isinstance(e, SourceError) else SourceError(e.message, data=e.data))
        except Exception as e:
            on_error(SourceError.from_exc(e, data={"network": network}))

    async def _stop_locked(self) -> None:
        stop_source, self._stop_source = self._stop_source, None
        # Close the sink first so nothing is admitted while we tear down.
        self._generation += 1
        if stop_source is not None:
            try:
                await maybe_await(stop_source())
            except Exception as e:
                log.warning("block source stop failed: %s", e)
                self.state.log.append(f"Block source failed to stop cleanly: {e}", level="warning")
        was_running = self.state.running
        self.state.set_running(False)
        await self.coordinator.stop()
        if was_running:
            log.info("run stopped")
        unbind("run_id")

    def _make_sink(self, generation: int, network: str) -> Callable[[PendingBlock], None]:
        def emit(pending: PendingBlock) -> None:
            self._admit(pending, generation, network)

        return emit

    def _make_error_handler(self, generation: int, network: str) -> Callable[[Any], None]:
        def on_error(err: SourceError) -> None:
            if generation != self._generation:
                log.debug("ignoring error from a previous run: %s", err)
                return
            self._metrics.note_source_error(network=network)
            log.warning("block source error: %s", err)
            self.state.log.append(f"Block source error on {network}: {err.message}", level="warning")

        return on_error

    def _admit(self, pending: PendingBlock, generation: int, network: str) -> None:
        if generation != self._generation or not self.state.running:
            log.debug("dropping arrival from a stopped run", extra={"number": pending.block.number})
            return
        if pending.block.network != network:
            log.debug(
                "dropping arrival for another network",
                extra={"number": pending.block.number, "block_network": pending.block.network},
            )
            return
        key = pending.key
        if key == self.coordinator.active_key or self.queue.contains(key):
            log.debug("dropping duplicate arrival", extra={"number": pending.block.number})
            return
        depth = self.queue.enqueue(pending)
        self._metrics.note_admitted(network=network, queue_depth=depth)


__all__ = ["RunController"]
