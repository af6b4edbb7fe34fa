"""
Shared run state and the read-only Observer Surface.

`LightClientState` is the single owned state struct of a light client
instance. Mutation rights:

  - RunController      : running, network, event-log reset
  - ProcessingCoordinator : current_block, matrix, processing, history pushes

Every setter publishes the new value on the event bus, so subscribers see
each change as an immutable snapshot. Renderers get an `ObserverSurface`,
which only reads.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, Tuple

from .events import (
    TOPIC_BLOCK,
    TOPIC_HISTORY,
    TOPIC_LOG,
    TOPIC_MATRIX,
    TOPIC_NETWORK,
    TOPIC_PROCESSING,
    TOPIC_RUNNING,
    EventBus,
    Subscription,
)
from .logging import get_logger
from .pipeline.history import HistoryWindow
from .types import Block, Matrix

log = get_logger("lightclient.events.log")


@dataclass(frozen=True)
class LogEntry:
    ts: float      # wall clock, seconds
    level: str     # "info" | "warning" | "error" | "critical"
    message: str


_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


class EventLog:
    """
    Bounded, user-facing status log. Each entry is mirrored to the process
    logger and published on the "log" topic.
    """

    def __init__(self, bus: EventBus, *, limit: int = 256) -> None:
        self._bus = bus
        self._entries: Deque[LogEntry] = deque(maxlen=max(1, limit))

    def append(self, message: str, *, level: str = "info") -> LogEntry:
        entry = LogEntry(ts=time.time(), level=level, message=message)
        self._entries.append(entry)
        log.log(_LEVELS.get(level, logging.INFO), message)
        self._bus.publish(TOPIC_LOG, entry)
        return entry

    def reset(self, first_message: Optional[str] = None) -> None:
        self._entries.clear()
        if first_message:
            self.append(first_message)

    def entries(self) -> Tuple[LogEntry, ...]:
        return tuple(self._entries)

    def messages(self) -> Tuple[str, ...]:
        return tuple(e.message for e in self._entries)

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True)
class StateSnapshot:
    network: str
    running: bool
    processing: bool
    current_block: Optional[Block]
    matrix: Matrix
    history: Tuple[Block, ...]
    logs: Tuple[str, ...]


class LightClientState:
    def __init__(self, bus: EventBus, *, network: str, history_size: int = 10, log_limit: int = 256) -> None:
        self.bus = bus
        self.history = HistoryWindow(history_size)
        self.log = EventLog(bus, limit=log_limit)
        self._network = network
        self._running = False
        self._processing = False
        self._current_block: Optional[Block] = None
        self._matrix = Matrix.empty()

    # ---- controller-owned ---------------------------------------------------

    @property
    def network(self) -> str:
        return self._network

    def set_network(self, network: str) -> None:
        if network != self._network:
            self._network = network
            self.bus.publish(TOPIC_NETWORK, network)

    @property
    def running(self) -> bool:
        return self._running

    def set_running(self, running: bool) -> None:
        if running != self._running:
            self._running = running
            self.bus.publish(TOPIC_RUNNING, running)

    # ---- coordinator-owned --------------------------------------------------

    @property
    def current_block(self) -> Optional[Block]:
        return self._current_block

    def set_current_block(self, block: Optional[Block]) -> None:
        self._current_block = block
        self.bus.publish(TOPIC_BLOCK, block)

    @property
    def matrix(self) -> Matrix:
        return self._matrix

    def set_matrix(self, matrix: Matrix) -> None:
        self._matrix = matrix
        self.bus.publish(TOPIC_MATRIX, matrix)

    @property
    def processing(self) -> bool:
        return self._processing

    def set_processing(self, processing: bool) -> None:
        if processing != self._processing:
            self._processing = processing
            self.bus.publish(TOPIC_PROCESSING, processing)

    def push_history(self, block: Block) -> None:
        self.history.push(block)
        self.bus.publish(TOPIC_HISTORY, self.history.items())

    # ---- whole-run reset ----------------------------------------------------

    def reset_run(self) -> None:
        """Empty history, current block and matrix (queue is reset by its owner)."""
        self.history.clear()
        self._processing = False
        self.set_current_block(None)
        self.set_matrix(Matrix.empty())
        self.bus.publish(TOPIC_HISTORY, self.history.items())

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            network=self._network,
            running=self._running,
            processing=self._processing,
            current_block=self._current_block,
            matrix=self._matrix,
            history=self.history.items(),
            logs=self.log.messages(),
        )


class ObserverSurface:
    """
    Read-only view handed to renderers: current values plus subscriptions.
    """

    def __init__(self, state: LightClientState) -> None:
        self._state = state

    @property
    def network(self) -> str:
        return self._state.network

    @property
    def running(self) -> bool:
        return self._state.running

    @property
    def processing(self) -> bool:
        return self._state.processing

    @property
    def current_block(self) -> Optional[Block]:
        return self._state.current_block

    @property
    def matrix(self) -> Matrix:
        return self._state.matrix

    @property
    def history(self) -> Tuple[Block, ...]:
        return self._state.history.items()

    @property
    def logs(self) -> Tuple[LogEntry, ...]:
        return self._state.log.entries()

    def snapshot(self) -> StateSnapshot:
        return self._state.snapshot()

    def subscribe(self, topic: str = "*", *, max_queue: Optional[int] = None) -> Subscription:
        return self._state.bus.subscribe(topic, max_queue=max_queue)


__all__ = [
    "LogEntry",
    "EventLog",
    "StateSnapshot",
    "LightClientState",
    "ObserverSurface",
]
