from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Generic, List, Optional, Tuple, TypeVar

log = logging.getLogger("lightclient.events")

T = TypeVar("T")

__all__ = [
    "TOPIC_BLOCK",
    "TOPIC_MATRIX",
    "TOPIC_HISTORY",
    "TOPIC_PROCESSING",
    "TOPIC_RUNNING",
    "TOPIC_NETWORK",
    "TOPIC_LOG",
    "TOPIC_COMPLETED",
    "TOPICS",
    "BusEvent",
    "EventBus",
    "Subscription",
]

# Payloads per topic:
#   block      : Optional[Block]        current block snapshot
#   matrix     : Matrix                 current matrix snapshot
#   history    : Tuple[Block, ...]      chain tail, most-recent-last
#   processing : bool
#   running    : bool
#   network    : str
#   log        : LogEntry
#   completed  : BlockReport
TOPIC_BLOCK = "block"
TOPIC_MATRIX = "matrix"
TOPIC_HISTORY = "history"
TOPIC_PROCESSING = "processing"
TOPIC_RUNNING = "running"
TOPIC_NETWORK = "network"
TOPIC_LOG = "log"
TOPIC_COMPLETED = "completed"

TOPICS = (
    TOPIC_BLOCK,
    TOPIC_MATRIX,
    TOPIC_HISTORY,
    TOPIC_PROCESSING,
    TOPIC_RUNNING,
    TOPIC_NETWORK,
    TOPIC_LOG,
    TOPIC_COMPLETED,
)

_CLOSE = "__CLOSE__"


@dataclass(frozen=True)
class BusEvent(Generic[T]):
    topic: str
    payload: T
    seq: int    # publish order across all topics
    ts: float   # monotonic time of publish


# -----------------------------
# EventBus implementation
# -----------------------------

class Subscription(Generic[T]):
    """Handle returned by EventBus.subscribe(); allows async iteration and manual close()."""

    __slots__ = ("_topic", "_queue", "_closed")

    def __init__(self, topic: str, queue: "asyncio.Queue[BusEvent[T]]") -> None:
        self._topic = topic
        self._queue = queue
        self._closed = False

    @property
    def topic(self) -> str:
        return self._topic

    def closed(self) -> bool:
        return self._closed

    def pending(self) -> int:
        return self._queue.qsize()

    def get_nowait(self) -> Optional[BusEvent[T]]:
        """Pop a delivered event without waiting; None when nothing is queued."""
        try:
            evt = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        if evt.topic == _CLOSE:
            self._closed = True
            return None
        return evt

    def drain(self) -> List[BusEvent[T]]:
        """Pop every event delivered so far."""
        out: List[BusEvent[T]] = []
        while True:
            evt = self.get_nowait()
            if evt is None:
                return out
            out.append(evt)

    async def __anext__(self) -> BusEvent[T]:
        # events delivered before close() are still handed out
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        evt: BusEvent[T] = await self._queue.get()
        if evt.topic == _CLOSE:
            self._closed = True
            raise StopAsyncIteration
        return evt

    def __aiter__(self) -> AsyncIterator[BusEvent[T]]:
        return self

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # sentinel unblocks a pending __anext__; a full queue has no waiter to unblock
        try:
            self._queue.put_nowait(BusEvent(topic=_CLOSE, payload=None, seq=-1, ts=time.monotonic()))  # type: ignore[arg-type]
        except asyncio.QueueFull:
            pass


class EventBus:
    """
    In-process pub/sub with per-subscriber fanout queues.

    Topics are listed in TOPICS; "*" subscribes to all of them.

    Publishing never blocks the pipeline: each subscriber has a bounded queue
    (default 1024) and an event that doesn't fit is dropped for that
    subscriber with a debug line. Payloads are immutable snapshots.
    """

    def __init__(self, *, queue_size: int = 1024) -> None:
        self._subs: Dict[str, List[Tuple[asyncio.Queue, Subscription]]] = {}
        self._wildcards: List[Tuple[asyncio.Queue, Subscription]] = []
        self._queue_size = max(1, queue_size)
        self._closed = False
        self._published = 0
        self._dropped = 0

    # ---- subscribe / unsubscribe -------------------------------------------

    def subscribe(self, topic: str, *, max_queue: Optional[int] = None) -> Subscription:
        """
        Subscribe to a topic or "*" (wildcard).

        Usage:
            sub = bus.subscribe("completed")
            async for evt in sub:
                render(evt.payload)
        """
        if self._closed:
            raise RuntimeError("EventBus is closed")
        if topic != "*" and topic not in TOPICS:
            raise ValueError(f"unknown topic {topic!r}")

        q: asyncio.Queue = asyncio.Queue(maxsize=max_queue or self._queue_size)
        sub = Subscription(topic, q)
        if topic == "*":
            self._wildcards.append((q, sub))
        else:
            self._subs.setdefault(topic, []).append((q, sub))
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        sub.close()
        if sub.topic == "*":
            self._wildcards = [(q, s) for (q, s) in self._wildcards if s is not sub]
        elif sub.topic in self._subs:
            self._subs[sub.topic] = [(q, s) for (q, s) in self._subs[sub.topic] if s is not sub]
            if not self._subs[sub.topic]:
                self._subs.pop(sub.topic, None)

    # ---- publish ------------------------------------------------------------

    def publish(self, topic: str, payload: Any) -> None:
        if self._closed:
            return
        self._published += 1
        evt = BusEvent(topic=topic, payload=payload, seq=self._published, ts=time.monotonic())

        targets = [pair for pair in self._subs.get(topic, []) if not pair[1].closed()]
        targets += [pair for pair in self._wildcards if not pair[1].closed()]

        for q, _ in targets:
            try:
                q.put_nowait(evt)
            except asyncio.QueueFull:
                self._dropped += 1
                log.debug("event drop: topic=%s queue_full size=%s", topic, q.maxsize)

    # ---- lifecycle & metrics ------------------------------------------------

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for _, sub in list(self._wildcards):
            sub.close()
        for _, sub in [pair for pairs in self._subs.values() for pair in pairs]:
            sub.close()
        self._wildcards.clear()
        self._subs.clear()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "topics": {topic: len(lst) for topic, lst in self._subs.items()},
            "wildcards": len(self._wildcards),
            "published": self._published,
            "dropped": self._dropped,
            "closed": self._closed,
        }
