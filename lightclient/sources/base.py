"""
Block source contract.

A source is started for one network and pushes arrivals through `emit`:

    stop = source.start(network, emit, on_error)
    ...
    await maybe_await(stop())

`start` may be sync or async and returns a stop handle: a callable returning
None or an awaitable. Delivery failures after start are reported through
`on_error` (a SourceError) rather than raised, so the run stays alive.

`TaskBlockSource` implements the contract over an asyncio producer task;
subclasses only write `produce(network)`, an async generator of PendingBlocks.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Protocol, Union, runtime_checkable

from ..errors import SourceError
from ..logging import get_logger
from ..types import PendingBlock

log = get_logger(__name__)

EmitFn = Callable[[PendingBlock], None]
ErrorFn = Callable[[SourceError], None]
StopHandle = Callable[[], Union[None, Awaitable[None]]]


@runtime_checkable
class BlockSource(Protocol):
    def start(self, network: str, emit: EmitFn, on_error: ErrorFn) -> Any:  # StopHandle or awaitable of one
        ...


async def maybe_await(x: Any) -> Any:
    if inspect.isawaitable(x):
        return await x
    return x


class TaskBlockSource:
    """
    Base class: runs `produce(network)` in a task and emits each item,
    sleeping `interval` seconds between arrivals.
    """

    def __init__(self, *, interval: float = 0.0) -> None:
        if interval < 0:
            raise ValueError("interval must be >= 0")
        self.interval = float(interval)
        self.finished = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    def produce(self, network: str) -> AsyncIterator[PendingBlock]:  # pragma: no cover - abstract
        raise NotImplementedError

    def start(self, network: str, emit: EmitFn, on_error: ErrorFn) -> StopHandle:
        if self._task is not None and not self._task.done():
            raise SourceError("source already started", data={"network": network})
        self.finished = asyncio.Event()
        self._task = asyncio.create_task(self._pump(network, emit, on_error), name=f"source-{network}")
        return self.stop

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _pump(self, network: str, emit: EmitFn, on_error: ErrorFn) -> None:
        first = True
        try:
            async for pending in self.produce(network):
                if not first and self.interval:
                    await asyncio.sleep(self.interval)
                first = False
                emit(pending)
        except asyncio.CancelledError:
            raise
        except SourceError as e:
            on_error(e)
        except Exception as e:
            log.exception("block source failed")
            on_error(SourceError.from_exc(e, data={"network": network}))
        finally:
            self.finished.set()


__all__ = ["BlockSource", "EmitFn", "ErrorFn", "StopHandle", "TaskBlockSource", "maybe_await"]
