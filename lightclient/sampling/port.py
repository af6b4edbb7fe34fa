"""
Light client • Verification Port

Wraps the external cell-proof primitive behind one async contract:

    ok = await port.verify(proof, commitment, grid_width, row, col)

The primitive is opaque: any callable with that positional signature,
coroutine function or plain function, returning a truthy/falsy result. Sync
primitives (e.g. a compiled extension doing pairing checks) run in the
default executor so a slow check never blocks the event loop.

Every failure mode collapses into `VerificationError`:
  - the primitive raised
  - the call exceeded `timeout` seconds (a hung verifier would otherwise stall
    the whole pipeline)

A plain `False` is *not* an error: the proof was checked and rejected.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from ..errors import VerificationError
from ..metrics import LightClientMetrics

VerifyFn = Callable[[bytes, bytes, int, int, int], Union[bool, Awaitable[bool]]]


class VerificationPort:
    """
    Uniform async wrapper around a cell verification primitive.

    Parameters
    ----------
    verify_fn :
        `(proof, commitment, grid_width, row, col) -> bool` (sync or async).
    timeout :
        Seconds before a call is abandoned and reported as a VerificationError.
        None disables the bound.
    metrics :
        Optional metrics sink; outcomes are "ok", "invalid", "timeout", "error".
    """

    def __init__(
        self,
        verify_fn: VerifyFn,
        *,
        timeout: Optional[float] = 5.0,
        metrics: Optional[LightClientMetrics] = None,
    ) -> None:
        if not callable(verify_fn):
            raise TypeError("verify_fn must be callable")
        self._fn = verify_fn
        self._is_async = inspect.iscoroutinefunction(verify_fn) or inspect.iscoroutinefunction(
            getattr(verify_fn, "__call__", None)
        )
        self._timeout = timeout
        self._metrics = metrics

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    async def verify(self, proof: bytes, commitment: bytes, grid_width: int, row: int, col: int) -> bool:
        where = {"row": int(row), "col": int(col)}
        if self._metrics is None:
            return await self._call(proof, commitment, grid_width, row, col, where)
        with self._metrics.time_cell_verify() as t:
            try:
                ok = await self._call(proof, commitment, grid_width, row, col, where)
            except VerificationError as e:
                t.outcome("timeout" if e.code == "verify_timeout" else "error")
                raise
            if not ok:
                t.outcome("invalid")
            return ok

    async def _call(
        self,
        proof: bytes,
        commitment: bytes,
        grid_width: int,
        row: int,
        col: int,
        where: dict,
    ) -> bool:
        args = (bytes(proof), bytes(commitment), int(grid_width), int(row), int(col))
        try:
            result = await asyncio.wait_for(self._invoke(*args), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise VerificationError(
                f"verification of cell ({row}, {col}) exceeded {self._timeout}s",
                code="verify_timeout",
                data=where,
            ) from e
        except asyncio.CancelledError:
            raise
        except VerificationError:
            raise
        except Exception as e:
            raise VerificationError.from_exc(e, data=where) from e
        return bool(result)

    async def _invoke(self, *args: Any) -> Any:
        if self._is_async:
            return await self._fn(*args)  # type: ignore[misc]
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, functools.partial(self._fn, *args))
        # sync wrappers around async code may hand back an awaitable
        if inspect.isawaitable(result):
            return await result
        return result


__all__ = ["VerificationPort", "VerifyFn"]
