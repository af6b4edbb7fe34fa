"""
Light client errors.

Lightweight, typed exception hierarchy with structured metadata so callers
(the event log, a CLI, an API layer) can render failures uniformly.

Usage:

    from lightclient.errors import VerificationError

    raise VerificationError("proof check timed out", data={"row": 3, "col": 1})

All errors expose:
- .code   : stable machine-readable code (snake_case)
- .data   : optional structured payload (dict-like)
- .recoverable : whether the pipeline keeps running after this error
- .to_problem() : RFC 7807-compatible dict
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


class LightClientError(Exception):
    """
    Base class for light client errors.

    Subclasses should set `default_code` and `recoverable`.
    """
    default_code = "lc_error"
    recoverable = True

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        data: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        # Shallow copy so callers can't mutate it after raising
        self.data: Dict[str, Any] = dict(data) if data else {}

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.message:
            return f"{self.code}: {self.message}"
        return self.code

    def to_problem(self) -> Dict[str, Any]:
        """
        Render as an RFC 7807 "problem detail" object.
        """
        return {
            "type": f"urn:lightclient:{self.code}",
            "title": self.code.replace("_", " ").title(),
            "detail": self.message or None,
            "data": self.data or None,
        }

    @classmethod
    def from_exc(
        cls,
        exc: BaseException,
        *,
        code: Optional[str] = None,
        data: Optional[Mapping[str, Any]] = None,
    ) -> "LightClientError":
        """
        Wrap an arbitrary exception with a best-effort message.
        """
        msg = f"{exc.__class__.__name__}: {exc}"
        return cls(msg, code=code, data=data)


class VerificationError(LightClientError):
    """
    A single cell's proof check errored (primitive raised, malformed proof,
    timeout). The cell is excluded from confidence and sampling continues.
    """
    default_code = "verification_error"


class SourceError(LightClientError):
    """
    The block source failed to start, deliver, or stop. The run stays alive.
    """
    default_code = "source_error"


class InvalidBlock(LightClientError):
    """
    A queued block's cells, proofs and commitments don't line up.
    """
    default_code = "invalid_block"


class StateInvariantViolation(LightClientError):
    """
    Internal scheduling contract breach (e.g. a second dequeue while a block
    is still verifying). Fatal to the current run.
    """
    default_code = "state_invariant_violation"
    recoverable = False


class ConfigError(LightClientError, ValueError):
    """
    Invalid configuration value.
    """
    default_code = "config_error"
    recoverable = False


__all__ = [
    "LightClientError",
    "VerificationError",
    "SourceError",
    "InvalidBlock",
    "StateInvariantViolation",
    "ConfigError",
]
