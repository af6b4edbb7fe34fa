"""
Light client configuration.

This module defines the configuration surface for the sampling pipeline:
- Networks (initially selected network and the selectable set)
- Sampling pacing (per-cell delay, per-block settle delay, verify timeout)
- History (chain-tail window size, event-log retention)
- Logging (level and output format)

All fields have sensible defaults and can be overridden via environment
variables. Nothing here imports heavy dependencies.

Environment variables (all optional):

  # Networks
  LC_NETWORK=Turing
  LC_NETWORKS=Turing,Mainnet

  # Sampling pacing (supports ms / s suffixes; bare numbers are milliseconds)
  LC_CELL_DELAY=100ms
  LC_SETTLE_DELAY=500ms
  LC_VERIFY_TIMEOUT=5s

  # History
  LC_HISTORY_SIZE=10
  LC_LOG_LIMIT=256

  # Logging
  LC_LOG_LEVEL=INFO
  LC_LOG_FORMAT=text                    # json | text (auto when unset)

"""

from __future__ import annotations

import os
import re
from dataclasses import asdict, dataclass, field, replace
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

from .errors import ConfigError


# ------------------------------- helpers ------------------------------------


_DURATION_RE = re.compile(
    r"^\s*(?P<num>(?:\d+)(?:\.\d+)?)\s*(?P<unit>ms|s|sec|secs|seconds?)?\s*$",
    re.IGNORECASE,
)


def _parse_duration_ms(value: Optional[str], *, default: int) -> int:
    """Parse durations like '100', '100ms', '0.5s', '5 seconds' → milliseconds."""
    if not value:
        return default
    m = _DURATION_RE.match(value)
    if not m:
        raise ConfigError(f"Invalid duration: {value!r}")
    num = float(m.group("num"))
    unit = (m.group("unit") or "ms").lower()
    if unit == "ms":
        return int(num)
    return int(num * 1000)


def _getenv(key: str, default: str | None = None) -> str | None:
    v = os.environ.get(key)
    return v if v is not None and v.strip() != "" else default


def _getenv_int(key: str, default: int) -> int:
    v = _getenv(key)
    if v is None:
        return default
    try:
        return int(v.strip(), 10)
    except ValueError as e:
        raise ConfigError(f"Invalid int for {key}: {v!r}") from e


def _split_csv(s: str | None) -> List[str]:
    if not s:
        return []
    return [x.strip() for x in s.split(",") if x.strip()]


# ------------------------------- config -------------------------------------


@dataclass(frozen=True)
class NetworkConfig:
    """
    Networks the client can run against.

    - default_network: selected at process start
    - known_networks: names accepted by network selection/switching
    """
    default_network: str = "Turing"
    known_networks: Tuple[str, ...] = ("Turing", "Mainnet")

    def validate(self) -> None:
        if not self.known_networks:
            raise ConfigError("known_networks must not be empty")
        if self.default_network not in self.known_networks:
            raise ConfigError(
                f"default_network {self.default_network!r} not in {list(self.known_networks)}"
            )


@dataclass(frozen=True)
class SamplingConfig:
    """
    Pacing for the per-block verification loop.

    - cell_delay_ms: pause after every cell (pass or fail)
    - settle_delay_ms: pause after the last cell, before the block is done
    - verify_timeout_ms: bound on a single verification call
    """
    cell_delay_ms: int = 100
    settle_delay_ms: int = 500
    verify_timeout_ms: int = 5000

    def validate(self) -> None:
        if self.cell_delay_ms < 0:
            raise ConfigError("cell_delay_ms must be >= 0")
        if self.settle_delay_ms < 0:
            raise ConfigError("settle_delay_ms must be >= 0")
        if self.verify_timeout_ms <= 0:
            raise ConfigError("verify_timeout_ms must be > 0")

    @property
    def cell_delay(self) -> float:
        return self.cell_delay_ms / 1000.0

    @property
    def settle_delay(self) -> float:
        return self.settle_delay_ms / 1000.0

    @property
    def verify_timeout(self) -> float:
        return self.verify_timeout_ms / 1000.0


@dataclass(frozen=True)
class HistoryConfig:
    """
    - block_list_size: History Window capacity (chain tail length)
    - log_limit: user-facing event-log entries retained
    """
    block_list_size: int = 10
    log_limit: int = 256

    def validate(self) -> None:
        if self.block_list_size < 1:
            raise ConfigError("block_list_size must be >= 1")
        if self.log_limit < 1:
            raise ConfigError("log_limit must be >= 1")


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: Optional[str] = None  # None -> decided by TTY detection

    def validate(self) -> None:
        if self.format not in (None, "json", "text"):
            raise ConfigError("log format must be 'json' or 'text'")


@dataclass(frozen=True)
class LightClientConfig:
    """
    Top-level light client configuration.
    """
    networks: NetworkConfig = field(default_factory=NetworkConfig)
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        self.networks.validate()
        self.sampling.validate()
        self.history.validate()
        self.logging.validate()

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    def with_sampling(self, **changes: int) -> "LightClientConfig":
        """Copy with selected sampling fields replaced (handy for zero-delay runs)."""
        cfg = replace(self, sampling=replace(self.sampling, **changes))
        cfg.validate()
        return cfg


# ------------------------------- loader -------------------------------------


def _load_from_env() -> LightClientConfig:
    # Networks
    known = tuple(_split_csv(_getenv("LC_NETWORKS", "Turing,Mainnet")))
    default_net = _getenv("LC_NETWORK", known[0] if known else "Turing") or "Turing"
    net_cfg = NetworkConfig(default_network=default_net, known_networks=known)

    # Sampling
    sampling_cfg = SamplingConfig(
        cell_delay_ms=_parse_duration_ms(_getenv("LC_CELL_DELAY"), default=100),
        settle_delay_ms=_parse_duration_ms(_getenv("LC_SETTLE_DELAY"), default=500),
        verify_timeout_ms=_parse_duration_ms(_getenv("LC_VERIFY_TIMEOUT"), default=5000),
    )

    # History
    history_cfg = HistoryConfig(
        block_list_size=_getenv_int("LC_HISTORY_SIZE", 10),
        log_limit=_getenv_int("LC_LOG_LIMIT", 256),
    )

    # Logging
    fmt = _getenv("LC_LOG_FORMAT")
    logging_cfg = LoggingConfig(
        level=(_getenv("LC_LOG_LEVEL", "INFO") or "INFO").upper(),
        format=fmt.strip().lower() if fmt else None,
    )

    cfg = LightClientConfig(
        networks=net_cfg,
        sampling=sampling_cfg,
        history=history_cfg,
        logging=logging_cfg,
    )
    cfg.validate()
    return cfg


@lru_cache(maxsize=1)
def get_config() -> LightClientConfig:
    """
    Load and validate configuration (cached). Clear the cache in tests
    via `get_config.cache_clear()` to observe env changes.
    """
    return _load_from_env()


# Pretty-print helper (used by the CLI)
def format_config(cfg: LightClientConfig | None = None) -> str:
    cfg = cfg or get_config()
    d = cfg.to_dict()
    lines: List[str] = []
    for section, values in d.items():
        for k, v in values.items():  # type: ignore[union-attr]
            lines.append(f"{section}.{k}: {v}")
    return "\n".join(lines)


__all__ = [
    "NetworkConfig",
    "SamplingConfig",
    "HistoryConfig",
    "LoggingConfig",
    "LightClientConfig",
    "get_config",
    "format_config",
]
