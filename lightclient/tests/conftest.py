from __future__ import annotations

import logging

import pytest
from prometheus_client import CollectorRegistry

from lightclient.config import LightClientConfig, NetworkConfig, SamplingConfig
from lightclient.logging import clear_context
from lightclient.metrics import LightClientMetrics


@pytest.fixture
def cfg() -> LightClientConfig:
    """Zero pacing so pipeline tests run at loop speed."""
    return LightClientConfig(
        networks=NetworkConfig(default_network="Turing", known_networks=("Turing", "Mainnet")),
        sampling=SamplingConfig(cell_delay_ms=0, settle_delay_ms=0, verify_timeout_ms=1000),
    )


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> LightClientMetrics:
    return LightClientMetrics(registry=registry)


@pytest.fixture(autouse=True)
def _clean_log_context():
    clear_context()
    yield
    clear_context()


@pytest.fixture
def lc_caplog(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    caplog.set_level(logging.DEBUG, logger="lightclient")
    return caplog
