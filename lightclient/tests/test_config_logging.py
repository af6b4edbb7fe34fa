import io
import json
import logging

import pytest

from lightclient import logging as lclog
from lightclient.config import (
    LightClientConfig,
    LoggingConfig,
    NetworkConfig,
    SamplingConfig,
    _load_from_env,
    _parse_duration_ms,
    format_config,
    get_config,
)
from lightclient.errors import ConfigError

_ENV = (
    "LC_NETWORK",
    "LC_NETWORKS",
    "LC_CELL_DELAY",
    "LC_SETTLE_DELAY",
    "LC_VERIFY_TIMEOUT",
    "LC_HISTORY_SIZE",
    "LC_LOG_LIMIT",
    "LC_LOG_LEVEL",
    "LC_LOG_FORMAT",
)


@pytest.fixture
def clean_env(monkeypatch):
    for key in _ENV:
        monkeypatch.delenv(key, raising=False)
    get_config.cache_clear()
    yield monkeypatch
    get_config.cache_clear()


# ---------------------------------------------------------------- config


def test_defaults(clean_env):
    cfg = _load_from_env()
    assert cfg.networks.default_network == "Turing"
    assert cfg.networks.known_networks == ("Turing", "Mainnet")
    assert cfg.sampling.cell_delay == pytest.approx(0.1)
    assert cfg.sampling.settle_delay == pytest.approx(0.5)
    assert cfg.sampling.verify_timeout == pytest.approx(5.0)
    assert cfg.history.block_list_size == 10
    assert cfg.logging.format is None


def test_env_overrides(clean_env):
    clean_env.setenv("LC_NETWORKS", "Mainnet, Turing ,Devnet")
    clean_env.setenv("LC_NETWORK", "Devnet")
    clean_env.setenv("LC_CELL_DELAY", "0")
    clean_env.setenv("LC_SETTLE_DELAY", "1.5s")
    clean_env.setenv("LC_HISTORY_SIZE", "25")
    clean_env.setenv("LC_LOG_FORMAT", "JSON")
    cfg = get_config()
    assert cfg.networks.known_networks == ("Mainnet", "Turing", "Devnet")
    assert cfg.networks.default_network == "Devnet"
    assert cfg.sampling.cell_delay_ms == 0
    assert cfg.sampling.settle_delay_ms == 1500
    assert cfg.history.block_list_size == 25
    assert cfg.logging.format == "json"
    assert get_config() is cfg


@pytest.mark.parametrize(
    "raw, ms", [("100", 100), ("100ms", 100), ("0.5s", 500), ("5 seconds", 5000), ("2sec", 2000)]
)
def test_parse_duration(raw, ms):
    assert _parse_duration_ms(raw, default=1) == ms


def test_bad_values_raise_config_error(clean_env):
    clean_env.setenv("LC_CELL_DELAY", "soon")
    with pytest.raises(ConfigError):
        _load_from_env()
    clean_env.delenv("LC_CELL_DELAY")
    clean_env.setenv("LC_HISTORY_SIZE", "ten")
    with pytest.raises(ConfigError):
        _load_from_env()


def test_default_network_must_be_known(clean_env):
    clean_env.setenv("LC_NETWORK", "Devnet")
    with pytest.raises(ConfigError):
        _load_from_env()


def test_validation_rules():
    with pytest.raises(ConfigError):
        LightClientConfig(networks=NetworkConfig(known_networks=())).validate()
    with pytest.raises(ConfigError):
        LightClientConfig(sampling=SamplingConfig(verify_timeout_ms=0)).validate()
    with pytest.raises(ConfigError):
        LightClientConfig().with_sampling(cell_delay_ms=-1)
    assert isinstance(ConfigError("x"), ValueError)


def test_with_sampling_and_format():
    cfg = LightClientConfig().with_sampling(cell_delay_ms=0, settle_delay_ms=0)
    assert cfg.sampling.cell_delay == 0.0
    text = format_config(cfg)
    assert "sampling.cell_delay_ms: 0" in text
    assert "networks.default_network: Turing" in text


# ---------------------------------------------------------------- logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


def test_json_formatter_includes_context_and_extras(restore_root_logger):
    buf = io.StringIO()
    lclog.configure(json=True, level="DEBUG", stream=buf)
    with lclog.context_scope(network="Turing", block=12):
        lclog.get_logger("lightclient.test").info("cell verified", extra={"row": 1, "proof": b"\x01\x02"})

    line = json.loads(buf.getvalue().strip().splitlines()[-1])
    assert line["msg"] == "cell verified"
    assert line["level"] == "INFO"
    assert line["network"] == "Turing"
    assert line["block"] == 12
    assert line["row"] == 1
    assert line["proof"] == "0102"


def test_text_formatter_one_line(restore_root_logger):
    buf = io.StringIO()
    lclog.configure(json=False, level="INFO", stream=buf)
    lclog.bind(network="Mainnet")
    lclog.get_logger("lightclient.test").warning("source error")
    out = buf.getvalue()
    assert "WARNING" in out
    assert "network=Mainnet" in out
    assert out.rstrip().endswith("| source error")


def test_context_scope_restores_previous_context():
    lclog.bind(run_id="abc")
    with lclog.context_scope(block=3):
        assert lclog.context() == {"run_id": "abc", "block": 3}
    assert lclog.context() == {"run_id": "abc"}
    lclog.unbind("run_id")
    assert lclog.context() == {}


def test_configure_from_config_respects_format(restore_root_logger):
    cfg = LightClientConfig(logging=LoggingConfig(level="WARNING", format="json"))
    lclog.configure_from_config(cfg)
    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert isinstance(root.handlers[0].formatter, lclog.JSONFormatter)
