import io
import json
import logging

import pytest

from lightclient.cli import run as cli
from lightclient.sources.fixtures import dump_fixture

from .util import make_pending


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


async def _run(argv, cfg, metrics):
    args = cli.parse_args(argv)
    out = io.StringIO()
    code = await cli.run(args, config=cli.build_config(args, base=cfg), out=out, metrics=metrics)
    return code, out.getvalue().splitlines()


@pytest.mark.asyncio
async def test_synthetic_run_prints_one_json_line_per_block(cfg, metrics):
    code, lines = await _run(["--count", "3", "--seed", "1", "--json"], cfg, metrics)
    assert code == 0
    rows = [json.loads(line) for line in lines]
    assert [r["number"] for r in rows] == [1, 2, 3]
    assert all(r["network"] == "Turing" for r in rows)
    assert all(r["confidence"] == pytest.approx(99.609375) for r in rows)


@pytest.mark.asyncio
async def test_text_output_uses_block_summary(cfg, metrics):
    code, lines = await _run(
        ["--count", "2", "--samples", "4", "--empty-every", "2", "--seed", "1"], cfg, metrics
    )
    assert code == 0
    assert lines == [
        "Block #1 on Turing: 4/4 cells verified, confidence 93.75%",
        "Block #2 on Turing: 0/0 cells verified, confidence 0.00%",
    ]


@pytest.mark.asyncio
async def test_fixture_run_with_network_switch(cfg, metrics, tmp_path):
    path = tmp_path / "blocks.json"
    dump_fixture(
        [
            make_pending(1),
            make_pending(10, network="Mainnet"),
            make_pending(11, network="Mainnet", bad=[(0, 0)]),
        ],
        path,
    )
    code, lines = await _run(
        ["--fixture", str(path), "--switch-to", "Mainnet", "--switch-after", "1", "--json"], cfg, metrics
    )
    assert code == 0
    rows = [json.loads(line) for line in lines]
    assert [(r["network"], r["number"]) for r in rows] == [("Turing", 1), ("Mainnet", 10), ("Mainnet", 11)]
    assert rows[2]["failed"] == 1
    assert rows[2]["confidence"] == pytest.approx(87.5)


@pytest.mark.asyncio
async def test_duration_bounds_a_slow_source(cfg, metrics):
    code, lines = await _run(
        ["--count", "100", "--interval", "10", "--duration", "0.2", "--seed", "1"], cfg, metrics
    )
    assert code == 0
    assert len(lines) == 1


def test_unknown_network_exits_2(capsys):
    assert cli.main(["--network", "Devnet"]) == 2
    assert "unknown network" in capsys.readouterr().err


def test_missing_fixture_exits_2(tmp_path, capsys, restore_root_logger):
    code = cli.main(["--fixture", str(tmp_path / "nope.json"), "--cell-delay", "0", "--settle-delay", "0"])
    assert code == 2
    assert "error:" in capsys.readouterr().err
