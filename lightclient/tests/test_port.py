import asyncio

import pytest

from lightclient.errors import VerificationError
from lightclient.sampling.digest import DigestVerifier, cell_proof
from lightclient.sampling.port import VerificationPort

COMMIT = b"\x11" * 32


def _count(registry, outcome):
    return registry.get_sample_value("lc_cell_verify_total", {"outcome": outcome}) or 0.0


@pytest.mark.asyncio
async def test_sync_primitive_runs_in_executor(metrics, registry):
    fn = DigestVerifier()
    port = VerificationPort(fn, timeout=1.0, metrics=metrics)
    good = cell_proof(COMMIT, 4, 1, 2)
    assert await port.verify(good, COMMIT, 4, 1, 2) is True
    assert await port.verify(good, COMMIT, 4, 1, 3) is False
    assert fn.calls == 2
    assert _count(registry, "ok") == 1
    assert _count(registry, "invalid") == 1


@pytest.mark.asyncio
async def test_async_primitive_is_awaited():
    seen = []

    async def verify(proof, commitment, grid_width, row, col):
        seen.append((grid_width, row, col))
        return True

    port = VerificationPort(verify)
    assert await port.verify(b"p", b"c", 8, 3, 5) is True
    assert seen == [(8, 3, 5)]


@pytest.mark.asyncio
async def test_truthy_results_are_coerced_to_bool():
    port = VerificationPort(lambda *a: 1)
    assert await port.verify(b"", b"", 1, 0, 0) is True


@pytest.mark.asyncio
async def test_raising_primitive_becomes_verification_error(metrics, registry):
    def boom(*args):
        raise RuntimeError("pairing check exploded")

    port = VerificationPort(boom, metrics=metrics)
    with pytest.raises(VerificationError) as ei:
        await port.verify(b"p", b"c", 4, 0, 1)
    assert "pairing check exploded" in ei.value.message
    assert ei.value.data == {"row": 0, "col": 1}
    assert _count(registry, "error") == 1


@pytest.mark.asyncio
async def test_hung_primitive_times_out(metrics, registry):
    async def hang(*args):
        await asyncio.sleep(10)
        return True

    port = VerificationPort(hang, timeout=0.01, metrics=metrics)
    with pytest.raises(VerificationError) as ei:
        await port.verify(b"p", b"c", 4, 2, 2)
    assert ei.value.code == "verify_timeout"
    assert _count(registry, "timeout") == 1


def test_non_callable_rejected():
    with pytest.raises(TypeError):
        VerificationPort("not a function")  # type: ignore[arg-type]
