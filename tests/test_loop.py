"""Tests for the executor loop."""

import asyncio
import logging
import os
import signal
import sys

import pytest
from conftest import VAULT_A, VAULT_B, FakeChain

from zync_executor.executor.loop import ExecutorLoop, cycle_error_boundary
from zync_executor.executor.strategy import ExecutorCaches, StrategyExecutor, StrategyKey

FACTORY = "0x" + "ff" * 20


def _make_loop(chain: FakeChain, caches: ExecutorCaches, *, poll_interval: float = 60.0) -> ExecutorLoop:
    return ExecutorLoop(
        chain,
        StrategyExecutor(chain, caches),
        caches,
        factory_address=FACTORY,
        poll_interval=poll_interval,
        jitter=0.2,
    )


def test_cycle_processes_every_vault_despite_failure(caches: ExecutorCaches) -> None:
    chain = FakeChain(
        [VAULT_A, VAULT_B],
        counts={VAULT_B: 2},
        eligible={(VAULT_B, 0): True, (VAULT_B, 1): True},
    )
    chain.errors[("get_strategy_count", VAULT_A)] = RuntimeError("boom")
    loop = _make_loop(chain, caches)

    asyncio.run(loop.run_cycle())
    assert [c for c in chain.calls if c[0] == "execute_strategy"] == [
        ("execute_strategy", VAULT_B, 0),
        ("execute_strategy", VAULT_B, 1),
    ]
    assert loop.cycles == 1


def test_can_execute_failure_isolated_to_vault(caches: ExecutorCaches) -> None:
    chain = FakeChain(
        [VAULT_A, VAULT_B],
        counts={VAULT_A: 1, VAULT_B: 1},
        eligible={(VAULT_A, 0): True, (VAULT_B, 0): True},
    )
    chain.errors[("can_execute", VAULT_A, 0)] = RuntimeError("rpc error")
    loop = _make_loop(chain, caches)

    asyncio.run(loop.run_cycle())
    assert caches.executions.has(StrategyKey(VAULT_B, 0))
    assert not caches.executions.has(StrategyKey(VAULT_A, 0))


def test_scan_failure_is_contained(caches: ExecutorCaches, caplog: pytest.LogCaptureFixture) -> None:
    chain = FakeChain()
    chain.errors[("get_all_vaults",)] = ConnectionError("node unreachable")
    loop = _make_loop(chain, caches)

    with caplog.at_level(logging.ERROR):
        asyncio.run(loop.run_cycle())
    assert "Executor loop error: node unreachable" in caplog.text
    assert loop.cycles == 1


def test_malformed_vault_list_is_contained(caches: ExecutorCaches) -> None:
    chain = FakeChain(["not-an-address"])
    loop = _make_loop(chain, caches)

    asyncio.run(loop.run_cycle())
    assert chain.count_calls("get_strategy_count") == 0


def test_empty_vault_list(caches: ExecutorCaches) -> None:
    chain = FakeChain([])
    loop = _make_loop(chain, caches)

    asyncio.run(loop.run_cycle())
    assert chain.calls == [("get_all_vaults",)]


def test_cycle_sweeps_expired_cache_entries(caches: ExecutorCaches, clock) -> None:
    caches.executions.set(StrategyKey(VAULT_A, 0), "0xdead")
    clock.advance(1801)
    loop = _make_loop(FakeChain([]), caches)

    asyncio.run(loop.run_cycle())
    assert len(caches.executions) == 0


def test_stop_during_sleep_exits_cleanly(caches: ExecutorCaches, caplog: pytest.LogCaptureFixture) -> None:
    chain = FakeChain([VAULT_A], counts={VAULT_A: 0})
    loop = _make_loop(chain, caches, poll_interval=3600)

    async def _run() -> None:
        asyncio.get_running_loop().call_later(0.05, loop.stop, "SIGINT")
        await asyncio.wait_for(loop.run(), timeout=5)

    with caplog.at_level(logging.INFO):
        asyncio.run(_run())
    assert loop.stopped
    assert loop.cycles == 1
    assert chain.count_calls("get_all_vaults") == 1
    assert "Executor stopped cleanly." in caplog.text


def test_run_logs_wallet_and_interval(caches: ExecutorCaches, caplog: pytest.LogCaptureFixture) -> None:
    loop = _make_loop(FakeChain([]), caches, poll_interval=15)
    loop.stop()

    with caplog.at_level(logging.INFO):
        asyncio.run(loop.run())
    assert "Executor wallet: 0x" in caplog.text
    assert "Polling interval: 15s" in caplog.text
    assert loop.cycles == 0


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals only")
def test_sigint_during_sleep_stops_loop(caches: ExecutorCaches, caplog: pytest.LogCaptureFixture) -> None:
    loop = _make_loop(FakeChain([]), caches, poll_interval=3600)

    async def _run() -> None:
        asyncio.get_running_loop().call_later(0.05, os.kill, os.getpid(), signal.SIGINT)
        await asyncio.wait_for(loop.run(), timeout=5)

    with caplog.at_level(logging.INFO):
        asyncio.run(_run())
    assert loop.cycles == 1
    assert "Received SIGINT. Stopping executor..." in caplog.text
    assert "Executor stopped cleanly." in caplog.text


class _StopOnCountChain(FakeChain):
    """Requests a stop while a vault is mid-processing."""

    loop: ExecutorLoop | None = None

    async def get_strategy_count(self, vault: str) -> int:
        assert self.loop is not None
        self.loop.stop("SIGTERM")
        return await super().get_strategy_count(vault)


def test_inflight_vault_work_finishes_after_stop(caches: ExecutorCaches) -> None:
    chain = _StopOnCountChain([VAULT_A], counts={VAULT_A: 1}, eligible={(VAULT_A, 0): True})
    loop = _make_loop(chain, caches, poll_interval=3600)
    chain.loop = loop

    asyncio.run(asyncio.wait_for(loop.run(), timeout=5))
    assert loop.stopped
    assert chain.count_calls("execute_strategy") == 1
    assert loop.cycles == 1


def test_error_boundary_contains_exceptions(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.ERROR), cycle_error_boundary("Vault scan"):
        raise ValueError("bad data")
    assert "Vault scan error: bad data" in caplog.text


def test_error_boundary_does_not_contain_cancellation() -> None:
    with pytest.raises(asyncio.CancelledError), cycle_error_boundary("Vault scan"):
        raise asyncio.CancelledError
