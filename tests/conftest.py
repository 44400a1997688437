"""Shared fakes for executor tests."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator

import pytest

from zync_executor.cache import ExpiringCache
from zync_executor.executor.strategy import ExecutorCaches

VAULT_A = "0x" + "aa" * 20
VAULT_B = "0x" + "bb" * 20
EXECUTOR_ADDRESS = "0x" + "ee" * 20


class FakeClock:
    """Manually advanced replacement for ``time.monotonic``."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeChain:
    """In-memory VaultGateway recording every call.

    ``errors`` maps a call tuple such as ``("can_execute", VAULT_A, 0)`` to
    the exception that call should raise.
    """

    def __init__(
        self,
        vaults: list[str] | None = None,
        *,
        counts: dict[str, int] | None = None,
        eligible: dict[tuple[str, int], bool] | None = None,
    ) -> None:
        self.vaults = vaults if vaults is not None else []
        self.counts = counts if counts is not None else {}
        self.eligible = eligible if eligible is not None else {}
        self.errors: dict[tuple[object, ...], Exception] = {}
        self.calls: list[tuple[object, ...]] = []
        self._tx_counter = 0

    @property
    def address(self) -> str | None:
        return EXECUTOR_ADDRESS

    def count_calls(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    def _record(self, *call: object) -> None:
        self.calls.append(call)
        if call in self.errors:
            raise self.errors[call]

    async def get_all_vaults(self, factory_address: str) -> list[str]:
        await asyncio.sleep(0)
        self._record("get_all_vaults")
        return list(self.vaults)

    async def get_strategy_count(self, vault: str) -> int:
        await asyncio.sleep(0)
        self._record("get_strategy_count", vault)
        return self.counts.get(vault, 0)

    async def can_execute(self, vault: str, strategy_index: int) -> bool:
        await asyncio.sleep(0)
        self._record("can_execute", vault, strategy_index)
        return self.eligible.get((vault, strategy_index), False)

    async def execute_strategy(self, vault: str, strategy_index: int) -> str:
        await asyncio.sleep(0)
        self._record("execute_strategy", vault, strategy_index)
        self._tx_counter += 1
        return "0x" + f"{self._tx_counter:064x}"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def caches(clock: FakeClock) -> ExecutorCaches:
    return ExecutorCaches(
        strategy_counts=ExpiringCache(3600, clock=clock),
        eligibility=ExpiringCache(1800, clock=clock),
        executions=ExpiringCache(1800, clock=clock),
    )


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
