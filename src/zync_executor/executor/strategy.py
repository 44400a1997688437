"""Per-vault strategy eligibility checks and execution submission."""

import logging
from dataclasses import dataclass
from typing import NamedTuple

from zync_executor.cache import ExpiringCache
from zync_executor.chain.provider import VaultGateway
from zync_executor.config import CacheSettings

logger = logging.getLogger(__name__)

PENDING = "pending"


class StrategyKey(NamedTuple):
    """Identity of one strategy; strategies are append-only per vault."""

    vault: str
    index: int

    def __str__(self) -> str:
        return f"{self.vault}-{self.index}"


@dataclass
class ExecutorCaches:
    """The three caches shared by every vault processed in this process.

    ``executions`` holds ``"pending"`` or a transaction hash per strategy and
    is what keeps a strategy from being submitted twice inside its TTL window.
    """

    strategy_counts: ExpiringCache[int]
    eligibility: ExpiringCache[bool]
    executions: ExpiringCache[str]

    @classmethod
    def from_settings(cls, settings: CacheSettings) -> "ExecutorCaches":
        return cls(
            strategy_counts=ExpiringCache(settings.strategy_count_ttl, max_entries=settings.max_entries),
            eligibility=ExpiringCache(settings.eligibility_ttl, max_entries=settings.max_entries),
            executions=ExpiringCache(settings.execution_ttl, max_entries=settings.max_entries),
        )

    def cleanup(self) -> int:
        """Sweep expired entries from all caches; return the number removed."""
        return self.strategy_counts.cleanup() + self.eligibility.cleanup() + self.executions.cleanup()


class StrategyExecutor:
    """Find executable strategies in a vault and submit them.

    The signing key is bound into ``chain``; all outcomes are reported
    through logs and cache state.
    """

    def __init__(self, chain: VaultGateway, caches: ExecutorCaches) -> None:
        self._chain = chain
        self._caches = caches

    async def process_vault(self, vault: str) -> None:
        try:
            count = await self._strategy_count(vault)
        except Exception as exc:
            logger.error("Failed to read strategy count for %s: %s", vault, exc)
            return

        for index in range(count):
            key = StrategyKey(vault, index)

            if self._caches.executions.has(key):
                logger.debug("Strategy %d on %s was recently executed, skipping", index, vault)
                continue

            try:
                eligible = await self._is_eligible(key)
            except Exception as exc:
                logger.error("canExecute failed for strategy %d on %s: %s", index, vault, exc)
                continue

            logger.debug("Strategy %d on %s canExecute: %s", index, vault, eligible)
            if not eligible:
                continue

            if not self._claim(key):
                logger.debug("Strategy %d on %s claimed by another task, skipping", index, vault)
                continue

            await self._submit(key)

    def _claim(self, key: StrategyKey) -> bool:
        """Mark ``key`` pending unless another task already has.

        Contains no suspension point, so on the event loop the check and the
        write happen as one step.
        """
        if self._caches.executions.has(key):
            return False
        self._caches.executions.set(key, PENDING)
        self._caches.eligibility.delete(key)
        return True

    async def _strategy_count(self, vault: str) -> int:
        count = self._caches.strategy_counts.get(vault)
        if count is None:
            count = await self._chain.get_strategy_count(vault)
            self._caches.strategy_counts.set(vault, count)
        return count

    async def _is_eligible(self, key: StrategyKey) -> bool:
        eligible = self._caches.eligibility.get(key)
        if eligible is None:
            eligible = await self._chain.can_execute(key.vault, key.index)
            self._caches.eligibility.set(key, eligible)
        return eligible

    async def _submit(self, key: StrategyKey) -> None:
        logger.info("Executing strategy %d on %s", key.index, key.vault)
        try:
            tx_hash = await self._chain.execute_strategy(key.vault, key.index)
        except Exception as exc:
            self._caches.executions.delete(key)
            logger.error("Failed to execute strategy %d on %s: %s", key.index, key.vault, exc)
            return
        self._caches.executions.set(key, tx_hash)
        logger.info("Tx sent for strategy %d on %s: %s", key.index, key.vault, tx_hash)
