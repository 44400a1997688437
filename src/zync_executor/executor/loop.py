"""Executor loop: scan vaults, fan out strategy execution, sleep, repeat."""

import asyncio
import logging
import signal
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from zync_executor.chain.provider import VaultGateway
from zync_executor.executor.scanner import list_vaults
from zync_executor.executor.sleep import SleepAborted, sleep_with_jitter
from zync_executor.executor.strategy import ExecutorCaches, StrategyExecutor

logger = logging.getLogger(__name__)

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@contextmanager
def cycle_error_boundary(scope: str) -> Iterator[None]:
    """Log and contain any error raised inside one unit of loop work.

    Cancellation (``BaseException``) is not contained.
    """
    try:
        yield
    except Exception as exc:
        logger.error("%s error: %s", scope, exc)
        logger.debug("%s traceback", scope, exc_info=True)


class ExecutorLoop:
    """Poll the factory and execute eligible strategies until stopped.

    Each cycle lists every vault, processes all of them concurrently and
    waits for every vault to settle before sleeping ``poll_interval``
    seconds (± ``jitter``). :meth:`stop` ends the loop after the current
    cycle's vault work has finished, cutting any pending sleep short.
    """

    def __init__(
        self,
        chain: VaultGateway,
        strategy_executor: StrategyExecutor,
        caches: ExecutorCaches,
        *,
        factory_address: str,
        poll_interval: float,
        jitter: float = 0.2,
    ) -> None:
        self._chain = chain
        self._strategy_executor = strategy_executor
        self._caches = caches
        self._factory_address = factory_address
        self._poll_interval = poll_interval
        self._jitter = jitter
        self._stop = asyncio.Event()
        self._cycles = 0

    @property
    def cycles(self) -> int:
        """Number of completed cycles."""
        return self._cycles

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self, reason: str = "stop requested") -> None:
        if not self._stop.is_set():
            logger.warning("Received %s. Stopping executor...", reason)
        self._stop.set()

    async def run(self) -> None:
        logger.info("Starting Zync executor")
        logger.info("Executor wallet: %s", self._chain.address)
        logger.info("Polling interval: %ss", self._poll_interval)

        installed = self._install_signal_handlers()
        try:
            while not self._stop.is_set():
                await self.run_cycle()
                try:
                    await sleep_with_jitter(self._poll_interval, self._jitter, self._stop)
                except SleepAborted:
                    break
        finally:
            self._remove_signal_handlers(installed)

        logger.info("Executor stopped cleanly.")

    async def run_cycle(self) -> None:
        """Run one scan-and-execute pass inside the cycle error boundary."""
        with cycle_error_boundary("Executor loop"):
            vaults = await list_vaults(self._chain, self._factory_address)
            if not vaults:
                logger.debug("No vaults found.")
            else:
                logger.info("Found %d vault(s)", len(vaults))
                results = await asyncio.gather(
                    *(self._strategy_executor.process_vault(vault) for vault in vaults),
                    return_exceptions=True,
                )
                for vault, result in zip(vaults, results):
                    if isinstance(result, BaseException):
                        logger.error("Processing vault %s failed: %s", vault, result)

        removed = self._caches.cleanup()
        if removed:
            logger.debug("Evicted %d expired cache entries", removed)
        self._cycles += 1

    def _install_signal_handlers(self) -> dict[signal.Signals, Any]:
        """Route SIGINT/SIGTERM to :meth:`stop`.

        Returns the previous handler for each signal that had to be set via
        :func:`signal.signal` (event loops without ``add_signal_handler``),
        or ``None`` for those registered on the loop.
        """
        loop = asyncio.get_running_loop()

        def _handle(signum: int, _frame: Any) -> None:
            loop.call_soon_threadsafe(self.stop, signal.Signals(signum).name)

        installed: dict[signal.Signals, Any] = {}
        for sig in _STOP_SIGNALS:
            try:
                loop.add_signal_handler(sig, self.stop, sig.name)
                installed[sig] = None
            except (NotImplementedError, RuntimeError):
                installed[sig] = signal.signal(sig, _handle)
        return installed

    def _remove_signal_handlers(self, installed: dict[signal.Signals, Any]) -> None:
        loop = asyncio.get_running_loop()
        for sig, previous in installed.items():
            if previous is None:
                loop.remove_signal_handler(sig)
            else:
                signal.signal(sig, previous)
