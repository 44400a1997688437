"""Vault scanning, strategy execution and the polling loop."""

from zync_executor.executor.loop import ExecutorLoop
from zync_executor.executor.scanner import list_vaults
from zync_executor.executor.strategy import ExecutorCaches, StrategyExecutor, StrategyKey

__all__ = ["ExecutorCaches", "ExecutorLoop", "StrategyExecutor", "StrategyKey", "list_vaults"]
