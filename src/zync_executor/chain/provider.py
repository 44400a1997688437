"""VaultGateway protocol for chain access abstraction.

The web3-backed :class:`~zync_executor.chain.client.ChainClient` and the
in-memory fakes used in tests both satisfy this protocol via structural
typing.
"""

from __future__ import annotations

from typing import Protocol


class VaultGateway(Protocol):
    """Read and write calls the executor makes against Zync contracts."""

    @property
    def address(self) -> str | None: ...

    async def get_all_vaults(self, factory_address: str) -> list[str]: ...

    async def get_strategy_count(self, vault: str) -> int: ...

    async def can_execute(self, vault: str, strategy_index: int) -> bool: ...

    async def execute_strategy(self, vault: str, strategy_index: int) -> str: ...
