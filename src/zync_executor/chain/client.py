"""web3-backed chain client for the Zync factory and vault contracts."""

import asyncio
import logging
from typing import Any

from aiohttp import ClientTimeout
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3

from zync_executor.chain.abi import STRATEGY_VAULT_ABI, STRATEGY_VAULT_FACTORY_ABI
from zync_executor.config import ExecutorSettings, ZyncConfig
from zync_executor.errors import ReadOnlyClientError

logger = logging.getLogger(__name__)


class ChainClient:
    """Async contract access over a single JSON-RPC endpoint.

    Built without an account the client is read-only; with one it can also
    sign and send ``executeStrategy`` transactions. Sends are serialised so
    concurrent submissions never race for the same pending nonce.
    """

    def __init__(self, w3: AsyncWeb3, *, chain_id: int, account: LocalAccount | None = None) -> None:
        self._w3 = w3
        self._chain_id = chain_id
        self._account = account
        self._send_lock = asyncio.Lock()

    @property
    def address(self) -> str | None:
        return self._account.address if self._account is not None else None

    async def get_all_vaults(self, factory_address: str) -> list[str]:
        factory = self._w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(factory_address),
            abi=STRATEGY_VAULT_FACTORY_ABI,
        )
        vaults: list[str] = await factory.functions.getAllVaults().call()
        return vaults

    async def get_strategy_count(self, vault: str) -> int:
        count = await self._vault(vault).functions.getStrategieCount().call()
        return int(count)

    async def can_execute(self, vault: str, strategy_index: int) -> bool:
        result = await self._vault(vault).functions.canExecute(strategy_index).call()
        return bool(result)

    async def execute_strategy(self, vault: str, strategy_index: int) -> str:
        """Sign and broadcast ``executeStrategy(strategy_index)``; return the tx hash."""
        if self._account is None:
            raise ReadOnlyClientError("Cannot send transactions without a signing key")

        function = self._vault(vault).functions.executeStrategy(strategy_index)
        async with self._send_lock:
            nonce = await self._w3.eth.get_transaction_count(self._account.address, "pending")
            tx_params: dict[str, Any] = {
                "from": self._account.address,
                "nonce": nonce,
                "chainId": self._chain_id,
            }
            tx = await function.build_transaction(tx_params)
            signed = self._account.sign_transaction(tx)
            tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        return AsyncWeb3.to_hex(tx_hash)

    async def close(self) -> None:
        await self._w3.provider.disconnect()

    def _vault(self, vault: str) -> Any:
        return self._w3.eth.contract(address=AsyncWeb3.to_checksum_address(vault), abi=STRATEGY_VAULT_ABI)


def build_chain_client(
    config: ZyncConfig,
    settings: ExecutorSettings,
    *,
    private_key: str | None = None,
) -> ChainClient:
    """Create a read-only client, or a signing one when ``private_key`` is given."""
    provider = AsyncHTTPProvider(
        config.rpc_url,
        request_kwargs={"timeout": ClientTimeout(total=settings.rpc_timeout)},
    )
    account: LocalAccount | None = Account.from_key(private_key) if private_key else None
    logger.debug("Chain client ready (chain_id=%d, signer=%s)", settings.chain_id, account is not None)
    return ChainClient(AsyncWeb3(provider), chain_id=settings.chain_id, account=account)
