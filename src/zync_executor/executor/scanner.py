"""Enumerate every vault deployed by the Zync factory."""

import logging

from web3 import AsyncWeb3

from zync_executor.chain.provider import VaultGateway
from zync_executor.errors import ChainResponseError

logger = logging.getLogger(__name__)


async def list_vaults(chain: VaultGateway, factory_address: str) -> list[str]:
    """Return all vault addresses known to the factory.

    RPC errors propagate unchanged; a response that is not a list of
    addresses raises :class:`ChainResponseError`.
    """
    logger.debug("Fetching all vaults from factory %s", factory_address)
    vaults = await chain.get_all_vaults(factory_address)
    if not isinstance(vaults, (list, tuple)):
        raise ChainResponseError(f"getAllVaults returned {type(vaults).__name__}, expected a list")
    invalid = [v for v in vaults if not isinstance(v, str) or not AsyncWeb3.is_address(v)]
    if invalid:
        raise ChainResponseError(f"getAllVaults returned {len(invalid)} malformed address(es)")
    logger.debug("Fetched %d vault(s)", len(vaults))
    return list(vaults)
