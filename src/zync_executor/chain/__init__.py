"""On-chain access for the executor."""

from zync_executor.chain.client import ChainClient, build_chain_client
from zync_executor.chain.provider import VaultGateway

__all__ = ["ChainClient", "VaultGateway", "build_chain_client"]
