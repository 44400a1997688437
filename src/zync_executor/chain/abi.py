"""Minimal ABIs for the Zync factory and vault contracts."""

from typing import Any

STRATEGY_VAULT_FACTORY_ABI: list[dict[str, Any]] = [
    {
        "inputs": [],
        "name": "getAllVaults",
        "outputs": [{"name": "", "type": "address[]"}],
        "stateMutability": "view",
        "type": "function",
    },
]

STRATEGY_VAULT_ABI: list[dict[str, Any]] = [
    {
        "inputs": [],
        "name": "getStrategieCount",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "strategyId", "type": "uint256"}],
        "name": "canExecute",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "strategyId", "type": "uint256"}],
        "name": "executeStrategy",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
]
