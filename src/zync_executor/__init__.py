"""Zync executor: permissionless keeper for Zync strategy vaults."""

__version__ = "1.0.0"
