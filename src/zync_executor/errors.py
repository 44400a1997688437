"""Typed errors raised by the executor.

Configuration and credential errors are fatal to the invoked command; chain
errors are scoped to the smallest unit of work and retried on the next cycle.
"""


class ExecutorError(Exception):
    """Base exception for zync-executor."""


class ConfigurationError(ExecutorError):
    """Persisted setup is missing or unreadable."""


class ConfigNotConfiguredError(ConfigurationError):
    """No RPC endpoint has been configured yet."""


class WalletNotConfiguredError(ConfigurationError):
    """No encrypted wallet has been stored yet."""


class WalletDecryptionError(ExecutorError):
    """Wrong password or corrupted wallet file.

    Both causes share this single error so callers cannot tell them apart.
    """

    MESSAGE = "Incorrect password or corrupted wallet."

    def __init__(self) -> None:
        super().__init__(self.MESSAGE)


class ChainResponseError(ExecutorError):
    """A contract call returned data of an unexpected shape."""


class ReadOnlyClientError(ExecutorError):
    """A state-changing call was attempted on a client without a signer."""
