"""Encrypted-at-rest storage for the executor signing key.

The key is encrypted with AES-256-CBC under a scrypt-derived key and stored
as ``{"iv": <hex>, "encryptedKey": <hex>}``. The plaintext key only ever
exists in memory after a successful :meth:`WalletStore.load`.
"""

import json
import logging
import os
import re
import secrets
from collections.abc import Callable
from pathlib import Path

import typer
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from eth_account import Account
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from zync_executor.errors import WalletDecryptionError, WalletNotConfiguredError

logger = logging.getLogger(__name__)

PASSWORD_ENV = "ZYNC_WALLET_PASSWORD"

_SALT = b"zync-salt"
_KEY_LENGTH = 32
_IV_LENGTH = 16
_SCRYPT_N = 2**14
_SCRYPT_R = 8
_SCRYPT_P = 1
_PRIVATE_KEY_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")

ReadSecret = Callable[[str, bool], str]


def default_wallet_path() -> Path:
    return Path.home() / ".zync-executor" / "wallet.json"


def prompt_secret(prompt: str, confirm: bool = False) -> str:
    """Read a secret from the terminal without echo.

    Terminal mode is restored on every exit path; Ctrl-C surfaces as
    :class:`typer.Abort`.
    """
    value: str = typer.prompt(prompt, hide_input=True, confirmation_prompt=confirm)
    return value


class StoredWallet(BaseModel):
    """On-disk wallet representation."""

    model_config = ConfigDict(populate_by_name=True)

    iv: str
    encrypted_key: str = Field(alias="encryptedKey")


def normalize_private_key(private_key: str) -> str:
    """Return ``private_key`` as ``0x``-prefixed lowercase hex, or raise ``ValueError``."""
    candidate = private_key.strip()
    if not _PRIVATE_KEY_RE.match(candidate):
        raise ValueError("Private key must be 32 bytes of hex, optionally 0x-prefixed")
    if not candidate.startswith("0x"):
        candidate = f"0x{candidate}"
    try:
        Account.from_key(candidate)
    except Exception as exc:
        raise ValueError(f"Invalid private key: {exc}") from exc
    return candidate.lower()


def derive_key(password: str) -> bytes:
    kdf = Scrypt(salt=_SALT, length=_KEY_LENGTH, n=_SCRYPT_N, r=_SCRYPT_R, p=_SCRYPT_P)
    return kdf.derive(password.encode("utf-8"))


def encrypt_private_key(private_key: str, password: str) -> StoredWallet:
    iv = secrets.token_bytes(_IV_LENGTH)
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    plaintext = padder.update(private_key.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(derive_key(password)), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(plaintext) + encryptor.finalize()
    return StoredWallet(iv=iv.hex(), encrypted_key=ciphertext.hex())


def decrypt_private_key(stored: StoredWallet, password: str) -> str:
    """Decrypt a stored wallet.

    Every failure mode (wrong password, tampered ciphertext, bad hex, a
    payload that is not a ``0x`` key) raises :class:`WalletDecryptionError`.
    """
    try:
        iv = bytes.fromhex(stored.iv)
        ciphertext = bytes.fromhex(stored.encrypted_key)
        decryptor = Cipher(algorithms.AES(derive_key(password)), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        private_key = (unpadder.update(padded) + unpadder.finalize()).decode("utf-8")
    except ValueError as exc:
        raise WalletDecryptionError() from exc
    if not private_key.startswith("0x"):
        raise WalletDecryptionError()
    return private_key


class WalletStore:
    """Persist the executor key encrypted with an operator password."""

    def __init__(self, path: Path | None = None, *, read_secret: ReadSecret = prompt_secret) -> None:
        self._path = path if path is not None else default_wallet_path()
        self._read_secret = read_secret

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def save(self, private_key: str) -> None:
        """Encrypt ``private_key`` under a freshly prompted password and write it to disk."""
        normalized = normalize_private_key(private_key)
        self._path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        password = self._password("Set wallet password", confirm=True)
        stored = encrypt_private_key(normalized, password)
        self._write_private(stored.model_dump_json(by_alias=True, indent=2))
        logger.info("Wallet saved to %s", self._path)

    def load(self) -> str:
        """Prompt for the password and return the decrypted private key."""
        if not self.exists():
            raise WalletNotConfiguredError(
                "Wallet not configured. Run: zync-executor config-wallet --private-key <pk>"
            )
        try:
            stored = StoredWallet.model_validate(json.loads(self._path.read_text()))
        except (ValueError, ValidationError) as exc:
            raise WalletDecryptionError() from exc
        password = self._password("Enter wallet password", confirm=False)
        return decrypt_private_key(stored, password)

    def _write_private(self, content: str) -> None:
        """Write ``content`` owner-only, replacing any existing wallet only once fully written."""
        tmp_path = self._path.with_name(f"{self._path.name}.tmp")
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            os.replace(tmp_path, self._path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    def _password(self, prompt: str, *, confirm: bool) -> str:
        from_env = os.environ.get(PASSWORD_ENV)
        if from_env:
            logger.debug("Using wallet password from %s", PASSWORD_ENV)
            return from_env
        return self._read_secret(prompt, confirm)
