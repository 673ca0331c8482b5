"""
TokenVault — Encryption at rest for Shopify OAuth access tokens.

Provides the public API used by the shop persistence layer:
- ``encrypt(plaintext)`` — seal a token into an ``iv:tag:ciphertext`` blob
- ``decrypt(blob)`` — verify and open a stored blob
- ``check()`` — derive key material once, for startup/health checks
- ``prepare()`` — async variant of check() that derives off the event loop

The vault is built once from a VaultConfig and handed to its callers.
The derived key is cached per instance; the first callers race on a lock,
so scrypt runs once and no caller observes a partially built key.

Security Note:
    Never log plaintext or ciphertext values. Decrypted tokens live only in
    the caller's memory for the duration of a request.
"""
import asyncio
import logging
import threading
from typing import Optional

from .config import VaultConfig
from .crypto import derive_key, encrypt_with_key, decrypt_with_key, parse_blob

logger = logging.getLogger("shopvault.vault")


class TokenVault:
    """Encrypts and decrypts shop access tokens with a derived AES-256 key."""

    def __init__(self, config: Optional[VaultConfig] = None):
        self._config = config or VaultConfig()
        self._lock = threading.Lock()
        # (config the key was derived from, key); configs are frozen
        self._cached: Optional[tuple[VaultConfig, bytes]] = None

    @classmethod
    def from_env(cls) -> "TokenVault":
        """Build a vault from ENCRYPTION_KEY and VAULT_SCRYPT_* variables."""
        return cls(VaultConfig.from_env())

    @property
    def config(self) -> VaultConfig:
        return self._config

    @property
    def key_ready(self) -> bool:
        """True once the key for the current config has been derived."""
        cached = self._cached
        return cached is not None and cached[0] is self._config

    def __repr__(self) -> str:
        return (
            f"<TokenVault configured={self._config.has_encryption_key} "
            f"key_cached={self.key_ready}>"
        )

    # ------------------------------------------------------------------
    # Key material
    # ------------------------------------------------------------------

    def _get_key(self) -> bytes:
        """Return the derived key, deriving it on first use.

        Raises:
            ConfigurationError: If no usable encryption secret is configured.
        """
        config = self._config
        cached = self._cached
        if cached is not None and cached[0] is config:
            return cached[1]
        with self._lock:
            cached = self._cached
            if cached is not None and cached[0] is config:
                return cached[1]
            secret = config.encryption_key
            key = derive_key(
                secret.get_secret_value() if secret is not None else "",
                n=config.scrypt_n,
                r=config.scrypt_r,
                p=config.scrypt_p,
            )
            self._cached = (config, key)
            logger.debug("Derived token encryption key")
            return key

    def check(self) -> None:
        """Fail fast if the vault cannot derive its key.

        Raises:
            ConfigurationError: If no usable encryption secret is configured.
        """
        self._get_key()

    async def prepare(self) -> None:
        """Derive the key in a worker thread so scrypt never blocks the loop.

        No-op once the key is cached.

        Raises:
            ConfigurationError: If no usable encryption secret is configured.
        """
        if self.key_ready:
            return
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._get_key)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a token for storage.

        Every call uses a fresh random IV, so encrypting the same token twice
        yields different blobs.

        Args:
            plaintext: Non-empty access token.

        Returns:
            Blob of the form ``<32 hex>:<32 hex>:<hex>``.

        Raises:
            ConfigurationError: If no encryption secret is configured.
            EncryptionError: If the token is empty or the cipher fails.
        """
        return encrypt_with_key(plaintext, self._get_key())

    def decrypt(self, blob: str) -> str:
        """Decrypt a stored token blob.

        Args:
            blob: Value of the ``access_token`` column.

        Returns:
            The original access token.

        Raises:
            MalformedCiphertextError: If the blob is structurally invalid.
            ConfigurationError: If no encryption secret is configured.
            AuthenticationFailedError: If the blob was tampered with or was
                encrypted under a different secret.
        """
        iv, tag, ciphertext = parse_blob(blob)
        return decrypt_with_key(iv, tag, ciphertext, self._get_key())
