"""Token Vault — Encryption at rest for Shopify OAuth access tokens.

Security Note (Threat Model):
    Tokens are decrypted into process memory on every read. Anyone holding
    ENCRYPTION_KEY and read access to the ``shops`` table can recover every
    token. The scrypt salt is a fixed application constant, so key
    derivation precomputation is not deployment-specific.
"""

from .token_vault import TokenVault
from .config import VaultConfig, generate_encryption_key
from .errors import (
    VaultError,
    ConfigurationError,
    EncryptionError,
    MalformedCiphertextError,
    AuthenticationFailedError,
)

__all__ = [
    "TokenVault",
    "VaultConfig",
    "generate_encryption_key",
    "VaultError",
    "ConfigurationError",
    "EncryptionError",
    "MalformedCiphertextError",
    "AuthenticationFailedError",
]
