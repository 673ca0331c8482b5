"""ShopVault — encrypted storage of Shopify shop installs."""

from .version import __version__
from .vault import (
    TokenVault,
    VaultConfig,
    generate_encryption_key,
    VaultError,
    ConfigurationError,
    EncryptionError,
    MalformedCiphertextError,
    AuthenticationFailedError,
)
from .shops import ShopRecord, ShopStore
from .schema import create_shops_table
from .health import setup_health

__all__ = [
    "__version__",
    "TokenVault",
    "VaultConfig",
    "generate_encryption_key",
    "VaultError",
    "ConfigurationError",
    "EncryptionError",
    "MalformedCiphertextError",
    "AuthenticationFailedError",
    "ShopRecord",
    "ShopStore",
    "create_shops_table",
    "setup_health",
]
