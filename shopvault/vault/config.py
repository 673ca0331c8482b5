"""
Vault Configuration — Encryption secret loading and validated settings.

Reads the encryption secret and optional scrypt cost parameters from
environment variables:
    ENCRYPTION_KEY = <high-entropy secret, e.g. 64 hex chars>
    VAULT_SCRYPT_N = <power of two, default 16384>
    VAULT_SCRYPT_R = <int, default 8>
    VAULT_SCRYPT_P = <int, default 1>

Security Note:
    Never log key material. The secret is held as a SecretStr so it does not
    leak through repr() or validation errors.
"""
import os
import secrets
import logging
from typing import Optional

from pydantic import (
    BaseModel,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)

from .errors import ConfigurationError

logger = logging.getLogger("shopvault.vault")

ENCRYPTION_KEY_ENV = "ENCRYPTION_KEY"

# Cost parameters existing blobs were produced under.
DEFAULT_SCRYPT_N = 2**14
DEFAULT_SCRYPT_R = 8
DEFAULT_SCRYPT_P = 1

MAX_SCRYPT_N = 2**20
# scrypt working memory is 128 * N * r bytes.
MAX_SCRYPT_MEMORY = 1 << 30


def generate_encryption_key() -> str:
    """Generate a random 32-byte encryption secret and return it as hex.

    This is a utility for operators provisioning a new deployment.
    Changing the secret of an existing deployment makes every stored
    token unreadable.

    Returns:
        64-character hex string.
    """
    return secrets.token_hex(32)


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(
            f"{name} must be an integer"
        ) from None


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    encryption_key: Optional[SecretStr] = None
    scrypt_n: int = Field(default=DEFAULT_SCRYPT_N)
    scrypt_r: int = Field(default=DEFAULT_SCRYPT_R, ge=1)
    scrypt_p: int = Field(default=DEFAULT_SCRYPT_P, ge=1, le=16)

    model_config = {"frozen": True}

    @field_validator("scrypt_n")
    @classmethod
    def validate_scrypt_n(cls, v: int) -> int:
        """scrypt requires N to be a power of two greater than one."""
        if v < 2 or v & (v - 1):
            raise ValueError(f"scrypt_n must be a power of two > 1, got {v}")
        if v > MAX_SCRYPT_N:
            raise ValueError(f"scrypt_n must be <= {MAX_SCRYPT_N}, got {v}")
        return v

    @model_validator(mode="after")
    def validate_scrypt_memory(self) -> "VaultConfig":
        """Reject cost parameters whose working memory exceeds 1 GiB."""
        if 128 * self.scrypt_n * self.scrypt_r > MAX_SCRYPT_MEMORY:
            raise ValueError(
                f"scrypt_n * scrypt_r requires more than "
                f"{MAX_SCRYPT_MEMORY >> 20} MiB of memory"
            )
        return self

    @property
    def has_encryption_key(self) -> bool:
        return bool(
            self.encryption_key and self.encryption_key.get_secret_value()
        )

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        A missing ENCRYPTION_KEY is not an error here; the vault raises
        ConfigurationError on first use instead.

        Returns:
            Populated VaultConfig instance.

        Raises:
            ConfigurationError: If a cost parameter is invalid.
        """
        raw_key = os.environ.get(ENCRYPTION_KEY_ENV)
        if not raw_key:
            logger.warning(
                "%s is not set; token encryption is unavailable",
                ENCRYPTION_KEY_ENV,
            )
        try:
            return cls(
                encryption_key=raw_key or None,
                scrypt_n=_int_from_env("VAULT_SCRYPT_N", DEFAULT_SCRYPT_N),
                scrypt_r=_int_from_env("VAULT_SCRYPT_R", DEFAULT_SCRYPT_R),
                scrypt_p=_int_from_env("VAULT_SCRYPT_P", DEFAULT_SCRYPT_P),
            )
        except ValidationError as err:
            # model-level errors carry an empty loc
            fields = sorted({
                str(e['loc'][0]) if e['loc'] else 'scrypt'
                for e in err.errors()
            })
            raise ConfigurationError(
                f"Invalid vault configuration: {err.error_count()} error(s) "
                f"in {fields}"
            ) from None
