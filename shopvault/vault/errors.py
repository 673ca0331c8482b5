"""
Vault Errors — Exception hierarchy for the token vault.

Callers distinguish "this token is unreadable, re-authenticate the shop"
(MalformedCiphertextError, AuthenticationFailedError) from "this deployment
is misconfigured" (ConfigurationError).

Security Note:
    Messages never include plaintext, ciphertext or key material.
"""


class VaultError(Exception):
    """Base class for all token vault errors."""


class ConfigurationError(VaultError):
    """The vault has no usable key material (missing or invalid secret)."""


class EncryptionError(VaultError):
    """A plaintext could not be encrypted."""


class MalformedCiphertextError(VaultError):
    """Stored blob is structurally invalid (segments, hex, sizes)."""


class AuthenticationFailedError(VaultError):
    """Authentication tag did not verify: tampered data or wrong key."""
