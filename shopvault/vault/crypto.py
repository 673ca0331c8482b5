"""
Vault Crypto Core — Key derivation, token encryption/decryption and blob format.

Stored blob format (text column):
    <iv hex 16B>:<auth_tag hex 16B>:<ciphertext hex>

- Key: scrypt(secret, SALT) → 32 bytes (AES-256)
- Cipher: AES-GCM with a random 128-bit IV, 128-bit tag

Security Note:
    Never log plaintext, ciphertext or key values.
    SALT is a fixed application constant shared by all deployments; it only
    namespaces the derivation. Changing it makes every stored blob unreadable.
"""
import os
import re
import logging

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import (
    AuthenticationFailedError,
    ConfigurationError,
    EncryptionError,
    MalformedCiphertextError,
)

logger = logging.getLogger("shopvault.vault")

SALT = b"shopify-app-salt"
KEY_LENGTH = 32  # AES-256
IV_SIZE = 16
TAG_SIZE = 16
SEPARATOR = ":"

_HEX_RE = re.compile(r"[0-9a-fA-F]+")


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(
    secret: str,
    n: int = 2**14,
    r: int = 8,
    p: int = 1,
) -> bytes:
    """Derive the 32-byte token encryption key using scrypt.

    Args:
        secret: Configured encryption secret.
        n: scrypt CPU/memory cost (power of two).
        r: scrypt block size.
        p: scrypt parallelization.

    Returns:
        32-byte derived key.

    Raises:
        ConfigurationError: If secret is missing or empty, or the cost
            parameters cannot be satisfied.
    """
    if not secret:
        raise ConfigurationError(
            "Encryption secret is not configured. "
            "Set ENCRYPTION_KEY=<high-entropy secret>"
        )
    try:
        kdf = Scrypt(salt=SALT, length=KEY_LENGTH, n=n, r=r, p=p)
        return kdf.derive(secret.encode("utf-8"))
    except (ValueError, MemoryError) as err:
        logger.error("Key derivation failed: %s", type(err).__name__)
        raise ConfigurationError(
            f"Invalid scrypt parameters (n={n}, r={r}, p={p})"
        ) from err


# ---------------------------------------------------------------------------
# Blob format
# ---------------------------------------------------------------------------

def format_blob(iv: bytes, tag: bytes, ciphertext: bytes) -> str:
    """Join IV, tag and ciphertext into the stored text format."""
    return SEPARATOR.join((iv.hex(), tag.hex(), ciphertext.hex()))


def _decode_hex(segment: str, name: str) -> bytes:
    # bytes.fromhex() tolerates whitespace; stored blobs must not.
    if not _HEX_RE.fullmatch(segment) or len(segment) % 2:
        raise MalformedCiphertextError(f"{name} segment is not valid hex")
    try:
        return bytes.fromhex(segment)
    except ValueError:
        raise MalformedCiphertextError(
            f"{name} segment is not valid hex"
        ) from None


def parse_blob(blob: str) -> tuple[bytes, bytes, bytes]:
    """Split a stored blob into (iv, tag, ciphertext) bytes.

    Raises:
        MalformedCiphertextError: On wrong segment count, empty segments,
            invalid hex, or IV/tag not exactly 16 bytes.
    """
    if not isinstance(blob, str):
        raise MalformedCiphertextError(
            f"ciphertext blob must be str, got {type(blob).__name__}"
        )
    parts = blob.split(SEPARATOR)
    if len(parts) != 3 or not all(parts):
        raise MalformedCiphertextError(
            f"expected 3 non-empty segments, got {len(parts)}"
        )
    iv = _decode_hex(parts[0], "iv")
    tag = _decode_hex(parts[1], "auth_tag")
    ciphertext = _decode_hex(parts[2], "ciphertext")
    if len(iv) != IV_SIZE:
        raise MalformedCiphertextError(
            f"iv must be {IV_SIZE} bytes, got {len(iv)}"
        )
    if len(tag) != TAG_SIZE:
        raise MalformedCiphertextError(
            f"auth_tag must be {TAG_SIZE} bytes, got {len(tag)}"
        )
    return iv, tag, ciphertext


# ---------------------------------------------------------------------------
# Encryption
# ---------------------------------------------------------------------------

def encrypt_with_key(plaintext: str, key: bytes) -> str:
    """Encrypt a token under an already derived key.

    Args:
        plaintext: Non-empty credential string.
        key: 32-byte AES key from derive_key().

    Returns:
        Blob in ``iv:tag:ciphertext`` hex format.

    Raises:
        EncryptionError: If plaintext is empty or the cipher fails.
    """
    if not isinstance(plaintext, str) or not plaintext:
        raise EncryptionError("plaintext must be a non-empty string")
    iv = os.urandom(IV_SIZE)
    try:
        sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    except (ValueError, TypeError, OverflowError) as err:
        logger.error("Token encryption failed: %s", type(err).__name__)
        raise EncryptionError("Failed to encrypt token") from err
    # AESGCM appends the tag to the ciphertext.
    return format_blob(iv, sealed[-TAG_SIZE:], sealed[:-TAG_SIZE])


def decrypt_with_key(iv: bytes, tag: bytes, ciphertext: bytes, key: bytes) -> str:
    """Decrypt parsed blob components under an already derived key.

    Raises:
        AuthenticationFailedError: If the tag does not verify.
        MalformedCiphertextError: If the verified payload is not UTF-8.
    """
    try:
        plaintext = AESGCM(key).decrypt(iv, ciphertext + tag, None)
    except InvalidTag:
        logger.error("Token decryption failed: authentication tag mismatch")
        raise AuthenticationFailedError(
            "Token failed authentication (tampered data or wrong key)"
        ) from None
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError:
        raise MalformedCiphertextError(
            "decrypted token is not valid UTF-8"
        ) from None
