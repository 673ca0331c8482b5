"""
ShopStore — Persistence of Shopify shop installs with encrypted access tokens.

Provides the API used by the OAuth and sync code:
- ``save_shop(...)`` — encrypt the token and upsert the shop (install/refresh)
- ``get_shop(shop)`` — load an active shop with its decrypted token
- ``get_all_active_shops()`` — load every active shop, newest install first
- ``deactivate_shop(shop)`` — mark a shop uninstalled
- ``delete_shop(shop)`` — remove a shop entirely (GDPR redaction)

Security Note:
    Never log access tokens or their ciphertext. Only log shop domains and
    operations. Vault errors on read are never masked: a shop whose token
    cannot be decrypted must be re-authenticated.
"""
import logging
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from .vault import TokenVault, VaultError

logger = logging.getLogger("shopvault.shops")

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_UPSERT_SHOP = """
INSERT INTO shops (
    shop, access_token, scope, shop_name, email, domain, currency, timezone,
    is_active, installed_at, last_updated
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, true, NOW(), NOW())
ON CONFLICT (shop)
DO UPDATE SET access_token = EXCLUDED.access_token,
              scope = EXCLUDED.scope,
              shop_name = EXCLUDED.shop_name,
              email = EXCLUDED.email,
              domain = EXCLUDED.domain,
              currency = EXCLUDED.currency,
              timezone = EXCLUDED.timezone,
              is_active = true,
              last_updated = NOW()
RETURNING *
"""

_SELECT_ACTIVE_SHOP = """
SELECT * FROM shops WHERE shop = $1 AND is_active = true
"""

_SELECT_ALL_ACTIVE = """
SELECT * FROM shops WHERE is_active = true ORDER BY installed_at DESC
"""

_DEACTIVATE_SHOP = """
UPDATE shops
SET is_active = false, last_updated = NOW()
WHERE shop = $1
RETURNING *
"""

_DELETE_SHOP = """
DELETE FROM shops WHERE shop = $1
"""


class ShopRecord(BaseModel):
    """A shop install with its access token in plaintext (or None)."""

    id: Optional[int] = None
    shop: str
    access_token: Optional[str] = Field(default=None, repr=False)
    scope: str = ""
    shop_name: Optional[str] = None
    email: Optional[str] = None
    domain: Optional[str] = None
    currency: Optional[str] = None
    timezone: Optional[str] = None
    is_active: bool = True
    installed_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None


class ShopStore:
    """Shop rows in PostgreSQL, with ``access_token`` sealed by a TokenVault."""

    def __init__(self, db_pool: Any, vault: TokenVault):
        self._db = db_pool
        self._vault = vault

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_shop(shop: str) -> None:
        if not shop:
            raise ValueError("Shop domain cannot be empty")

    def _to_record(self, row: Any, access_token: Optional[str]) -> ShopRecord:
        data = dict(row)
        data["access_token"] = access_token
        return ShopRecord(**data)

    def _open_row(self, row: Any) -> ShopRecord:
        """Decrypt the stored token of a row and build its record."""
        try:
            token = self._vault.decrypt(row["access_token"])
        except VaultError as err:
            logger.error(
                "Unreadable access token for shop=%s: %s",
                row["shop"], type(err).__name__,
            )
            raise
        return self._to_record(row, token)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def save_shop(
        self,
        shop: str,
        access_token: str,
        scope: str,
        shop_name: Optional[str] = None,
        email: Optional[str] = None,
        domain: Optional[str] = None,
        currency: Optional[str] = None,
        timezone: Optional[str] = None,
    ) -> ShopRecord:
        """Encrypt the access token and insert or refresh the shop.

        An existing shop is re-activated and its token overwritten with a
        freshly encrypted blob.

        Args:
            shop: Shop domain (e.g. ``my-store.myshopify.com``).
            access_token: Plaintext OAuth access token.
            scope: Granted OAuth scopes.

        Returns:
            Saved record carrying the plaintext token.

        Raises:
            ValueError: If shop is empty.
            ConfigurationError: If the vault has no encryption secret.
            EncryptionError: If the token cannot be encrypted.
        """
        self._validate_shop(shop)
        await self._vault.prepare()
        encrypted = self._vault.encrypt(access_token)
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(
                _UPSERT_SHOP,
                shop, encrypted, scope,
                shop_name, email, domain, currency, timezone,
            )
        logger.info("Shop saved: %s", shop)
        return self._to_record(row, access_token)

    async def get_shop(self, shop: str) -> Optional[ShopRecord]:
        """Return an active shop with its decrypted token, or None.

        Raises:
            MalformedCiphertextError: If the stored blob is corrupt.
            AuthenticationFailedError: If the blob fails verification.
            ConfigurationError: If the vault has no encryption secret.
        """
        self._validate_shop(shop)
        await self._vault.prepare()
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_ACTIVE_SHOP, shop)
        if row is None:
            return None
        return self._open_row(row)

    async def get_all_active_shops(self) -> list[ShopRecord]:
        """Return all active shops, most recently installed first.

        The first token that fails to decrypt aborts the whole call.
        """
        await self._vault.prepare()
        async with self._db.acquire() as conn:
            rows = await conn.fetch(_SELECT_ALL_ACTIVE)
        shops = [self._open_row(row) for row in rows]
        logger.debug("Loaded %d active shop(s)", len(shops))
        return shops

    async def deactivate_shop(self, shop: str) -> Optional[ShopRecord]:
        """Mark a shop inactive (app uninstalled).

        Returns:
            Updated record without its token, or None if the shop is unknown.
        """
        self._validate_shop(shop)
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_DEACTIVATE_SHOP, shop)
        if row is None:
            logger.warning("Deactivate requested for unknown shop: %s", shop)
            return None
        logger.info("Shop deactivated: %s", shop)
        return self._to_record(row, None)

    async def delete_shop(self, shop: str) -> bool:
        """Delete a shop and its stored token."""
        self._validate_shop(shop)
        async with self._db.acquire() as conn:
            await conn.execute(_DELETE_SHOP, shop)
        logger.info("Shop deleted: %s", shop)
        return True
