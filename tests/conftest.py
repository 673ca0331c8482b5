"""Shared fixtures: vaults and an in-memory asyncpg-style pool for ``shops``."""
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest

from shopvault import shops as shops_module
from shopvault.vault import TokenVault, VaultConfig

SECRET = "9f2c4e6a8b0d1f3e5a7c9b1d3f5e7a9c0b2d4f6e8a0c2e4f6a8b0d2f4e6a8c0b"
OTHER_SECRET = "0000111122223333444455556666777788889999aaaabbbbccccddddeeeeffff"


@pytest.fixture
def vault():
    """Vault configured with a fixed secret."""
    return TokenVault(VaultConfig(encryption_key=SECRET))


@pytest.fixture
def other_vault():
    """Vault configured with a different secret."""
    return TokenVault(VaultConfig(encryption_key=OTHER_SECRET))


@pytest.fixture
def unconfigured_vault():
    """Vault with no encryption secret."""
    return TokenVault(VaultConfig())


class FakeConnection:
    """Understands exactly the statements issued by ShopStore and schema."""

    def __init__(self, pool):
        self._pool = pool

    async def execute(self, query, *args):
        self._pool.executed.append((query, args))
        if query == shops_module._DELETE_SHOP:
            deleted = self._pool.rows.pop(args[0], None)
            return f"DELETE {1 if deleted else 0}"
        return "OK"

    async def fetchrow(self, query, *args):
        self._pool.executed.append((query, args))
        rows = self._pool.rows
        if query == shops_module._UPSERT_SHOP:
            shop, token, scope, name, email, domain, currency, tz = args
            now = self._pool.tick()
            row = rows.get(shop)
            if row is None:
                row = {
                    "id": len(rows) + 1,
                    "shop": shop,
                    "installed_at": now,
                }
                rows[shop] = row
            row.update(
                access_token=token, scope=scope, shop_name=name, email=email,
                domain=domain, currency=currency, timezone=tz,
                is_active=True, last_updated=now,
            )
            return dict(row)
        if query == shops_module._SELECT_ACTIVE_SHOP:
            row = rows.get(args[0])
            return dict(row) if row and row["is_active"] else None
        if query == shops_module._DEACTIVATE_SHOP:
            row = rows.get(args[0])
            if row is None:
                return None
            row.update(is_active=False, last_updated=self._pool.tick())
            return dict(row)
        raise AssertionError(f"unexpected fetchrow: {query}")

    async def fetch(self, query, *args):
        self._pool.executed.append((query, args))
        if query == shops_module._SELECT_ALL_ACTIVE:
            active = [dict(r) for r in self._pool.rows.values() if r["is_active"]]
            return sorted(active, key=lambda r: r["installed_at"], reverse=True)
        raise AssertionError(f"unexpected fetch: {query}")

    async def fetchval(self, query, *args):
        self._pool.executed.append((query, args))
        if self._pool.broken:
            raise ConnectionError("database unavailable")
        return 1


class FakePool:
    """Minimal stand-in for an asyncpg pool."""

    def __init__(self):
        self.rows: dict[str, dict] = {}
        self.executed: list[tuple] = []
        self.broken = False
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def tick(self) -> datetime:
        self._clock += timedelta(minutes=1)
        return self._clock

    @asynccontextmanager
    async def acquire(self):
        yield FakeConnection(self)


@pytest.fixture
def db_pool():
    return FakePool()
