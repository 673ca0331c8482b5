"""
Health Check — aiohttp ``GET /health`` reporting database and vault status.

A missing ENCRYPTION_KEY surfaces here as a failed check (503) rather than
as per-request errors later on.
"""
import logging
from typing import Any

import orjson
from aiohttp import web

from .vault import TokenVault, VaultError

logger = logging.getLogger("shopvault.health")

DB_POOL_KEY = web.AppKey("shopvault_db_pool", object)
VAULT_KEY = web.AppKey("shopvault_token_vault", TokenVault)


def _dumps(obj: Any) -> str:
    return orjson.dumps(obj).decode("utf-8")


async def _check_database(db_pool: Any) -> bool:
    try:
        async with db_pool.acquire() as conn:
            return await conn.fetchval("SELECT 1") == 1
    except Exception as err:  # any driver/network failure is "down"
        logger.error("Database health check failed: %s", err)
        return False


async def _check_vault(vault: TokenVault) -> bool:
    try:
        await vault.prepare()
    except VaultError as err:
        logger.error("Vault health check failed: %s", err)
        return False
    return True


async def warm_vault(app: web.Application) -> None:
    """Startup hook: derive the key before the first request needs it."""
    if await _check_vault(app[VAULT_KEY]):
        logger.info("Token vault ready")


async def health(request: web.Request) -> web.Response:
    """Report ``{"status", "database", "vault"}``; 503 if anything is down."""
    database = await _check_database(request.app[DB_POOL_KEY])
    vault = await _check_vault(request.app[VAULT_KEY])
    ok = database and vault
    return web.json_response(
        {"status": "ok" if ok else "error", "database": database, "vault": vault},
        status=200 if ok else 503,
        dumps=_dumps,
    )


def setup_health(app: web.Application, db_pool: Any, vault: TokenVault) -> None:
    """Register the health route, its collaborators and the vault warm-up."""
    app[DB_POOL_KEY] = db_pool
    app[VAULT_KEY] = vault
    app.on_startup.append(warm_vault)
    app.router.add_get("/health", health)
