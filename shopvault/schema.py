"""
Schema — DDL for the ``shops`` table holding encrypted access tokens.

``access_token`` stores the vault blob (``iv:tag:ciphertext``) verbatim.
"""
import logging
from typing import Any

logger = logging.getLogger("shopvault.schema")

CREATE_SHOPS_TABLE = """
CREATE TABLE IF NOT EXISTS shops (
    id SERIAL PRIMARY KEY,
    shop VARCHAR(255) UNIQUE NOT NULL,
    access_token TEXT NOT NULL,
    scope TEXT NOT NULL,
    shop_name VARCHAR(255),
    email VARCHAR(255),
    domain VARCHAR(255),
    currency VARCHAR(10),
    timezone VARCHAR(100),
    is_active BOOLEAN DEFAULT TRUE,
    installed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    last_updated TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""

CREATE_SHOPS_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_shops_shop ON shops(shop)",
    "CREATE INDEX IF NOT EXISTS idx_shops_is_active ON shops(is_active)",
)


async def create_shops_table(db_pool: Any) -> None:
    """Create the shops table and its indexes if they do not exist.

    Args:
        db_pool: asyncpg-compatible connection pool.
    """
    logger.info("Creating shops table")
    async with db_pool.acquire() as conn:
        await conn.execute(CREATE_SHOPS_TABLE)
        for statement in CREATE_SHOPS_INDEXES:
            await conn.execute(statement)
    logger.info("Shops table ready")
