"""
PostgreSQL persistence layer for the Accounts service.
"""

from typing import Optional

import asyncpg
from shared.config import BaseConfig
from shared.logging import get_logger
from shared.errors import StartupFailure, QueryFailed


ACCOUNT_JWT_QUERY = "SELECT account_jwt FROM nats WHERE nsc_account_id = $1"


class PostgreSQLCredentialStore:
    """Shared, read-only handle on the credential table.

    One pool is opened at startup and shared by every request handler.
    Concurrent queries are spread over the pool's connections by asyncpg;
    nothing here serializes callers.
    """

    def __init__(
        self,
        dsn: str,
        min_size: int = 1,
        max_size: int = 10,
        query_timeout: Optional[float] = None
    ):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.query_timeout = query_timeout
        self.logger = get_logger("accounts.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Open the connection pool."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=self.query_timeout
            )
        except Exception as e:
            self.logger.error("Failed to start PostgreSQL credential store", error=str(e))
            raise StartupFailure(
                "Could not connect to the credential store",
                {"error": str(e)}
            ) from e

        self.logger.info(
            "PostgreSQL credential store started",
            min_size=self.min_size,
            max_size=self.max_size
        )

    async def stop(self):
        """Close the connection pool."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL credential store stopped")

    async def fetch_account_jwt(self, account_id: str) -> Optional[str]:
        """Return the account JWT from the first matching row, or None."""
        if self.pool is None:
            raise QueryFailed("credential store is not started")

        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(ACCOUNT_JWT_QUERY, account_id, timeout=self.query_timeout)
        except Exception as e:
            # TimeoutError carries no message; fall back to the type name
            detail = str(e) or type(e).__name__
            raise QueryFailed(detail, {"error_type": type(e).__name__}) from e

        if row is None:
            return None
        return row["account_jwt"]

    async def health_check(self) -> bool:
        """Check database health."""
        if self.pool is None:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1", timeout=self.query_timeout)
                return True
        except Exception:
            return False


async def acquire_store(config: BaseConfig) -> PostgreSQLCredentialStore:
    """Build and start the credential store described by the configuration.

    Raises StartupFailure when the connection string is missing or the
    store cannot be reached.
    """
    if not config.db_connection_string:
        raise StartupFailure(
            "AUTHORIZATION_DB_CONNECTION_STRING must be set",
            {"setting": "db_connection_string"}
        )

    store = PostgreSQLCredentialStore(
        config.db_connection_string,
        min_size=config.db_pool_min_size,
        max_size=config.db_pool_max_size,
        query_timeout=config.db_query_timeout
    )
    await store.start()
    return store
