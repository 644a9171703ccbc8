#!/usr/bin/env python3
"""Database helpers for Fleet bulk provisioning.

Every repository reaches PostgreSQL through the two context managers here,
so driver exceptions surface as the Fleet error hierarchy:

    async with database_connection(pool) as conn:      # single lookups
        row = await conn.fetchrow("SELECT ...")

    async with database_transaction(pool) as conn:     # all-or-nothing writes
        await conn.execute("INSERT INTO devices ...")
        await conn.execute("INSERT INTO device_credentials ...")

Author: Fleet Provisioning Team
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import asyncpg

from .exceptions import (
    ConnectionPoolError,
    DatabaseError,
    IntegrityError,
    TransactionError,
)

logger = logging.getLogger(__name__)

ACQUIRE_TIMEOUT_SECONDS = 30.0

# Constraint violations that mean the row itself is wrong
_INTEGRITY_VIOLATIONS: tuple[tuple[type, str, str], ...] = (
    (asyncpg.UniqueViolationError, "Duplicate entry", "unique"),
    (asyncpg.ForeignKeyViolationError, "Foreign key violation", "foreign_key"),
    (asyncpg.NotNullViolationError, "Not null violation", "not_null"),
)


# ============================================
# Connections and Transactions
# ============================================

@asynccontextmanager
async def database_connection(pool) -> AsyncIterator[Any]:
    """Borrow a pooled connection for the duration of the block.

    Raises:
        ConnectionPoolError: If the pool is missing or no connection frees
            up within ACQUIRE_TIMEOUT_SECONDS
    """
    if pool is None:
        raise ConnectionPoolError("Database connection pool is not initialized")

    try:
        conn = await pool.acquire(timeout=ACQUIRE_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        raise ConnectionPoolError(
            "Timeout acquiring database connection",
            details={"timeout_seconds": ACQUIRE_TIMEOUT_SECONDS},
        )
    except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        raise ConnectionPoolError(f"Failed to acquire database connection: {e}", cause=e)

    try:
        yield conn
    finally:
        await pool.release(conn)


@asynccontextmanager
async def database_transaction(
    pool,
    isolation: str = "read_committed",
    readonly: bool = False,
) -> AsyncIterator[Any]:
    """Run the block in one transaction on a pooled connection.

    The transaction commits when the block exits normally and rolls back
    when it raises; the exception is re-raised through convert_db_exception.

    Args:
        pool: asyncpg connection pool
        isolation: "read_committed", "repeatable_read" or "serializable"
        readonly: Open a read-only transaction

    Raises:
        ConnectionPoolError: If no connection can be acquired
        IntegrityError: If a constraint is violated
        TransactionError: On deadlock or timeout
        DatabaseError: On any other failure
    """
    async with database_connection(pool) as conn:
        try:
            async with conn.transaction(isolation=isolation, readonly=readonly):
                yield conn
        except Exception as e:
            logger.debug(f"Transaction rolled back: {e}")
            raise convert_db_exception(e)


def convert_db_exception(e: Exception) -> DatabaseError:
    """Map a driver (or any) exception onto the DatabaseError family."""
    if isinstance(e, DatabaseError):
        return e

    for error_type, label, constraint in _INTEGRITY_VIOLATIONS:
        if isinstance(e, error_type):
            return IntegrityError(
                f"{label}: {e}",
                constraint=getattr(e, "constraint_name", None) or constraint,
                cause=e,
            )

    text = str(e).lower()
    if "deadlock" in text:
        return TransactionError(f"Deadlock detected: {e}", operation="transaction", cause=e)
    if "timeout" in text or "timed out" in text:
        return TransactionError(f"Database operation timed out: {e}", operation="query", cause=e)

    return DatabaseError(f"Database operation failed: {e}", cause=e)


# ============================================
# Pool Lifecycle
# ============================================

async def create_pool(
    database_url: str,
    min_size: int = 2,
    max_size: int = 10,
    command_timeout: float = 60.0,
) -> asyncpg.Pool:
    """Open an asyncpg pool.

    Raises:
        ConnectionPoolError: If the database cannot be reached
    """
    try:
        pool = await asyncpg.create_pool(
            database_url,
            min_size=min_size,
            max_size=max_size,
            command_timeout=command_timeout,
        )
    except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        raise ConnectionPoolError(f"Failed to create database pool: {e}", cause=e)

    logger.info(f"Database pool created (min={min_size}, max={max_size})")
    return pool


async def close_pool(pool, timeout: float = 10.0):
    """Close the pool, terminating it if connections do not drain in time."""
    if pool is None:
        return

    try:
        await asyncio.wait_for(pool.close(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Pool close timed out after {timeout}s, terminating")
        pool.terminate()
        return
    logger.info("Database pool closed")


async def check_database_health(pool) -> dict[str, Any]:
    """Report whether the pool can run a query, with its size.

    Never raises; failures are reported under "error".
    """
    if pool is None:
        return {"healthy": False, "error": "Pool not initialized"}

    try:
        async with database_connection(pool) as conn:
            healthy = await conn.fetchval("SELECT 1") == 1
    except Exception as e:
        return {"healthy": False, "error": str(e)}

    size = pool.get_size()
    idle = pool.get_idle_size()
    return {
        "healthy": healthy,
        "pool_size": size,
        "pool_free": idle,
        "pool_used": size - idle,
    }


__all__ = [
    "database_connection",
    "database_transaction",
    "convert_db_exception",
    "create_pool",
    "close_pool",
    "check_database_health",
]
