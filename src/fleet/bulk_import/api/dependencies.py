"""FastAPI dependency injection for bulk import API.

This module provides dependency injection functions that create
and return adapter and use case instances for use in API endpoints.

Lifecycle Management:
- Database pool: Initialized at startup, shared across requests
- Profile lock table: One per process, shared by every import so that
  concurrent uploads never create the same LwM2M profile twice

Security:
- API key authentication required for all endpoints (except /health)
- Set API_KEY environment variable to enable authentication
- DISABLE_AUTH=true disables authentication (development mode)
"""

import logging
import os
import secrets
from typing import Optional
from uuid import UUID

import asyncpg
from fastapi import Header, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from ...core.database import close_pool, create_pool
from ...core.exceptions import ConfigurationError
from ...core.locks import KeyedLock
from ..adapters import (
    DeviceCredentialsBuilder,
    DeviceCredentialsFormatter,
    DeviceFieldMapper,
    PostgresDeviceProfileRepository,
    PostgresDeviceRepository,
    TabularRowParser,
)
from ..config import BulkImportConfig
from ..use_cases import (
    BulkImportDevicesUseCase,
    ResolveDeviceProfileUseCase,
    UpsertDeviceUseCase,
)

logger = logging.getLogger(__name__)

# ========== API Key Authentication ==========

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(
    api_key: Optional[str] = Security(api_key_header),
) -> bool:
    """Verify the API key from the request header.

    Security model:
    - If DISABLE_AUTH=true (dev mode): authentication is disabled
    - Otherwise: API_KEY is required (fail-closed)

    Args:
        api_key: API key from X-API-Key header

    Returns:
        True if authenticated

    Raises:
        HTTPException: 401 if API key is missing or invalid
    """
    if os.getenv("DISABLE_AUTH", "").lower() == "true":
        logger.warning("Authentication disabled (DISABLE_AUTH=true). Only use this in development!")
        return True

    expected_key = os.getenv("API_KEY", "")

    # Fail-closed: require API_KEY in production
    if not expected_key:
        logger.error(
            "API_KEY not set - rejecting request. "
            "Set API_KEY environment variable or DISABLE_AUTH=true for development."
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server misconfiguration: API_KEY not set",
        )

    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide X-API-Key header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    # Constant-time comparison
    if not secrets.compare_digest(api_key, expected_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return True


async def get_tenant_id(
    x_tenant_id: str = Header(..., alias="X-Tenant-ID"),
) -> UUID:
    """Read the tenant the import runs for from the X-Tenant-ID header."""
    try:
        return UUID(x_tenant_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID must be a UUID",
        )


# ========== Global State ==========

_db_pool: Optional[asyncpg.Pool] = None
_config: Optional[BulkImportConfig] = None
_profile_locks = KeyedLock()


async def init_db_pool():
    """Initialize the database connection pool.

    Should be called on application startup.
    """
    global _db_pool

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise ConfigurationError(
            "DATABASE_URL environment variable is required",
            missing_keys=["DATABASE_URL"],
        )

    _db_pool = await create_pool(database_url, min_size=2, max_size=10)


async def close_db_pool():
    """Close the database connection pool.

    Should be called on application shutdown.
    """
    global _db_pool
    if _db_pool:
        await close_pool(_db_pool)
        _db_pool = None


def get_db_pool() -> asyncpg.Pool:
    """Get the database connection pool."""
    if _db_pool is None:
        raise RuntimeError("Database pool not initialized. Call init_db_pool() first.")
    return _db_pool


def get_optional_db_pool() -> Optional[asyncpg.Pool]:
    """Get the database connection pool, or None before startup."""
    return _db_pool


def get_config() -> BulkImportConfig:
    """Get the bulk import configuration (read from environment once)."""
    global _config
    if _config is None:
        _config = BulkImportConfig.from_env()
    return _config


def get_profile_locks() -> KeyedLock:
    """Get the process-wide profile creation lock table."""
    return _profile_locks


# ========== Dependency Functions ==========


def get_import_use_case() -> BulkImportDevicesUseCase:
    """Wire a bulk import use case against the shared pool."""
    pool = get_db_pool()
    config = get_config()

    profile_resolver = ResolveDeviceProfileUseCase(
        profile_repo=PostgresDeviceProfileRepository(pool),
        locks=get_profile_locks(),
        upgrade_policy=config.profile_upgrade_policy,
    )
    upsert_device = UpsertDeviceUseCase(
        device_repo=PostgresDeviceRepository(pool),
        field_mapper=DeviceFieldMapper(),
        credentials_builder=DeviceCredentialsBuilder(config.access_token_length),
        credentials_formatter=DeviceCredentialsFormatter(),
        profile_resolver=profile_resolver,
    )
    return BulkImportDevicesUseCase(
        row_parser=TabularRowParser(),
        upsert_device=upsert_device,
        max_workers=config.max_workers,
    )
