"""Shared infrastructure for Fleet provisioning.

Exceptions:
    FleetError: Base exception for all Fleet errors
    ConfigurationError: Missing or invalid configuration
    ImportFileError: Unreadable import file or mapping
    CredentialValidationError: Malformed device credentials in a row
    ProfileResolutionError: Device profile lookup/creation failures
    DatabaseError: Database operation failures
    PersistenceError: Device/credentials save failures

Database:
    create_pool / close_pool: asyncpg pool lifecycle
    database_transaction: Transaction with commit/rollback

Concurrency:
    KeyedLock: asyncio lock striped by key

API:
    sanitize_error_message: Redact secrets from client-facing errors
"""
from .database import (
    check_database_health,
    close_pool,
    convert_db_exception,
    create_pool,
    database_connection,
    database_transaction,
)
from .error_sanitizer import sanitize_error_message
from .exceptions import (
    ConfigurationError,
    ConnectionPoolError,
    CredentialValidationError,
    DatabaseError,
    FleetError,
    ImportFileError,
    IntegrityError,
    PersistenceError,
    ProfileResolutionError,
    TransactionError,
)
from .locks import KeyedLock

__all__ = [
    # Exceptions
    "FleetError",
    "ConfigurationError",
    "ImportFileError",
    "CredentialValidationError",
    "ProfileResolutionError",
    "DatabaseError",
    "ConnectionPoolError",
    "TransactionError",
    "PersistenceError",
    "IntegrityError",
    # Database
    "check_database_health",
    "close_pool",
    "convert_db_exception",
    "create_pool",
    "database_connection",
    "database_transaction",
    # Concurrency
    "KeyedLock",
    # API
    "sanitize_error_message",
]
