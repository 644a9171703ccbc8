#!/usr/bin/env python3
"""Exception Hierarchy for Fleet bulk device provisioning.

This module provides a structured exception hierarchy for handling errors
raised while importing devices: credential validation, profile resolution,
file parsing and database errors.

Design Principles:
    - All exceptions inherit from FleetError base class
    - Exceptions preserve context (original error, timestamps, details)
    - Exceptions are categorized by recoverability
    - Row-level errors carry a message that is safe to show per import line

Exception Hierarchy:
    FleetError (base)
    ├── ConfigurationError (unrecoverable - fix config)
    ├── ImportFileError (unrecoverable - fix the uploaded file/mapping)
    ├── CredentialValidationError (row fatal - fix the row)
    ├── ProfileResolutionError (row fails)
    └── DatabaseError (may be recoverable)
        ├── ConnectionPoolError
        ├── TransactionError
        └── PersistenceError
            └── IntegrityError

Author: Fleet Provisioning Team
"""
from datetime import datetime, timezone
from typing import Any, Optional

# ============================================
# Base Exception
# ============================================

class FleetError(Exception):
    """Base exception for all Fleet provisioning errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "INVALID_DEVICE_CREDENTIALS")
        details: Additional context as a dictionary
        timestamp: When the error occurred
        cause: The original exception that caused this error
        recoverable: Whether this error might be recoverable with retry
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__.upper()
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)
        self.cause = cause
        self.recoverable = recoverable

        # Chain the original exception if provided
        if cause:
            self.__cause__ = cause

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.insert(0, f"[{self.code}]")
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"({detail_str})")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "cause": str(self.cause) if self.cause else None,
        }


# ============================================
# Configuration Errors (Unrecoverable)
# ============================================

class ConfigurationError(FleetError):
    """Raised when configuration is missing or invalid.

    These errors require fixing configuration before retry.
    """

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list[str]] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


# ============================================
# Import Errors
# ============================================

class ImportFileError(FleetError):
    """Raised when an uploaded file or its column mapping cannot be read."""

    def __init__(
        self,
        message: str,
        filename: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if filename:
            details["filename"] = filename
        super().__init__(
            message,
            code="IMPORT_FILE_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


class CredentialValidationError(FleetError):
    """Raised when a row carries malformed or inconsistent credentials.

    Fatal to the row; the import continues with other rows.

    Attributes:
        value: The offending input value, when one can be named
    """

    def __init__(
        self,
        message: str,
        value: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if value is not None:
            details["value"] = value
        super().__init__(
            message,
            code="INVALID_DEVICE_CREDENTIALS",
            details=details,
            recoverable=False,
            **kwargs,
        )
        self.value = value


class ProfileResolutionError(FleetError):
    """Raised when a device profile cannot be read, created or upgraded."""

    def __init__(
        self,
        message: str,
        profile_name: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if profile_name:
            details["profile_name"] = profile_name
        super().__init__(
            message,
            code="PROFILE_RESOLUTION_ERROR",
            details=details,
            **kwargs,
        )
        self.profile_name = profile_name


# ============================================
# Database Errors
# ============================================

class DatabaseError(FleetError):
    """Base class for database-related errors."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class ConnectionPoolError(DatabaseError):
    """Raised when database connection pool is exhausted or unavailable."""

    def __init__(
        self,
        message: str = "Database connection pool error",
        **kwargs,
    ):
        super().__init__(message, code="CONNECTION_POOL_ERROR", **kwargs)


class TransactionError(DatabaseError):
    """Raised when database transaction fails."""

    def __init__(
        self,
        message: str = "Database transaction failed",
        operation: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        super().__init__(
            message,
            code="TRANSACTION_ERROR",
            details=details,
            **kwargs,
        )


class PersistenceError(DatabaseError):
    """Raised when a device and its credentials cannot be saved."""

    def __init__(
        self,
        message: str = "Failed to save device",
        **kwargs,
    ):
        kwargs.setdefault("code", "PERSISTENCE_ERROR")
        super().__init__(message, **kwargs)


class IntegrityError(PersistenceError):
    """Raised when database integrity constraint is violated."""

    def __init__(
        self,
        message: str = "Database integrity error",
        constraint: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if constraint:
            details["constraint"] = constraint
        super().__init__(
            message,
            code="INTEGRITY_ERROR",
            details=details,
            recoverable=False,  # Usually need to fix data
            **kwargs,
        )


# ============================================
# Exports
# ============================================

__all__ = [
    # Base
    "FleetError",
    # Configuration
    "ConfigurationError",
    # Import
    "ImportFileError",
    "CredentialValidationError",
    "ProfileResolutionError",
    # Database
    "DatabaseError",
    "ConnectionPoolError",
    "TransactionError",
    "PersistenceError",
    "IntegrityError",
]
