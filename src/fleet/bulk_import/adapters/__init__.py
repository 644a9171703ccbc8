"""Infrastructure adapters for bulk device import.

These adapters implement the port interfaces defined in the domain layer,
connecting the import pipeline to PostgreSQL and to CSV/Excel files.
"""

from .credentials_builder import (
    CREDENTIALS_PRIORITY,
    DeviceCredentialsBuilder,
    detect_credentials_type,
    generate_access_token,
    validate_lwm2m_security_mode,
)
from .credentials_formatter import DeviceCredentialsFormatter
from .field_mapper import DeviceFieldMapper
from .postgres_device_repo import PostgresDeviceRepository
from .postgres_profile_repo import PostgresDeviceProfileRepository
from .row_parser import TabularRowParser

__all__ = [
    "CREDENTIALS_PRIORITY",
    "DeviceCredentialsBuilder",
    "DeviceCredentialsFormatter",
    "DeviceFieldMapper",
    "PostgresDeviceProfileRepository",
    "PostgresDeviceRepository",
    "TabularRowParser",
    "detect_credentials_type",
    "generate_access_token",
    "validate_lwm2m_security_mode",
]
