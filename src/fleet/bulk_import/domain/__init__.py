"""Domain layer - Pure domain entities and port interfaces.

This layer contains:
- Entities: Devices, profiles, credentials and import results
- Ports: Abstract interfaces defining contracts for adapters

No infrastructure dependencies allowed in this layer.
"""

from .entities import (
    BulkImportResult,
    ColumnMapping,
    ColumnType,
    CredentialsType,
    Device,
    DeviceCredentials,
    DeviceMetadata,
    DeviceProfile,
    DeviceProfileData,
    DeviceProfileType,
    ImportedDevice,
    ImportRow,
    Lwm2mSecurityMode,
    ProvisionType,
    TransportType,
)
from .ports import (
    ICredentialsBuilder,
    ICredentialsFormatter,
    IDeviceProfileRepository,
    IDeviceRepository,
    IFieldMapper,
    IRowParser,
)

__all__ = [
    # Import entities
    "ColumnMapping",
    "ColumnType",
    "ImportRow",
    # Device entities
    "Device",
    "DeviceMetadata",
    "DeviceCredentials",
    "CredentialsType",
    "Lwm2mSecurityMode",
    # Profile entities
    "DeviceProfile",
    "DeviceProfileData",
    "DeviceProfileType",
    "ProvisionType",
    "TransportType",
    # Result entities
    "BulkImportResult",
    "ImportedDevice",
    # Ports
    "ICredentialsBuilder",
    "ICredentialsFormatter",
    "IDeviceProfileRepository",
    "IDeviceRepository",
    "IFieldMapper",
    "IRowParser",
]
