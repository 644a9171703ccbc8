"""Domain entities for bulk device import.

These are pure data structures with no infrastructure dependencies.
They represent the devices, profiles and credentials produced from
tabular import rows, plus the per-row and per-job results.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID


# ============================================
# Import Columns
# ============================================


class ColumnType(str, Enum):
    """Column tags recognised in an import mapping."""

    NAME = "NAME"
    TYPE = "TYPE"
    LABEL = "LABEL"
    DESCRIPTION = "DESCRIPTION"
    IS_GATEWAY = "IS_GATEWAY"

    ACCESS_TOKEN = "ACCESS_TOKEN"
    X509 = "X509"
    MQTT_CLIENT_ID = "MQTT_CLIENT_ID"
    MQTT_USER_NAME = "MQTT_USER_NAME"
    MQTT_PASSWORD = "MQTT_PASSWORD"

    LWM2M_CLIENT_ENDPOINT = "LWM2M_CLIENT_ENDPOINT"
    LWM2M_CLIENT_SECURITY_CONFIG_MODE = "LWM2M_CLIENT_SECURITY_CONFIG_MODE"
    LWM2M_CLIENT_IDENTITY = "LWM2M_CLIENT_IDENTITY"
    LWM2M_CLIENT_KEY = "LWM2M_CLIENT_KEY"
    LWM2M_CLIENT_CERT = "LWM2M_CLIENT_CERT"
    LWM2M_BOOTSTRAP_SERVER_SECURITY_MODE = "LWM2M_BOOTSTRAP_SERVER_SECURITY_MODE"
    LWM2M_BOOTSTRAP_SERVER_PUBLIC_KEY_OR_ID = "LWM2M_BOOTSTRAP_SERVER_PUBLIC_KEY_OR_ID"
    LWM2M_BOOTSTRAP_SERVER_SECRET_KEY = "LWM2M_BOOTSTRAP_SERVER_SECRET_KEY"
    LWM2M_SERVER_SECURITY_MODE = "LWM2M_SERVER_SECURITY_MODE"
    LWM2M_SERVER_CLIENT_PUBLIC_KEY_OR_ID = "LWM2M_SERVER_CLIENT_PUBLIC_KEY_OR_ID"
    LWM2M_SERVER_CLIENT_SECRET_KEY = "LWM2M_SERVER_CLIENT_SECRET_KEY"

    @property
    def key(self) -> Optional[str]:
        """JSON key this column is written under in a credentials payload."""
        return _COLUMN_KEYS.get(self)

    @property
    def default_value(self) -> Optional[str]:
        """Value used when the column is absent from a row."""
        return _COLUMN_DEFAULTS.get(self)


class Lwm2mSecurityMode(str, Enum):
    """LwM2M security modes."""

    NO_SEC = "NO_SEC"
    PSK = "PSK"
    RPK = "RPK"
    X509 = "X509"


_COLUMN_KEYS: dict[ColumnType, str] = {
    ColumnType.LWM2M_CLIENT_ENDPOINT: "endpoint",
    ColumnType.LWM2M_CLIENT_SECURITY_CONFIG_MODE: "securityConfigClientMode",
    ColumnType.LWM2M_CLIENT_IDENTITY: "identity",
    ColumnType.LWM2M_CLIENT_KEY: "key",
    ColumnType.LWM2M_CLIENT_CERT: "cert",
    ColumnType.LWM2M_BOOTSTRAP_SERVER_SECURITY_MODE: "securityMode",
    ColumnType.LWM2M_BOOTSTRAP_SERVER_PUBLIC_KEY_OR_ID: "clientPublicKeyOrId",
    ColumnType.LWM2M_BOOTSTRAP_SERVER_SECRET_KEY: "clientSecretKey",
    ColumnType.LWM2M_SERVER_SECURITY_MODE: "securityMode",
    ColumnType.LWM2M_SERVER_CLIENT_PUBLIC_KEY_OR_ID: "clientPublicKeyOrId",
    ColumnType.LWM2M_SERVER_CLIENT_SECRET_KEY: "clientSecretKey",
}

_COLUMN_DEFAULTS: dict[ColumnType, str] = {
    ColumnType.LWM2M_CLIENT_SECURITY_CONFIG_MODE: Lwm2mSecurityMode.NO_SEC.value,
    ColumnType.LWM2M_BOOTSTRAP_SERVER_SECURITY_MODE: Lwm2mSecurityMode.NO_SEC.value,
    ColumnType.LWM2M_SERVER_SECURITY_MODE: Lwm2mSecurityMode.NO_SEC.value,
}


@dataclass
class ImportRow:
    """A single parsed line of an import file; one row is one device."""

    line_number: int
    fields: dict[ColumnType, str] = field(default_factory=dict)


@dataclass
class ColumnMapping:
    """How the columns of an import file map onto column types.

    ``columns[i]`` is the type of the i-th column of every line.
    """

    columns: list[ColumnType]
    delimiter: str = ","
    header: bool = True
    update: bool = True


# ============================================
# Device
# ============================================


def parse_bool(value: Any) -> bool:
    """Booleans pass through; anything else is True only if it reads "true"."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


@dataclass
class DeviceMetadata:
    """Typed metadata block of a device.

    ``extra`` keeps keys written by other subsystems so that an import
    never drops them.
    """

    description: Optional[str] = None
    gateway: Optional[bool] = None
    extra: dict[str, Any] = field(default_factory=dict)

    def merge(self, other: "DeviceMetadata") -> None:
        """Merge set fields of ``other`` into this block."""
        if other.description is not None:
            self.description = other.description
        if other.gateway is not None:
            self.gateway = other.gateway
        self.extra.update(other.extra)

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        if self.description is not None:
            data["description"] = self.description
        if self.gateway is not None:
            data["gateway"] = self.gateway
        return data

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "DeviceMetadata":
        extra = dict(data or {})
        description = extra.pop("description", None)
        gateway = extra.pop("gateway", None)
        return cls(
            description=description,
            gateway=parse_bool(gateway) if gateway is not None else None,
            extra=extra,
        )


@dataclass
class Device:
    """Domain entity representing a provisioned device.

    Identity is (tenant_id, name). ``id`` is None until the device is
    persisted.
    """

    tenant_id: UUID
    name: Optional[str] = None
    type: Optional[str] = None
    label: Optional[str] = None
    metadata: Optional[DeviceMetadata] = None

    id: Optional[UUID] = None
    device_profile_id: Optional[UUID] = None
    created_at: Optional[datetime] = None

    @property
    def is_new(self) -> bool:
        """Check if device has not been persisted yet."""
        return self.id is None

    def update_from(self, other: "Device") -> None:
        """Merge the mapped fields of ``other`` onto this device.

        Fields that ``other`` leaves unset are preserved.
        """
        if other.name is not None:
            self.name = other.name
        if other.type is not None:
            self.type = other.type
        if other.label is not None:
            self.label = other.label
        if other.metadata is not None:
            if self.metadata is None:
                self.metadata = DeviceMetadata()
            self.metadata.merge(other.metadata)

    def snapshot(self) -> "Device":
        """Return an independent copy of this device."""
        return copy.deepcopy(self)


# ============================================
# Device Profile
# ============================================


class DeviceProfileType(str, Enum):
    """Device profile categories."""

    DEFAULT = "DEFAULT"


class TransportType(str, Enum):
    """Transport protocol family a profile targets."""

    DEFAULT = "DEFAULT"
    MQTT = "MQTT"
    COAP = "COAP"
    LWM2M = "LWM2M"
    SNMP = "SNMP"


class ProvisionType(str, Enum):
    """Whether and how a profile allows device self-registration."""

    DISABLED = "DISABLED"
    ALLOW_CREATE_NEW_DEVICES = "ALLOW_CREATE_NEW_DEVICES"
    CHECK_PRE_PROVISIONED_DEVICES = "CHECK_PRE_PROVISIONED_DEVICES"


def default_profile_configuration() -> dict[str, Any]:
    return {"type": DeviceProfileType.DEFAULT.value}


def default_transport_configuration(transport_type: TransportType) -> dict[str, Any]:
    """Fresh transport configuration for a transport type."""
    if transport_type == TransportType.LWM2M:
        return {
            "type": TransportType.LWM2M.value,
            "observeAttr": {
                "observe": [],
                "attribute": [],
                "telemetry": [],
                "keyName": {},
                "attributeLwm2m": {},
            },
            "bootstrap": [],
            "clientLwM2mSettings": {
                "clientOnlyObserveAfterConnect": 1,
                "fwUpdateStrategy": 1,
                "swUpdateStrategy": 1,
            },
        }
    return {"type": transport_type.value}


def disabled_provision_configuration() -> dict[str, Any]:
    return {"type": ProvisionType.DISABLED.value, "provisionDeviceSecret": None}


@dataclass
class DeviceProfileData:
    """Configuration payload of a device profile."""

    configuration: dict[str, Any] = field(default_factory=default_profile_configuration)
    transport_configuration: dict[str, Any] = field(
        default_factory=lambda: default_transport_configuration(TransportType.DEFAULT)
    )
    provision_configuration: dict[str, Any] = field(
        default_factory=disabled_provision_configuration
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "configuration": self.configuration,
            "transportConfiguration": self.transport_configuration,
            "provisionConfiguration": self.provision_configuration,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "DeviceProfileData":
        data = data or {}
        return cls(
            configuration=data.get("configuration") or default_profile_configuration(),
            transport_configuration=data.get("transportConfiguration")
            or default_transport_configuration(TransportType.DEFAULT),
            provision_configuration=data.get("provisionConfiguration")
            or disabled_provision_configuration(),
        )


@dataclass
class DeviceProfile:
    """Domain entity representing a device profile.

    Identity is (tenant_id, name); at most one profile exists per identity.
    """

    tenant_id: UUID
    name: str
    type: DeviceProfileType = DeviceProfileType.DEFAULT
    transport_type: TransportType = TransportType.DEFAULT
    provision_type: ProvisionType = ProvisionType.DISABLED
    profile_data: DeviceProfileData = field(default_factory=DeviceProfileData)
    is_default: bool = False

    id: Optional[UUID] = None
    created_at: Optional[datetime] = None

    @property
    def is_lwm2m(self) -> bool:
        return self.transport_type == TransportType.LWM2M

    def upgrade_to_lwm2m(self) -> TransportType:
        """Switch this profile to the LWM2M transport in place.

        Returns:
            The transport type the profile had before the upgrade
        """
        previous = self.transport_type
        self.transport_type = TransportType.LWM2M
        self.profile_data.transport_configuration = default_transport_configuration(
            TransportType.LWM2M
        )
        return previous

    @classmethod
    def new_lwm2m(cls, tenant_id: UUID, name: str) -> "DeviceProfile":
        """Build an unsaved LWM2M profile with provisioning disabled."""
        return cls(
            tenant_id=tenant_id,
            name=name,
            type=DeviceProfileType.DEFAULT,
            transport_type=TransportType.LWM2M,
            provision_type=ProvisionType.DISABLED,
            profile_data=DeviceProfileData(
                configuration=default_profile_configuration(),
                transport_configuration=default_transport_configuration(TransportType.LWM2M),
                provision_configuration=disabled_provision_configuration(),
            ),
        )

    @classmethod
    def new_default(cls, tenant_id: UUID, name: str) -> "DeviceProfile":
        """Build an unsaved profile with the default transport."""
        return cls(tenant_id=tenant_id, name=name)


# ============================================
# Device Credentials
# ============================================


class CredentialsType(str, Enum):
    """Authentication scheme a device uses to connect."""

    ACCESS_TOKEN = "ACCESS_TOKEN"
    X509_CERTIFICATE = "X509_CERTIFICATE"
    MQTT_BASIC = "MQTT_BASIC"
    LWM2M_CREDENTIALS = "LWM2M_CREDENTIALS"


@dataclass
class DeviceCredentials:
    """Credentials of a single device (1:1 with Device).

    ``credentials_id`` is the lookup key (token, certificate hash, ...);
    ``credentials_value`` holds the type-specific payload.
    """

    credentials_type: CredentialsType
    credentials_id: Optional[str] = None
    credentials_value: Optional[str] = None

    id: Optional[UUID] = None
    device_id: Optional[UUID] = None


# ============================================
# Results
# ============================================


@dataclass
class ImportedDevice:
    """Outcome of importing a single row."""

    device: Device
    credentials: DeviceCredentials
    profile: DeviceProfile
    updated: bool = False
    old_device: Optional[Device] = None
    profile_created: bool = False
    profile_upgraded: bool = False


@dataclass
class BulkImportResult:
    """Result of a bulk import job."""

    created: int = 0
    updated: int = 0
    errors: int = 0
    errors_list: list[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def total(self) -> int:
        return self.created + self.updated + self.errors

    @property
    def duration_seconds(self) -> Optional[float]:
        """Calculate import duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "created": self.created,
            "updated": self.updated,
            "errors": self.errors,
            "errorsList": list(self.errors_list),
        }
