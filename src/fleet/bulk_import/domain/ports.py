"""Port interfaces for bulk device import.

Ports define the contracts between the domain/use cases and the infrastructure.
These are abstract base classes that adapters must implement.

Following the Hexagonal Architecture (Ports and Adapters) pattern:
- Ports are interfaces defined in the domain layer
- Adapters implement these ports in the adapters layer
- Use cases depend only on ports, not concrete implementations
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from .entities import (
    ColumnMapping,
    ColumnType,
    Device,
    DeviceCredentials,
    DeviceProfile,
    ImportRow,
)


class IDeviceRepository(ABC):
    """Port for device persistence operations."""

    @abstractmethod
    async def find_by_name(self, tenant_id: UUID, name: str) -> Optional[Device]:
        """Find a device by its natural identity.

        Args:
            tenant_id: Owning tenant
            name: Device name (unique per tenant)

        Returns:
            The device, or None if absent
        """
        ...

    @abstractmethod
    async def save_with_credentials(
        self,
        device: Device,
        credentials: DeviceCredentials,
    ) -> Device:
        """Create or update a device together with its credentials.

        Both are written in one transaction: either both are saved or
        neither is.

        Args:
            device: Device to save (``id`` None means create)
            credentials: Normalised credentials for the device

        Returns:
            The persisted device

        Raises:
            PersistenceError: If the pair cannot be saved
        """
        ...


class IDeviceProfileRepository(ABC):
    """Port for device profile persistence operations."""

    @abstractmethod
    async def find_by_name(self, tenant_id: UUID, name: str) -> Optional[DeviceProfile]:
        """Find a profile by (tenant_id, name), or None."""
        ...

    @abstractmethod
    async def save(self, profile: DeviceProfile) -> DeviceProfile:
        """Create (``id`` None) or update a profile.

        Returns:
            The persisted profile
        """
        ...

    @abstractmethod
    async def insert_if_absent(self, profile: DeviceProfile) -> tuple[DeviceProfile, bool]:
        """Insert a new profile unless one with its (tenant_id, name) exists.

        Returns:
            (stored profile, inserted). When ``inserted`` is False the stored
            profile is the pre-existing one and may differ from ``profile``
            in every field, transport type included.
        """
        ...

    @abstractmethod
    async def find_default(self, tenant_id: UUID) -> Optional[DeviceProfile]:
        """Find the tenant's designated default profile, or None."""
        ...

    @abstractmethod
    async def find_or_create_by_name(self, tenant_id: UUID, name: str) -> DeviceProfile:
        """Return the profile with this name, creating a default-transport one if absent."""
        ...


class IFieldMapper(ABC):
    """Port for mapping import row fields onto device entities."""

    @abstractmethod
    def apply_fields(self, device: Device, fields: dict[ColumnType, str]) -> Device:
        """Populate ``device`` from the row fields and return it."""
        ...

    @abstractmethod
    def map_to_entity(self, tenant_id: UUID, fields: dict[ColumnType, str]) -> Device:
        """Build a new device for ``tenant_id`` from the row fields."""
        ...


class ICredentialsBuilder(ABC):
    """Port for deriving device credentials from import row fields."""

    @abstractmethod
    def build(self, fields: dict[ColumnType, str]) -> DeviceCredentials:
        """Decide the credentials type and build its payload.

        Raises:
            Exception: Any failure; callers wrap it as a credentials error
        """
        ...


class ICredentialsFormatter(ABC):
    """Port for canonicalising credentials before persistence."""

    @abstractmethod
    def format(self, credentials: DeviceCredentials) -> DeviceCredentials:
        """Normalise credentials in place and return them.

        Raises:
            CredentialValidationError: If the credentials are inconsistent
        """
        ...


class IRowParser(ABC):
    """Port for turning an uploaded file into import rows."""

    @abstractmethod
    def parse(self, file_content: bytes, mapping: ColumnMapping) -> list[ImportRow]:
        """Parse a CSV or Excel file according to the column mapping.

        Raises:
            ImportFileError: If the file cannot be read
        """
        ...
