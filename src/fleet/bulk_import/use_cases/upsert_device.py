"""Upsert device use case.

Turns a single import row into a persisted device with credentials:

1. Map the row onto a new device
2. Build and normalise the credentials
3. Merge onto the existing device of the same name, if updates are allowed
4. Resolve the device profile from the (merged) device type
5. Save device and credentials in one transaction
"""

import logging
from uuid import UUID

from ..domain.entities import ColumnType, ImportedDevice
from ..domain.ports import (
    ICredentialsBuilder,
    ICredentialsFormatter,
    IDeviceRepository,
    IFieldMapper,
)
from ...core.exceptions import (
    CredentialValidationError,
    FleetError,
    PersistenceError,
)
from .resolve_profile import ResolveDeviceProfileUseCase

logger = logging.getLogger(__name__)


class UpsertDeviceUseCase:
    """Create or update one device from one import row."""

    def __init__(
        self,
        device_repo: IDeviceRepository,
        field_mapper: IFieldMapper,
        credentials_builder: ICredentialsBuilder,
        credentials_formatter: ICredentialsFormatter,
        profile_resolver: ResolveDeviceProfileUseCase,
    ):
        """Initialize the use case.

        Args:
            device_repo: Repository for devices and their credentials
            field_mapper: Maps row fields onto devices
            credentials_builder: Decides and builds the row's credentials
            credentials_formatter: Normalises credentials before saving
            profile_resolver: Finds or creates the device profile
        """
        self.devices = device_repo
        self.mapper = field_mapper
        self.credentials_builder = credentials_builder
        self.credentials_formatter = credentials_formatter
        self.profile_resolver = profile_resolver

    async def execute(
        self,
        tenant_id: UUID,
        fields: dict[ColumnType, str],
        update: bool = True,
    ) -> ImportedDevice:
        """Execute the use case.

        Args:
            tenant_id: Owning tenant
            fields: Column type to raw string value for one row
            update: Merge onto an existing device with the same name

        Returns:
            ImportedDevice describing the persisted device

        Raises:
            CredentialValidationError: If the credentials cannot be built
            ProfileResolutionError: If the profile cannot be resolved
            PersistenceError: If the device cannot be saved
        """
        device = self.mapper.map_to_entity(tenant_id, fields)

        try:
            credentials = self.credentials_builder.build(fields)
            credentials = self.credentials_formatter.format(credentials)
        except Exception as e:
            message = e.message if isinstance(e, FleetError) else str(e)
            raise CredentialValidationError(
                f"Invalid device credentials: {message}",
                value=getattr(e, "value", None),
                cause=e,
            )

        if not device.name:
            raise PersistenceError("Device name should be specified")

        old_device = None
        existing = await self.devices.find_by_name(tenant_id, device.name)
        if existing is not None and update:
            old_device = existing.snapshot()
            existing.update_from(device)
            device = existing

        resolution = await self.profile_resolver.execute(
            tenant_id, device.type, credentials.credentials_type
        )
        device.device_profile_id = resolution.profile.id

        try:
            saved = await self.devices.save_with_credentials(device, credentials)
        except PersistenceError:
            raise
        except FleetError as e:
            raise PersistenceError(
                f"Failed to save device '{device.name}': {e.message}", cause=e
            )
        except Exception as e:
            raise PersistenceError(f"Failed to save device '{device.name}': {e}", cause=e)

        logger.debug(
            f"{'Updated' if old_device else 'Created'} device '{saved.name}' "
            f"with {credentials.credentials_type.value} credentials"
        )

        return ImportedDevice(
            device=saved,
            credentials=credentials,
            profile=resolution.profile,
            updated=old_device is not None,
            old_device=old_device,
            profile_created=resolution.created,
            profile_upgraded=resolution.upgraded,
        )
