"""Resolve device profile use case.

Chooses the device profile a row's device is attached to:

- LWM2M credentials: the profile named after the device type, created with
  the LWM2M transport if absent and upgraded to it if it has another one
- Any other credentials with a device type: the profile of that name,
  created with the default transport if absent
- No device type: the tenant's default profile

LWM2M profiles are created under a per-(tenant, name) lock with a second
lookup inside it, so concurrent rows naming the same missing profile
create it once. The insert itself is insert-if-absent: a profile that
appeared anyway (a non-LWM2M row, another process) goes through the same
upgrade path as one found by the first lookup.
"""

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from ..config import ProfileUpgradePolicy
from ..domain.entities import CredentialsType, DeviceProfile, TransportType
from ..domain.ports import IDeviceProfileRepository
from ...core.exceptions import FleetError, ProfileResolutionError
from ...core.locks import KeyedLock

logger = logging.getLogger(__name__)


@dataclass
class ProfileResolution:
    """Resolved profile and what had to be done to get it."""

    profile: DeviceProfile
    created: bool = False
    upgraded: bool = False
    previous_transport: Optional[TransportType] = None


class ResolveDeviceProfileUseCase:
    """Find, create or upgrade the device profile for an import row."""

    def __init__(
        self,
        profile_repo: IDeviceProfileRepository,
        locks: Optional[KeyedLock] = None,
        upgrade_policy: ProfileUpgradePolicy = ProfileUpgradePolicy.UPGRADE,
    ):
        """Initialize the use case.

        Args:
            profile_repo: Repository for device profiles
            locks: Lock table guarding LWM2M profile creation; share one
                instance between all rows of all concurrent imports
            upgrade_policy: Handling of existing non-LWM2M profiles
        """
        self.profiles = profile_repo
        self.locks = locks if locks is not None else KeyedLock()
        self.upgrade_policy = upgrade_policy

    async def execute(
        self,
        tenant_id: UUID,
        device_type: Optional[str],
        credentials_type: CredentialsType,
    ) -> ProfileResolution:
        """Execute the use case.

        Args:
            tenant_id: Owning tenant
            device_type: Device type, which doubles as the profile name
            credentials_type: Credentials type decided for the row

        Returns:
            ProfileResolution with the profile to attach

        Raises:
            ProfileResolutionError: If the profile cannot be found or saved
        """
        try:
            if credentials_type == CredentialsType.LWM2M_CREDENTIALS:
                return await self._resolve_lwm2m(tenant_id, device_type)

            if device_type:
                profile = await self.profiles.find_or_create_by_name(tenant_id, device_type)
                return ProfileResolution(profile=profile)

            profile = await self.profiles.find_default(tenant_id)
            if profile is None:
                raise ProfileResolutionError(
                    f"Tenant {tenant_id} has no default device profile",
                    details={"tenant_id": str(tenant_id)},
                )
            return ProfileResolution(profile=profile)

        except ProfileResolutionError:
            raise
        except FleetError as e:
            raise ProfileResolutionError(
                f"Failed to resolve device profile '{device_type}': {e.message}",
                profile_name=device_type,
                cause=e,
            )
        except Exception as e:
            raise ProfileResolutionError(
                f"Failed to resolve device profile '{device_type}': {e}",
                profile_name=device_type,
                cause=e,
            )

    async def _resolve_lwm2m(
        self, tenant_id: UUID, name: Optional[str]
    ) -> ProfileResolution:
        if not name:
            raise ProfileResolutionError("Device type is required for LwM2M devices")

        profile = await self.profiles.find_by_name(tenant_id, name)
        if profile is None:
            async with self.locks.acquire((tenant_id, name)):
                profile = await self.profiles.find_by_name(tenant_id, name)
                if profile is None:
                    profile, inserted = await self.profiles.insert_if_absent(
                        DeviceProfile.new_lwm2m(tenant_id, name)
                    )
                    if inserted:
                        logger.info(
                            f"Created LwM2M device profile '{name}' for tenant {tenant_id}"
                        )
                        return ProfileResolution(profile=profile, created=True)
            # Created elsewhere after our first lookup, possibly with another transport

        if profile.is_lwm2m:
            return ProfileResolution(profile=profile)
        return await self._upgrade(profile)

    async def _upgrade(self, profile: DeviceProfile) -> ProfileResolution:
        if self.upgrade_policy == ProfileUpgradePolicy.REJECT:
            raise ProfileResolutionError(
                f"Device profile '{profile.name}' uses transport "
                f"{profile.transport_type.value}, not LWM2M",
                profile_name=profile.name,
            )

        previous = profile.upgrade_to_lwm2m()
        profile = await self.profiles.save(profile)

        logger.warning(
            f"Switched device profile '{profile.name}' transport "
            f"from {previous.value} to LWM2M"
        )
        return ProfileResolution(profile=profile, upgraded=True, previous_transport=previous)
