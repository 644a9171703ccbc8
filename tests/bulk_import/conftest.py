"""Shared fixtures for bulk import tests.

The in-memory repositories yield to the event loop on every call so that
concurrently running rows interleave the way they would against a real
database.
"""

import asyncio
import copy
from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import UUID, uuid4

import pytest

from src.fleet.bulk_import.adapters import (
    DeviceCredentialsBuilder,
    DeviceCredentialsFormatter,
    DeviceFieldMapper,
    TabularRowParser,
)
from src.fleet.bulk_import.config import ProfileUpgradePolicy
from src.fleet.bulk_import.domain.entities import (
    Device,
    DeviceCredentials,
    DeviceProfile,
)
from src.fleet.bulk_import.domain.ports import (
    IDeviceProfileRepository,
    IDeviceRepository,
)
from src.fleet.bulk_import.use_cases import (
    BulkImportDevicesUseCase,
    ResolveDeviceProfileUseCase,
    UpsertDeviceUseCase,
)
from src.fleet.core.exceptions import IntegrityError
from src.fleet.core.locks import KeyedLock


class InMemoryDeviceRepository(IDeviceRepository):
    """Mock implementation of IDeviceRepository for testing."""

    def __init__(self, raise_error: Optional[Exception] = None):
        self.devices: dict[tuple[UUID, str], Device] = {}
        self.credentials: dict[UUID, DeviceCredentials] = {}
        self.raise_error = raise_error
        self.save_count = 0

    async def find_by_name(self, tenant_id: UUID, name: str) -> Optional[Device]:
        await asyncio.sleep(0)
        device = self.devices.get((tenant_id, name))
        return copy.deepcopy(device) if device else None

    async def save_with_credentials(
        self,
        device: Device,
        credentials: DeviceCredentials,
    ) -> Device:
        await asyncio.sleep(0)
        if self.raise_error:
            raise self.raise_error

        key = (device.tenant_id, device.name)
        if device.is_new:
            if key in self.devices:
                raise IntegrityError(
                    f"Duplicate entry: device '{device.name}' already exists",
                    constraint="devices_tenant_name_key",
                )
            saved = copy.deepcopy(device)
            saved.id = uuid4()
            saved.created_at = datetime.now(timezone.utc)
        else:
            saved = copy.deepcopy(device)

        self.devices[key] = saved
        self.credentials[saved.id] = copy.deepcopy(credentials)
        self.save_count += 1
        return copy.deepcopy(saved)


class InMemoryDeviceProfileRepository(IDeviceProfileRepository):
    """Mock implementation of IDeviceProfileRepository for testing.

    Inserts are insert-if-absent on (tenant_id, name), as in Postgres.
    ``insert_attempts`` records every insert, including the ones that found
    the name taken, so uncoordinated creation attempts stay visible.
    ``before_insert`` runs just before the existence check of an insert and
    can plant a conflicting profile the way a concurrent writer would.
    """

    def __init__(self, raise_error: Optional[Exception] = None):
        self.profiles: dict[tuple[UUID, str], DeviceProfile] = {}
        self.created: list[DeviceProfile] = []
        self.updated: list[DeviceProfile] = []
        self.insert_attempts: list[DeviceProfile] = []
        self.before_insert: Optional[Callable[[DeviceProfile], None]] = None
        self.raise_error = raise_error

    def add(self, profile: DeviceProfile) -> DeviceProfile:
        profile.id = profile.id or uuid4()
        self.profiles[(profile.tenant_id, profile.name)] = copy.deepcopy(profile)
        return profile

    async def find_by_name(self, tenant_id: UUID, name: str) -> Optional[DeviceProfile]:
        await asyncio.sleep(0)
        if self.raise_error:
            raise self.raise_error
        profile = self.profiles.get((tenant_id, name))
        return copy.deepcopy(profile) if profile else None

    async def save(self, profile: DeviceProfile) -> DeviceProfile:
        if profile.id is None:
            saved, _ = await self.insert_if_absent(profile)
            return saved

        await asyncio.sleep(0)
        if self.raise_error:
            raise self.raise_error

        saved = copy.deepcopy(profile)
        self.updated.append(saved)
        self.profiles[(saved.tenant_id, saved.name)] = saved
        return copy.deepcopy(saved)

    async def insert_if_absent(self, profile: DeviceProfile) -> tuple[DeviceProfile, bool]:
        await asyncio.sleep(0)
        if self.raise_error:
            raise self.raise_error

        self.insert_attempts.append(copy.deepcopy(profile))
        if self.before_insert:
            self.before_insert(profile)

        key = (profile.tenant_id, profile.name)
        if key in self.profiles:
            return copy.deepcopy(self.profiles[key]), False

        saved = copy.deepcopy(profile)
        saved.id = uuid4()
        saved.created_at = datetime.now(timezone.utc)
        self.created.append(saved)
        self.profiles[key] = saved
        return copy.deepcopy(saved), True

    async def find_default(self, tenant_id: UUID) -> Optional[DeviceProfile]:
        await asyncio.sleep(0)
        for profile in self.profiles.values():
            if profile.tenant_id == tenant_id and profile.is_default:
                return copy.deepcopy(profile)
        return None

    async def find_or_create_by_name(self, tenant_id: UUID, name: str) -> DeviceProfile:
        profile = await self.find_by_name(tenant_id, name)
        if profile is None:
            profile, _ = await self.insert_if_absent(DeviceProfile.new_default(tenant_id, name))
        return profile


@pytest.fixture
def tenant_id() -> UUID:
    return UUID("11111111-1111-1111-1111-111111111111")


@pytest.fixture
def device_repo() -> InMemoryDeviceRepository:
    return InMemoryDeviceRepository()


@pytest.fixture
def profile_repo(tenant_id) -> InMemoryDeviceProfileRepository:
    """Profile repository holding the tenant's default profile."""
    repo = InMemoryDeviceProfileRepository()
    repo.add(DeviceProfile(tenant_id=tenant_id, name="default", is_default=True))
    return repo


@pytest.fixture
def profile_resolver(profile_repo) -> ResolveDeviceProfileUseCase:
    return ResolveDeviceProfileUseCase(
        profile_repo=profile_repo,
        locks=KeyedLock(),
        upgrade_policy=ProfileUpgradePolicy.UPGRADE,
    )


@pytest.fixture
def upsert_use_case(device_repo, profile_resolver) -> UpsertDeviceUseCase:
    return UpsertDeviceUseCase(
        device_repo=device_repo,
        field_mapper=DeviceFieldMapper(),
        credentials_builder=DeviceCredentialsBuilder(),
        credentials_formatter=DeviceCredentialsFormatter(),
        profile_resolver=profile_resolver,
    )


@pytest.fixture
def import_use_case(upsert_use_case) -> BulkImportDevicesUseCase:
    return BulkImportDevicesUseCase(
        row_parser=TabularRowParser(),
        upsert_device=upsert_use_case,
        max_workers=4,
    )
