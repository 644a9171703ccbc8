"""PostgreSQL adapter for device profile repository.

This adapter implements IDeviceProfileRepository using asyncpg.
Profile creation is insert-if-absent on (tenant_id, name): a concurrent
creator in another process makes the insert a no-op and the existing row is
returned instead.
"""

import json
import logging
from typing import Any, Optional
from uuid import UUID

import asyncpg

from ..domain.entities import (
    DeviceProfile,
    DeviceProfileData,
    DeviceProfileType,
    ProvisionType,
    TransportType,
)
from ..domain.ports import IDeviceProfileRepository
from ...core.database import database_connection, database_transaction

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = """
    id, tenant_id, name, type, transport_type, provision_type,
    profile_data, is_default, created_at
"""


class PostgresDeviceProfileRepository(IDeviceProfileRepository):
    """PostgreSQL implementation of IDeviceProfileRepository."""

    def __init__(self, pool: asyncpg.Pool):
        """Initialize with database connection pool.

        Args:
            pool: asyncpg connection pool
        """
        self.pool = pool

    async def find_by_name(self, tenant_id: UUID, name: str) -> Optional[DeviceProfile]:
        """Find a profile by tenant and name."""
        async with database_connection(self.pool) as conn:
            row = await conn.fetchrow(
                f"""
                SELECT {PROFILE_COLUMNS}
                FROM device_profiles
                WHERE tenant_id = $1 AND name = $2
                """,
                tenant_id,
                name,
            )

            return self._row_to_profile(row) if row else None

    async def find_default(self, tenant_id: UUID) -> Optional[DeviceProfile]:
        """Find the tenant's default profile."""
        async with database_connection(self.pool) as conn:
            row = await conn.fetchrow(
                f"""
                SELECT {PROFILE_COLUMNS}
                FROM device_profiles
                WHERE tenant_id = $1 AND is_default
                LIMIT 1
                """,
                tenant_id,
            )

            return self._row_to_profile(row) if row else None

    async def save(self, profile: DeviceProfile) -> DeviceProfile:
        """Insert a new profile (if absent) or update an existing one."""
        if profile.id is None:
            saved, _ = await self.insert_if_absent(profile)
            return saved

        async with database_transaction(self.pool) as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE device_profiles SET
                    name = $2,
                    type = $3,
                    transport_type = $4,
                    provision_type = $5,
                    profile_data = $6::jsonb,
                    is_default = $7
                WHERE id = $1
                RETURNING {PROFILE_COLUMNS}
                """,
                profile.id,
                profile.name,
                profile.type.value,
                profile.transport_type.value,
                profile.provision_type.value,
                json.dumps(profile.profile_data.to_dict()),
                profile.is_default,
            )

        if row is None:
            raise LookupError(f"Device profile '{profile.name}' no longer exists")
        return self._row_to_profile(row)

    async def insert_if_absent(self, profile: DeviceProfile) -> tuple[DeviceProfile, bool]:
        """Insert the profile unless (tenant_id, name) is taken.

        A profile created concurrently elsewhere, by another process or by
        a non-LWM2M row of this one, is read back and returned as is.
        """
        async with database_transaction(self.pool) as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO device_profiles (
                    tenant_id, name, type, transport_type, provision_type,
                    profile_data, is_default
                ) VALUES ($1, $2, $3, $4, $5, $6::jsonb, $7)
                ON CONFLICT (tenant_id, name) DO NOTHING
                RETURNING {PROFILE_COLUMNS}
                """,
                profile.tenant_id,
                profile.name,
                profile.type.value,
                profile.transport_type.value,
                profile.provision_type.value,
                json.dumps(profile.profile_data.to_dict()),
                profile.is_default,
            )
            if row is not None:
                return self._row_to_profile(row), True

            logger.debug(f"Profile '{profile.name}' already exists, re-reading")
            row = await conn.fetchrow(
                f"""
                SELECT {PROFILE_COLUMNS}
                FROM device_profiles
                WHERE tenant_id = $1 AND name = $2
                """,
                profile.tenant_id,
                profile.name,
            )

        if row is None:
            raise LookupError(f"Device profile '{profile.name}' vanished after insert conflict")
        return self._row_to_profile(row), False

    async def find_or_create_by_name(self, tenant_id: UUID, name: str) -> DeviceProfile:
        """Return the named profile, creating a default-transport one if absent."""
        profile = await self.find_by_name(tenant_id, name)
        if profile is not None:
            return profile

        profile, inserted = await self.insert_if_absent(DeviceProfile.new_default(tenant_id, name))
        if inserted:
            logger.info(f"Created device profile '{name}' for tenant {tenant_id}")
        return profile

    @staticmethod
    def _row_to_profile(row: asyncpg.Record) -> DeviceProfile:
        """Convert database row to DeviceProfile."""
        data: Any = row["profile_data"]
        if isinstance(data, str):
            data = json.loads(data)

        return DeviceProfile(
            id=row["id"],
            tenant_id=row["tenant_id"],
            name=row["name"],
            type=DeviceProfileType(row["type"]),
            transport_type=TransportType(row["transport_type"]),
            provision_type=ProvisionType(row["provision_type"]),
            profile_data=DeviceProfileData.from_dict(data),
            is_default=row["is_default"],
            created_at=row["created_at"],
        )
