"""PostgreSQL adapter for device repository.

This adapter implements IDeviceRepository using asyncpg. A device and its
credentials are written in a single transaction so that no device is ever
visible without credentials.
"""

import json
import logging
from typing import Any, Optional
from uuid import UUID

import asyncpg

from ..domain.entities import Device, DeviceCredentials, DeviceMetadata
from ..domain.ports import IDeviceRepository
from ...core.database import database_connection, database_transaction
from ...core.exceptions import DatabaseError, PersistenceError

logger = logging.getLogger(__name__)


class PostgresDeviceRepository(IDeviceRepository):
    """PostgreSQL implementation of IDeviceRepository.

    - Devices are unique per (tenant_id, name); inserting a duplicate name
      raises IntegrityError
    - Credentials are upserted on device_id (1:1 with the device)
    """

    def __init__(self, pool: asyncpg.Pool):
        """Initialize with database connection pool.

        Args:
            pool: asyncpg connection pool
        """
        self.pool = pool

    async def find_by_name(self, tenant_id: UUID, name: str) -> Optional[Device]:
        """Find a device by tenant and name."""
        async with database_connection(self.pool) as conn:
            row = await conn.fetchrow(
                """
                SELECT id, tenant_id, name, type, label, metadata,
                       device_profile_id, created_at
                FROM devices
                WHERE tenant_id = $1 AND name = $2
                """,
                tenant_id,
                name,
            )

            if row is None:
                return None

            return self._row_to_device(row)

    async def save_with_credentials(
        self,
        device: Device,
        credentials: DeviceCredentials,
    ) -> Device:
        """Insert or update the device, then upsert its credentials."""
        try:
            async with database_transaction(self.pool) as conn:
                if device.is_new:
                    row = await self._insert_device(conn, device)
                else:
                    row = await self._update_device(conn, device)

                saved = self._row_to_device(row)

                credentials_id = await conn.fetchval(
                    """
                    INSERT INTO device_credentials (
                        device_id, credentials_type, credentials_id, credentials_value
                    ) VALUES ($1, $2, $3, $4)
                    ON CONFLICT (device_id) DO UPDATE SET
                        credentials_type = EXCLUDED.credentials_type,
                        credentials_id = EXCLUDED.credentials_id,
                        credentials_value = EXCLUDED.credentials_value
                    RETURNING id
                    """,
                    saved.id,
                    credentials.credentials_type.value,
                    credentials.credentials_id,
                    credentials.credentials_value,
                )
        except PersistenceError:
            raise
        except DatabaseError as e:
            raise PersistenceError(
                f"Failed to save device '{device.name}': {e.message}",
                details={"device_name": device.name},
                cause=e,
            )

        credentials.id = credentials_id
        credentials.device_id = saved.id

        action = "Created" if device.is_new else "Updated"
        logger.debug(f"{action} device '{saved.name}' ({saved.id})")
        return saved

    async def _insert_device(self, conn, device: Device) -> asyncpg.Record:
        row = await conn.fetchrow(
            """
            INSERT INTO devices (
                tenant_id, name, type, label, metadata, device_profile_id
            ) VALUES ($1, $2, $3, $4, $5::jsonb, $6)
            RETURNING id, tenant_id, name, type, label, metadata,
                      device_profile_id, created_at
            """,
            device.tenant_id,
            device.name,
            device.type,
            device.label,
            self._metadata_to_json(device.metadata),
            device.device_profile_id,
        )
        return row

    async def _update_device(self, conn, device: Device) -> asyncpg.Record:
        row = await conn.fetchrow(
            """
            UPDATE devices SET
                name = $2,
                type = $3,
                label = $4,
                metadata = $5::jsonb,
                device_profile_id = $6
            WHERE id = $1
            RETURNING id, tenant_id, name, type, label, metadata,
                      device_profile_id, created_at
            """,
            device.id,
            device.name,
            device.type,
            device.label,
            self._metadata_to_json(device.metadata),
            device.device_profile_id,
        )
        if row is None:
            raise PersistenceError(
                f"Device '{device.name}' no longer exists",
                details={"device_id": str(device.id)},
            )
        return row

    @staticmethod
    def _metadata_to_json(metadata: Optional[DeviceMetadata]) -> Optional[str]:
        if metadata is None:
            return None
        return json.dumps(metadata.to_dict())

    @staticmethod
    def _row_to_device(row: asyncpg.Record) -> Device:
        """Convert database row to Device."""
        metadata: Any = row["metadata"]
        if isinstance(metadata, str):
            metadata = json.loads(metadata)

        return Device(
            id=row["id"],
            tenant_id=row["tenant_id"],
            name=row["name"],
            type=row["type"],
            label=row["label"],
            metadata=DeviceMetadata.from_dict(metadata) if metadata is not None else None,
            device_profile_id=row["device_profile_id"],
            created_at=row["created_at"],
        )
