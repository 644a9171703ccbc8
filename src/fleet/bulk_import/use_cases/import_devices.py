"""Bulk import devices use case.

Parses an uploaded file and upserts one device per row. Rows run
concurrently up to ``max_workers``; a failing row is reported as
"Line N: <message>" and never affects the other rows.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional, Union
from uuid import UUID

from ..domain.entities import BulkImportResult, ColumnMapping, ImportedDevice, ImportRow
from ..domain.ports import IRowParser
from ...core.exceptions import FleetError
from .upsert_device import UpsertDeviceUseCase

logger = logging.getLogger(__name__)


class BulkImportDevicesUseCase:
    """Import devices from a CSV or Excel file.

    This use case:
    1. Parses the file into rows using the column mapping
    2. Upserts each row through UpsertDeviceUseCase with bounded concurrency
    3. Collects created/updated counts and per-line errors
    """

    def __init__(
        self,
        row_parser: IRowParser,
        upsert_device: UpsertDeviceUseCase,
        max_workers: int = 10,
    ):
        """Initialize the use case.

        Args:
            row_parser: Parser for uploaded files
            upsert_device: Per-row upsert use case
            max_workers: Maximum rows processed concurrently
        """
        self.parser = row_parser
        self.upsert_device = upsert_device
        self.max_workers = max_workers

    async def execute(
        self,
        tenant_id: UUID,
        file_content: bytes,
        mapping: ColumnMapping,
        filename: Optional[str] = None,
    ) -> BulkImportResult:
        """Execute the use case.

        Args:
            tenant_id: Tenant the devices are imported into
            file_content: Raw bytes of the CSV or Excel file
            mapping: Column mapping of the file
            filename: Optional filename for log messages

        Returns:
            BulkImportResult with counters and per-line errors

        Raises:
            ImportFileError: If the file cannot be parsed
        """
        result = BulkImportResult(started_at=datetime.now())
        logger.info(f"Starting bulk import of {filename or 'upload'} for tenant {tenant_id}")

        rows = self.parser.parse(file_content, mapping)

        semaphore = asyncio.Semaphore(self.max_workers)

        async def bounded_import(row: ImportRow) -> Union[ImportedDevice, Exception]:
            async with semaphore:
                try:
                    return await self.upsert_device.execute(
                        tenant_id, row.fields, update=mapping.update
                    )
                except Exception as e:
                    return e

        outcomes = await asyncio.gather(*(bounded_import(row) for row in rows))

        for row, outcome in zip(rows, outcomes):
            if isinstance(outcome, Exception):
                message = outcome.message if isinstance(outcome, FleetError) else str(outcome)
                logger.warning(f"Line {row.line_number}: {message}")
                result.errors += 1
                result.errors_list.append(f"Line {row.line_number}: {message}")
            elif outcome.updated:
                result.updated += 1
            else:
                result.created += 1

        result.completed_at = datetime.now()
        logger.info(
            f"Bulk import complete: {result.total} rows, {result.created} created, {result.updated} updated, "
            f"{result.errors} errors in {result.duration_seconds:.2f}s"
        )
        return result
