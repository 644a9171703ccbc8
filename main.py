#!/usr/bin/env python3
"""Fleet Bulk Device Import CLI.

This module provides a command-line interface for provisioning devices in
bulk from a CSV or Excel file into the PostgreSQL device registry. It runs
the same import pipeline as the HTTP API.

Architecture:
    - TabularRowParser reads the file using the column mapping
    - UpsertDeviceUseCase creates or updates one device per row
    - ResolveDeviceProfileUseCase finds or creates device profiles
    - BulkImportDevicesUseCase runs rows concurrently and collects errors

Environment Variables:
    - DATABASE_URL: PostgreSQL connection string (required)
    - BULK_IMPORT_MAX_WORKERS: Rows processed concurrently (default: 10)
    - BULK_IMPORT_ACCESS_TOKEN_LENGTH: Generated token length (default: 20)
    - BULK_IMPORT_PROFILE_UPGRADE_POLICY: upgrade | reject (default: upgrade)

Example Usage:
    $ python main.py devices.csv --tenant-id <uuid> --columns NAME,TYPE,ACCESS_TOKEN
    $ python main.py devices.xlsx --tenant-id <uuid> --columns NAME,TYPE --no-update
    $ python main.py lwm2m.csv --tenant-id <uuid> --delimiter ';' \\
          --columns NAME,TYPE,LWM2M_CLIENT_ENDPOINT,LWM2M_CLIENT_SECURITY_CONFIG_MODE

Author: Fleet Provisioning Team
"""
import os
import sys
import asyncio
import argparse
import json
from datetime import datetime
from pathlib import Path
from uuid import UUID

from dotenv import load_dotenv

load_dotenv()

# Local imports
from src.fleet.core import FleetError, KeyedLock, close_pool, create_pool
from src.fleet.bulk_import.adapters import (
    DeviceCredentialsBuilder,
    DeviceCredentialsFormatter,
    DeviceFieldMapper,
    PostgresDeviceProfileRepository,
    PostgresDeviceRepository,
    TabularRowParser,
)
from src.fleet.bulk_import.config import BulkImportConfig
from src.fleet.bulk_import.domain import ColumnMapping, ColumnType
from src.fleet.bulk_import.use_cases import (
    BulkImportDevicesUseCase,
    ResolveDeviceProfileUseCase,
    UpsertDeviceUseCase,
)


def parse_columns(value: str) -> list[ColumnType]:
    """Parse a comma-separated list of column types.

    Args:
        value: e.g. "NAME,TYPE,ACCESS_TOKEN"

    Returns:
        Column types in file order

    Raises:
        argparse.ArgumentTypeError: If a name is not a known column type
    """
    columns = []
    for name in value.split(","):
        name = name.strip().upper()
        try:
            columns.append(ColumnType(name))
        except ValueError:
            valid = ", ".join(c.value for c in ColumnType)
            raise argparse.ArgumentTypeError(
                f"Unknown column type '{name}'. Valid types: {valid}"
            )
    return columns


def positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not an integer")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_import_use_case(pool, config: BulkImportConfig) -> BulkImportDevicesUseCase:
    """Wire the import pipeline against a database pool."""
    profile_resolver = ResolveDeviceProfileUseCase(
        profile_repo=PostgresDeviceProfileRepository(pool),
        locks=KeyedLock(),
        upgrade_policy=config.profile_upgrade_policy,
    )
    upsert_device = UpsertDeviceUseCase(
        device_repo=PostgresDeviceRepository(pool),
        field_mapper=DeviceFieldMapper(),
        credentials_builder=DeviceCredentialsBuilder(config.access_token_length),
        credentials_formatter=DeviceCredentialsFormatter(),
        profile_resolver=profile_resolver,
    )
    return BulkImportDevicesUseCase(
        row_parser=TabularRowParser(),
        upsert_device=upsert_device,
        max_workers=config.max_workers,
    )


async def run_import(args: argparse.Namespace) -> int:
    """Main import orchestration function.

    Args:
        args: Parsed command-line arguments

    Returns:
        Process exit code
    """
    start_time = datetime.now()
    print(f"[Main] Starting at {start_time.isoformat()}")

    try:
        config = BulkImportConfig.from_env()
    except FleetError as e:
        print(f"[Main] Configuration error: {e}")
        return 1

    if args.workers is not None:
        config.max_workers = args.workers

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("[Main] DATABASE_URL is not set")
        return 1

    path = Path(args.file)
    try:
        content = path.read_bytes()
    except OSError as e:
        print(f"[Main] Cannot read {path}: {e}")
        return 1

    mapping = ColumnMapping(
        columns=args.columns,
        delimiter=args.delimiter,
        header=not args.no_header,
        update=not args.no_update,
    )

    try:
        pool = await create_pool(database_url, min_size=2, max_size=max(config.max_workers, 2))
    except FleetError as e:
        print(f"[Main] Database connection failed: {e}")
        return 1

    print(f"[Main] Connected to PostgreSQL")

    try:
        use_case = build_import_use_case(pool, config)
        result = await use_case.execute(args.tenant_id, content, mapping, filename=path.name)
    except FleetError as e:
        print(f"[Main] Import failed: {e}")
        return 1
    finally:
        await close_pool(pool)

    print("\n" + "=" * 60)
    print("IMPORT COMPLETE")
    print("=" * 60)
    print(f"Rows:    {result.total}")
    print(f"Created: {result.created}")
    print(f"Updated: {result.updated}")
    print(f"Errors:  {result.errors}")
    for error in result.errors_list:
        print(f"  {error}")

    if args.report:
        Path(args.report).write_text(json.dumps(result.to_dict(), indent=2))
        print(f"\n[Main] Result written to {args.report}")

    duration = (datetime.now() - start_time).total_seconds()
    print(f"\n[Main] Completed in {duration:.1f} seconds")
    return 0 if result.errors == 0 else 2


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        description="Import devices in bulk from a CSV or Excel file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py devices.csv --tenant-id <uuid> --columns NAME,TYPE,ACCESS_TOKEN
  python main.py devices.csv --tenant-id <uuid> --columns NAME,TYPE --no-header
  python main.py devices.xlsx --tenant-id <uuid> --columns NAME,TYPE,X509
  python main.py devices.csv --tenant-id <uuid> --columns NAME,MQTT_USER_NAME --no-update

Exit codes: 0 all rows imported, 1 import not run, 2 some rows failed
        """
    )

    parser.add_argument("file", help="CSV or Excel (.xlsx) file to import")
    parser.add_argument(
        "--tenant-id",
        type=UUID,
        required=True,
        help="Tenant the devices are imported into"
    )

    # Mapping options
    mapping_group = parser.add_argument_group("Column Mapping")
    mapping_group.add_argument(
        "--columns",
        type=parse_columns,
        required=True,
        help="Comma-separated column types in file order (e.g. NAME,TYPE,ACCESS_TOKEN)"
    )
    mapping_group.add_argument(
        "--delimiter",
        default=",",
        help="CSV field delimiter (default: ',')"
    )
    mapping_group.add_argument(
        "--no-header",
        action="store_true",
        help="The first line is data, not a header"
    )
    mapping_group.add_argument(
        "--no-update",
        action="store_true",
        help="Do not update devices that already exist"
    )

    # Execution options
    exec_group = parser.add_argument_group("Execution Options")
    exec_group.add_argument(
        "--workers",
        type=positive_int,
        metavar="N",
        help="Rows processed concurrently (overrides BULK_IMPORT_MAX_WORKERS)"
    )
    exec_group.add_argument(
        "--report",
        metavar="FILE",
        help="Also write the import result as JSON to FILE"
    )

    return parser


def main():
    args = build_parser().parse_args()

    sys.exit(asyncio.run(run_import(args)))


if __name__ == "__main__":
    main()
