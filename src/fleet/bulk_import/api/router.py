"""FastAPI router for bulk device import endpoints."""

import json
import logging
from typing import Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import ValidationError

from ...core.database import check_database_health
from ...core.error_sanitizer import sanitize_error_message
from ...core.exceptions import FleetError, ImportFileError
from ..config import BulkImportConfig
from ..use_cases import BulkImportDevicesUseCase
from .dependencies import (
    get_config,
    get_import_use_case,
    get_optional_db_pool,
    get_tenant_id,
    verify_api_key,
)
from .schemas import BulkImportMappingRequest, BulkImportResponse, HealthResponse

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (".csv", ".txt", ".xlsx")

router = APIRouter(prefix="/api/devices", tags=["Bulk Device Import"])


@router.post("/bulk-import", response_model=BulkImportResponse)
async def bulk_import_devices(
    file: UploadFile = File(...),
    mapping: str = Form(...),
    _auth: bool = Depends(verify_api_key),
    tenant_id: UUID = Depends(get_tenant_id),
    config: BulkImportConfig = Depends(get_config),
    use_case: BulkImportDevicesUseCase = Depends(get_import_use_case),
):
    """Import devices from a CSV or Excel file.

    ``mapping`` is a JSON document naming the type of every column:

        {"columns": [{"type": "NAME"}, {"type": "TYPE"}, {"type": "ACCESS_TOKEN"}],
         "delimiter": ",", "header": true, "update": true}

    Every row creates or updates one device. Rows that fail are reported
    in ``errors_list`` as "Line N: message" and do not stop the import.
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="Filename is required")

    if not file.filename.lower().endswith(ALLOWED_EXTENSIONS):
        raise HTTPException(
            status_code=400,
            detail="File must be a CSV (.csv, .txt) or Excel (.xlsx) file",
        )

    too_large = f"File too large. Maximum size is {config.max_upload_size_mb} MB"

    # Early rejection on the declared size
    if file.size and file.size > config.max_upload_size_bytes:
        raise HTTPException(status_code=413, detail=too_large)

    content = await file.read()
    if len(content) == 0:
        raise HTTPException(status_code=400, detail="File is empty")

    if len(content) > config.max_upload_size_bytes:
        raise HTTPException(status_code=413, detail=too_large)

    try:
        column_mapping = BulkImportMappingRequest.model_validate(json.loads(mapping)).to_mapping()
    except (json.JSONDecodeError, ValidationError) as e:
        raise HTTPException(
            status_code=400,
            detail=sanitize_error_message(str(e), "Invalid column mapping"),
        )

    try:
        result = await use_case.execute(
            tenant_id, content, column_mapping, filename=file.filename
        )
    except ImportFileError as e:
        logger.warning(f"Rejected import file {file.filename}: {e}")
        raise HTTPException(status_code=400, detail=sanitize_error_message(e.message))
    except FleetError as e:
        logger.error(f"Bulk import failed: {e}")
        raise HTTPException(
            status_code=500,
            detail=sanitize_error_message(e.message, "Bulk import failed"),
        )

    return BulkImportResponse.from_result(result)


@router.get("/bulk-import/health", response_model=HealthResponse)
async def bulk_import_health(
    pool: Optional[asyncpg.Pool] = Depends(get_optional_db_pool),
):
    """Report database connectivity of the import service."""
    database = await check_database_health(pool)

    error = database.pop("error", None)
    return HealthResponse(
        status="healthy" if database.get("healthy") else "unhealthy",
        database=database,
        error=sanitize_error_message(error) if error else None,
    )
