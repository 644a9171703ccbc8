"""API layer for bulk device import.

Contains:
- FastAPI router with endpoints
- Pydantic schemas for request/response validation
"""

from .router import router
from .schemas import (
    BulkImportMappingRequest,
    BulkImportResponse,
    ColumnDTO,
    HealthResponse,
)

__all__ = [
    "router",
    "BulkImportMappingRequest",
    "BulkImportResponse",
    "ColumnDTO",
    "HealthResponse",
]
