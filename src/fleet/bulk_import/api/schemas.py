"""Pydantic schemas for API request/response validation."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from ..domain.entities import BulkImportResult, ColumnMapping, ColumnType


class ColumnDTO(BaseModel):
    """One column of the uploaded file."""

    type: ColumnType


class BulkImportMappingRequest(BaseModel):
    """Column mapping sent alongside the uploaded file.

    Example:
        {"columns": [{"type": "NAME"}, {"type": "TYPE"}, {"type": "ACCESS_TOKEN"}],
         "delimiter": ",", "header": true, "update": true}
    """

    columns: list[ColumnDTO] = Field(..., min_length=1)
    delimiter: str = Field(default=",", min_length=1, max_length=1)
    header: bool = True
    update: bool = True

    def to_mapping(self) -> ColumnMapping:
        return ColumnMapping(
            columns=[c.type for c in self.columns],
            delimiter=self.delimiter,
            header=self.header,
            update=self.update,
        )


class BulkImportResponse(BaseModel):
    """Response from a bulk import."""

    created: int = 0
    updated: int = 0
    errors: int = 0
    errors_list: list[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: BulkImportResult) -> "BulkImportResponse":
        return cls(
            created=result.created,
            updated=result.updated,
            errors=result.errors,
            errors_list=list(result.errors_list),
        )


class HealthResponse(BaseModel):
    """Health status of the bulk import service."""

    status: str
    database: dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
