"""Excel and CSV parser adapter.

This adapter implements IRowParser to turn an uploaded CSV or Excel file
into ImportRows according to a ColumnMapping.
"""

import csv
import io
import logging
from typing import Any, Iterable, Optional

from openpyxl import load_workbook

from ..domain.entities import ColumnMapping, ColumnType, ImportRow
from ..domain.ports import IRowParser
from ...core.exceptions import ImportFileError

logger = logging.getLogger(__name__)

# Excel files are zip archives
XLSX_MAGIC = b"PK\x03\x04"


class TabularRowParser(IRowParser):
    """Row parser for CSV (stdlib csv) and Excel (openpyxl) files.

    Expected layout (header optional, columns in mapping order):
    | name  | type     | access token |
    |-------|----------|--------------|
    | dev-1 | Sensor-A | tok-1        |
    | dev-2 | Sensor-A |              |

    - Column i of every line is ``mapping.columns[i]``
    - Values are stripped; empty cells are left out of the row
    - Blank lines are skipped; the header is the first non-blank record
    """

    def parse(self, file_content: bytes, mapping: ColumnMapping) -> list[ImportRow]:
        """Parse an Excel or CSV file.

        Args:
            file_content: Raw bytes of the Excel or CSV file
            mapping: Column mapping of the import

        Returns:
            List of ImportRow objects

        Raises:
            ImportFileError: If file format is invalid
        """
        if not mapping.columns:
            raise ImportFileError("Column mapping is empty")

        if file_content.startswith(XLSX_MAGIC):
            lines = self._read_excel(file_content)
        else:
            lines = self._read_csv(file_content, mapping.delimiter)

        rows = []
        header_pending = mapping.header
        for line_number, values in lines:
            if header_pending:
                # The header is the first non-blank record, wherever it starts
                header_pending = not any(self._cell_to_str(v) for v in values)
                continue
            row = self._map_line(line_number, values, mapping.columns)
            if row is not None:
                rows.append(row)

        logger.info(f"Parsed {len(rows)} rows from import file")
        return rows

    def _read_csv(
        self, file_content: bytes, delimiter: str
    ) -> list[tuple[int, list[Any]]]:
        """Read CSV records as (first physical line, values) pairs.

        Args:
            file_content: Raw bytes of the CSV file
            delimiter: Field delimiter

        Raises:
            ImportFileError: If the file cannot be decoded or parsed
        """
        try:
            text = file_content.decode("utf-8-sig")  # Handle BOM
        except UnicodeDecodeError as e:
            raise ImportFileError(f"CSV file is not valid UTF-8: {e}", cause=e)

        if len(delimiter) != 1:
            raise ImportFileError(f"Delimiter must be a single character, got {delimiter!r}")

        lines = []
        start_line = 1
        try:
            reader = csv.reader(io.StringIO(text), delimiter=delimiter)
            for values in reader:
                # Quoted values may span lines; report where the record starts
                lines.append((start_line, values))
                start_line = reader.line_num + 1
        except csv.Error as e:
            raise ImportFileError(f"Failed to parse CSV file: {e}", cause=e)
        return lines

    def _read_excel(self, file_content: bytes) -> list[tuple[int, list[Any]]]:
        """Read the first worksheet as (line_number, values) pairs.

        Raises:
            ImportFileError: If the workbook cannot be loaded
        """
        try:
            wb = load_workbook(filename=io.BytesIO(file_content), read_only=True, data_only=True)
        except Exception as e:
            logger.error(f"Failed to parse Excel file: {e}")
            raise ImportFileError(f"Failed to parse Excel file: {e}", cause=e)

        try:
            ws = wb.worksheets[0] if wb.worksheets else None
            if ws is None:
                raise ImportFileError("Excel file has no worksheet")

            return [
                (row_num, list(values))
                for row_num, values in enumerate(ws.iter_rows(values_only=True), start=1)
            ]
        finally:
            wb.close()

    def _map_line(
        self,
        line_number: int,
        values: Iterable[Any],
        columns: list[ColumnType],
    ) -> Optional[ImportRow]:
        """Map one line onto column types; None for a blank line."""
        fields: dict[ColumnType, str] = {}
        for column, raw in zip(columns, values):
            value = self._cell_to_str(raw)
            if value:
                fields[column] = value

        if not fields:
            return None
        return ImportRow(line_number=line_number, fields=fields)

    @staticmethod
    def _cell_to_str(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value).strip()
