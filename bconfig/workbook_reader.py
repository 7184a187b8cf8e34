"""Workbook reader for the product spreadsheets.

This module opens the per-product .xlsx files with openpyxl and turns each sheet
into a column list plus padded row mappings. Every call re-reads the file, so two
reads of an unchanged workbook yield identical payloads.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from .config import PRODUCT_FILES
from .errors import SheetNotFoundError, WorkbookNotFoundError, WorkbookReadError
from .utils import PLACEHOLDER, cell_text, has_value, json_cell

logger = logging.getLogger("bconfig.workbook")

PADDING_COLUMNS = 3
PADDING_ROWS = 3


@dataclass
class SheetSnapshot:
    """Columns, rows, and record count of one sheet at read time."""
    columns: List[str]
    rows: List[Dict[str, Any]] = field(default_factory=list)
    records: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"columns": self.columns, "rows": self.rows, "records": self.records}


@dataclass
class SheetIndexEntry:
    """Index row describing one sheet of a product workbook."""
    id: str
    name: str
    type: str
    records: int
    lastModified: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "records": self.records,
            "lastModified": self.lastModified,
        }


class LoadedWorkbook:
    """A parsed workbook for one product, read once and queried per sheet."""

    def __init__(self, product: str, book: Workbook, modified: str) -> None:
        self.product = product
        self.modified = modified
        self._book = book
        # Reading pads cells into the in-memory sheet, so each sheet is read once.
        self._snapshots: Dict[str, SheetSnapshot] = {}

    @property
    def sheet_names(self) -> List[str]:
        return list(self._book.sheetnames)

    def read_sheet(self, sheet_name: str) -> SheetSnapshot:
        """Purpose: Convert one worksheet into columns, padded rows, and a record count.
        Inputs/Outputs: Input is a sheet name; output is a SheetSnapshot.
        Side Effects / State: None beyond openpyxl's lazy cell creation on this
            in-memory copy.
        Dependencies: detect_columns and read_rows.
        Failure Modes: Raises SheetNotFoundError for unknown sheet names.
        If Removed: Neither the sheet endpoint nor retrieval can see any rows.
        Testing Notes: A sheet with 2 header columns and 1 data row yields 5 columns
            and 4 rows.
        """
        # Capture the used range before reading; reading pads past it.
        if sheet_name not in self._book.sheetnames:
            raise SheetNotFoundError("Sheet not found")
        if sheet_name in self._snapshots:
            return self._snapshots[sheet_name]
        worksheet = self._book[sheet_name]
        used_rows, used_columns = used_range(worksheet)
        columns = detect_columns(worksheet, used_columns)
        rows, records = read_rows(worksheet, columns, used_rows, used_columns)
        snapshot = SheetSnapshot(columns=columns, rows=rows, records=records)
        self._snapshots[sheet_name] = snapshot
        return snapshot

    def index(self) -> List[SheetIndexEntry]:
        entries: List[SheetIndexEntry] = []
        for name in self.sheet_names:
            snapshot = self.read_sheet(name)
            entries.append(
                SheetIndexEntry(
                    id=f"{self.product}:{name}",
                    name=name,
                    type=self.product,
                    records=snapshot.records,
                    lastModified=self.modified,
                )
            )
        return entries


class WorkbookStore:
    def __init__(self, data_dir: Path, files: Optional[Dict[str, str]] = None) -> None:
        """Purpose: Configure where product workbooks live on disk.
        Inputs/Outputs: Inputs are the data directory and an optional product->file map.
        Side Effects / State: Stores paths only; nothing is read until open().
        Dependencies: PRODUCT_FILES for the default mapping.
        Failure Modes: None at init.
        If Removed: Index, sheet, and retrieval code cannot locate workbooks.
        Testing Notes: Point at a tmp directory holding generated .xlsx files.
        """
        # Keep the directory and mapping for later reads.
        self._data_dir = data_dir
        self._files = dict(files or PRODUCT_FILES)

    def workbook_path(self, product: str) -> Path:
        return self._data_dir / self._files[product]

    def open(self, product: str) -> LoadedWorkbook:
        """Purpose: Read and parse the workbook file for a product.
        Inputs/Outputs: Input is a product type; output is a LoadedWorkbook.
        Side Effects / State: Reads the file and its mtime from disk on every call.
        Dependencies: openpyxl.load_workbook with cached formula values.
        Failure Modes: WorkbookNotFoundError when the file is missing;
            WorkbookReadError when openpyxl cannot parse it.
        If Removed: All read paths lose their single entry point.
        Testing Notes: A truncated or non-zip file raises WorkbookReadError.
        """
        # Resolve the path, stamp the modification date, then parse.
        path = self.workbook_path(product)
        if not path.is_file():
            raise WorkbookNotFoundError(f"Workbook not found for {product}: {path.name}")
        modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc).date().isoformat()
        try:
            book = load_workbook(str(path), data_only=True)
        except (InvalidFileException, BadZipFile, KeyError, OSError) as exc:
            raise WorkbookReadError(f"Failed to read workbook for {product}: {exc}") from exc
        logger.debug("product=%s workbook=%s sheets=%d", product, path.name, len(book.sheetnames))
        return LoadedWorkbook(product, book, modified)

    def read_sheet(self, product: str, sheet_name: str) -> SheetSnapshot:
        return self.open(product).read_sheet(sheet_name)

    def index(self, product: str) -> List[SheetIndexEntry]:
        return self.open(product).index()


def used_range(worksheet: Worksheet) -> Tuple[int, int]:
    # openpyxl reports 1x1 for an empty sheet.
    return max(1, worksheet.max_row or 1), max(1, worksheet.max_column or 1)


def detect_columns(worksheet: Worksheet, used_columns: int) -> List[str]:
    """Purpose: Build the header list for a sheet, padded past the used range.
    Inputs/Outputs: Inputs are the worksheet and its used column count; output is
        used_columns + 3 unique column names.
    Side Effects / State: None.
    Dependencies: has_value and cell_text.
    Failure Modes: None; blank headers become "Column N".
    If Removed: Rows lose their keys and column resolution has nothing to match.
    Testing Notes: Blank header at position 2 yields "Column 2"; a repeated header
        gets a " (N)" suffix.
    """
    # Name each header cell, synthesizing names for blanks and repeats.
    total = used_columns + PADDING_COLUMNS
    header = next(
        worksheet.iter_rows(min_row=1, max_row=1, max_col=total, values_only=True),
        (),
    )
    columns: List[str] = []
    seen = set()
    for position in range(1, total + 1):
        value = header[position - 1] if position - 1 < len(header) else None
        name = cell_text(value) if has_value(value) else f"Column {position}"
        if name in seen:
            name = f"{name} ({position})"
        seen.add(name)
        columns.append(name)
    return columns


def read_rows(
    worksheet: Worksheet,
    columns: List[str],
    used_rows: int,
    used_columns: int,
) -> Tuple[List[Dict[str, Any]], int]:
    """Purpose: Read data rows (header excluded) with row padding and count records.
    Inputs/Outputs: Inputs are worksheet, column names, and the used range; output is
        (rows, records).
    Side Effects / State: None.
    Dependencies: has_value and json_cell.
    Failure Modes: None; blank cells become the "-" placeholder.
    If Removed: Sheet payloads and retrieval candidates disappear.
    Testing Notes: A value only in a padding column never counts as a record.
    """
    # Record check looks at the unpadded range before placeholders are applied.
    last_row = used_rows + PADDING_ROWS
    rows: List[Dict[str, Any]] = []
    records = 0
    for row_number, values in enumerate(
        worksheet.iter_rows(min_row=2, max_row=last_row, max_col=len(columns), values_only=True),
        start=2,
    ):
        row: Dict[str, Any] = {}
        has_any = False
        for index, column in enumerate(columns):
            value = values[index] if index < len(values) else None
            present = has_value(value)
            if present and not has_any and row_number <= used_rows and index < used_columns:
                has_any = True
            row[column] = json_cell(value) if present else PLACEHOLDER
        if has_any:
            records += 1
        rows.append(row)
    return rows, records
