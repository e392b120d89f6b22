"""
Spreadsheet reading, decoding and writing.

Workbooks are read into a sparse cell grid bounded by an A1-style reference,
then decoded positionally into Records aligned to the schema registry.
Cell values are decoded verbatim; type coercion happens at persistence time.
"""
from __future__ import annotations

import datetime as dt
import logging
import os
import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, Mapping, Sequence
from zipfile import BadZipFile

import openpyxl
import pandas as pd
import xlrd
from openpyxl.utils import get_column_letter
from openpyxl.utils.cell import range_boundaries
from openpyxl.utils.exceptions import InvalidFileException

from .domain import EXPORT_SHEET_NAME, REGISTRY, FieldKind, Record, SchemaRegistry
from .errors import FormatError

logger = logging.getLogger(__name__)


class SpreadsheetType(str, Enum):
    XLSX = "xlsx"
    XLS = "xls"


# ============================================================================
# File Handling
# ============================================================================

def get_spreadsheet_type(filename: str) -> SpreadsheetType | None:
    """Determine spreadsheet type from filename extension."""
    ext = Path(filename).suffix.lower()
    if ext == ".xlsx":
        return SpreadsheetType.XLSX
    elif ext == ".xls":
        return SpreadsheetType.XLS
    return None


def sanitize_filename(filename: str) -> str:
    """Sanitize filename to prevent path traversal and other issues."""
    filename = os.path.basename(filename.replace("\\", "/"))
    filename = re.sub(r'[^\w\-_\. ]', '', filename)
    if len(filename) > 255:
        name, ext = os.path.splitext(filename)
        filename = name[:255 - len(ext)] + ext
    return filename


# ============================================================================
# Cell Grid
# ============================================================================

@dataclass(frozen=True)
class GridBounds:
    """Inclusive 1-based row and column range of a sheet."""
    row_start: int
    row_end: int
    col_start: int
    col_end: int

    @classmethod
    def from_ref(cls, ref: str | None) -> GridBounds:
        if not ref:
            raise FormatError("Sheet has no bounding reference")
        try:
            min_col, min_row, max_col, max_row = range_boundaries(ref.strip())
        except (ValueError, TypeError) as exc:
            raise FormatError(f"Invalid sheet reference: {ref!r}") from exc
        if None in (min_col, min_row, max_col, max_row):
            raise FormatError(f"Sheet reference must bound rows and columns: {ref!r}")
        return cls(row_start=min_row, row_end=max_row, col_start=min_col, col_end=max_col)

    @property
    def width(self) -> int:
        return self.col_end - self.col_start + 1

    def to_ref(self) -> str:
        return (
            f"{get_column_letter(self.col_start)}{self.row_start}:"
            f"{get_column_letter(self.col_end)}{self.row_end}"
        )


@dataclass(frozen=True)
class Grid:
    """Sparse cell map keyed by 1-based (row, column); absent keys are empty cells."""
    cells: Mapping[tuple[int, int], Any] = field(default_factory=dict)
    ref: str | None = None

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[Any]]) -> Grid:
        cells = {
            (r, c): value
            for r, row in enumerate(rows, start=1)
            for c, value in enumerate(row, start=1)
            if value is not None
        }
        width = max((len(row) for row in rows), default=0)
        if not rows or width == 0:
            return cls(cells=cells, ref=None)
        return cls(cells=cells, ref=GridBounds(1, len(rows), 1, width).to_ref())

    def bounds(self) -> GridBounds:
        return GridBounds.from_ref(self.ref)

    def row_values(self, row: int, bounds: GridBounds) -> list[Any]:
        return [self.cells.get((row, col)) for col in range(bounds.col_start, bounds.col_end + 1)]


# ============================================================================
# Workbook Readers
# ============================================================================

def read_xlsx_grid(file_path: str) -> Grid:
    """Read the first sheet of an XLSX workbook. Empty strings count as empty cells."""
    try:
        workbook = openpyxl.load_workbook(file_path, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError) as exc:
        raise FormatError(f"Could not open workbook: {exc}") from exc

    try:
        if not workbook.sheetnames:
            raise FormatError("Workbook has no sheets")
        sheet = workbook[workbook.sheetnames[0]]
        ref = sheet.dimensions
        bounds = GridBounds.from_ref(ref)
        cells: dict[tuple[int, int], Any] = {}
        rows = sheet.iter_rows(
            min_row=bounds.row_start, max_row=bounds.row_end,
            min_col=bounds.col_start, max_col=bounds.col_end,
            values_only=True,
        )
        for r, row in enumerate(rows, start=bounds.row_start):
            for c, value in enumerate(row, start=bounds.col_start):
                if value is not None and value != "":
                    cells[(r, c)] = value
    finally:
        workbook.close()
    return Grid(cells=cells, ref=ref)


def read_xls_grid(file_path: str) -> Grid:
    """Read the first sheet of a legacy XLS workbook."""
    try:
        workbook = xlrd.open_workbook(file_path)
    except (xlrd.XLRDError, xlrd.compdoc.CompDocError, OSError) as exc:
        raise FormatError(f"Could not open workbook: {exc}") from exc

    if workbook.nsheets == 0:
        raise FormatError("Workbook has no sheets")
    sheet = workbook.sheet_by_index(0)
    if sheet.nrows == 0 or sheet.ncols == 0:
        # Same bounds openpyxl reports for an empty sheet.
        return Grid(cells={}, ref="A1:A1")

    cells: dict[tuple[int, int], Any] = {}
    for row_idx in range(sheet.nrows):
        for col_idx in range(sheet.ncols):
            cell = sheet.cell(row_idx, col_idx)
            if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
                continue
            value: Any = cell.value
            if cell.ctype == xlrd.XL_CELL_DATE:
                value = xlrd.xldate_as_datetime(cell.value, workbook.datemode)
            elif cell.ctype == xlrd.XL_CELL_BOOLEAN:
                value = bool(cell.value)
            elif cell.ctype == xlrd.XL_CELL_ERROR:
                value = None
            if value is None or value == "":
                continue
            cells[(row_idx + 1, col_idx + 1)] = value

    ref = GridBounds(1, sheet.nrows, 1, sheet.ncols).to_ref()
    return Grid(cells=cells, ref=ref)


def read_grid(file_path: str) -> Grid:
    """Read the first sheet of a workbook, dispatching on its extension."""
    sheet_type = get_spreadsheet_type(file_path)
    if sheet_type == SpreadsheetType.XLSX:
        grid = read_xlsx_grid(file_path)
    elif sheet_type == SpreadsheetType.XLS:
        grid = read_xls_grid(file_path)
    else:
        raise FormatError(f"Not a spreadsheet file: {os.path.basename(file_path)}")
    logger.debug("Read %d non-empty cell(s) from %s (ref=%s)", len(grid.cells), file_path, grid.ref)
    return grid


# ============================================================================
# Decoding
# ============================================================================

def iter_records(
    grid: Grid,
    registry: SchemaRegistry = REGISTRY,
    *,
    header_rows: int = 1,
) -> Iterator[Record]:
    """Decode each data row of the grid into a Record, in row order.

    Column i of the bounded range maps to the field at ordinal i. Columns
    beyond the registry are ignored and missing trailing fields are None.
    Blank rows still produce an all-None Record.
    """
    bounds = grid.bounds()
    return _decode_rows(grid, bounds, registry, bounds.row_start + header_rows)


def _decode_rows(grid: Grid, bounds: GridBounds, registry: SchemaRegistry, first_row: int) -> Iterator[Record]:
    for row in range(first_row, bounds.row_end + 1):
        yield Record.from_row(grid.row_values(row, bounds), registry)


def first_data_row(grid: Grid, *, header_rows: int = 1) -> int:
    return grid.bounds().row_start + header_rows


# ============================================================================
# Type Coercion
# ============================================================================

_TRUE_FLAGS = {"yes", "y", "true", "1"}
_FALSE_FLAGS = {"no", "n", "false", "0"}
_MONEY_NOISE = re.compile(r"[,\s$€£¥]")


def _parse_decimal(text: str) -> Decimal | None:
    try:
        return Decimal(_MONEY_NOISE.sub("", text))
    except InvalidOperation:
        return None


def _format_date(x: dt.date) -> str:
    if isinstance(x, dt.datetime):
        if x.hour == 0 and x.minute == 0 and x.second == 0 and x.microsecond == 0:
            return x.strftime("%Y-%m-%d")
        return x.isoformat(sep=" ")
    return x.strftime("%Y-%m-%d")


def coerce_cell_value(x: Any, kind: FieldKind) -> Any:
    """Convert a raw cell value into the stored representation for its field kind.

    Values that cannot be parsed for their kind are stored as stripped text.
    """
    if x is None:
        return None
    if isinstance(x, str):
        x = x.strip()
        if not x:
            return None

    if kind == "integer":
        if isinstance(x, bool):
            return int(x)
        if isinstance(x, int):
            return x
        if isinstance(x, float):
            return int(x) if x.is_integer() else x
        number = _parse_decimal(str(x))
        if number is not None and number.is_finite() and number == number.to_integral_value():
            return int(number)
        return str(x)

    if kind == "money":
        if isinstance(x, bool):
            return str(x)
        if isinstance(x, (int, float)):
            return float(x)
        number = _parse_decimal(str(x))
        if number is not None and number.is_finite():
            return float(number)
        return str(x)

    if kind == "money_currency":
        return str(x).upper()

    if kind == "date":
        if isinstance(x, (dt.datetime, dt.date)):
            return _format_date(x)
        return str(x)

    if kind == "flag":
        if isinstance(x, bool):
            return int(x)
        if isinstance(x, (int, float)) and x in (0, 1):
            return int(x)
        lowered = str(x).lower()
        if lowered in _TRUE_FLAGS:
            return 1
        if lowered in _FALSE_FLAGS:
            return 0
        return str(x)

    if isinstance(x, (dt.datetime, dt.date)):
        return _format_date(x)
    if isinstance(x, float) and x.is_integer():
        return str(int(x))
    return str(x)


def coerce_record(record: Record) -> tuple[Any, ...]:
    """Coerce every value of a Record for insertion, in registry order."""
    return tuple(
        coerce_cell_value(value, spec.kind)
        for value, spec in zip(record.values, record.registry.fields())
    )


# ============================================================================
# Workbook Writer
# ============================================================================

def write_workbook(rows: Sequence[Sequence[Any]], file_path: str, sheet_name: str = EXPORT_SHEET_NAME) -> None:
    """Write a header row plus data rows to an XLSX file."""
    if not rows:
        raise ValueError("At least a header row is required")
    header, data = list(rows[0]), [list(r) for r in rows[1:]]
    df = pd.DataFrame(data, columns=header, dtype=object)
    df.to_excel(file_path, sheet_name=sheet_name, index=False, engine="openpyxl")
