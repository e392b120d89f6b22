from __future__ import annotations


class FundingSearchError(Exception):
    """Base error class for ingestion, search and export."""


class FormatError(FundingSearchError):
    """Raised when a workbook or cell grid is not well formed."""


class UnsupportedFileTypeError(FundingSearchError):
    """Raised when an upload is not an .xlsx or .xls file."""


class InvalidCriteriaError(FundingSearchError):
    """Raised when a search payload yields no usable predicate."""


class EmptyResultError(FundingSearchError):
    """Raised when an export has no rows to write."""


class PersistenceError(FundingSearchError):
    """Raised when SQLite rejects an insert or a query.

    ``rows_inserted`` counts the rows committed before the failure and
    ``row_number`` is the sheet row that failed (both only set during ingestion).
    """

    def __init__(self, message: str, *, rows_inserted: int = 0, row_number: int | None = None) -> None:
        super().__init__(message)
        self.rows_inserted = rows_inserted
        self.row_number = row_number


class ExportIOError(FundingSearchError):
    """Raised when the temporary export workbook cannot be written, read or removed."""
