"""
Core type definitions and constants.
"""
from __future__ import annotations

from typing import Literal

FieldKind = Literal["text", "integer", "date", "money", "money_currency", "flag", "free_text"]
PredicateKind = Literal["set_membership", "numeric_range", "numeric_lower_bound"]

EXPORT_FILENAME = "exported_data.xlsx"
EXPORT_SHEET_NAME = "Exported Data"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class ErrorCode:
    INVALID_FILENAME = "INVALID_FILENAME"
    UNSUPPORTED_TYPE = "UNSUPPORTED_TYPE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    INVALID_FORMAT = "INVALID_FORMAT"
    INVALID_CRITERIA = "INVALID_CRITERIA"
    NO_DATA = "NO_DATA"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    EXPORT_ERROR = "EXPORT_ERROR"
