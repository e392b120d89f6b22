"""Domain layer for funding-search."""
from .types import FieldKind, PredicateKind, ErrorCode, EXPORT_FILENAME, EXPORT_SHEET_NAME, XLSX_MEDIA_TYPE
from .schema import FieldSpec, SchemaRegistry, REGISTRY, SQLITE_TYPE_MAP
from .records import Record

__all__ = ["FieldKind", "PredicateKind", "ErrorCode", "EXPORT_FILENAME", "EXPORT_SHEET_NAME", "XLSX_MEDIA_TYPE",
           "FieldSpec", "SchemaRegistry", "REGISTRY", "SQLITE_TYPE_MAP", "Record"]
