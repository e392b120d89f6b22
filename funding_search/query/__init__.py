"""Filter query builder: search payloads to parameterized SQL."""
from .models import CompiledQuery, ExportCriteria, Predicate, SearchCriteria
from .normalizer import FIELD_STRATEGIES, IGNORED_FIELDS, normalize_field, parse_range_token, split_tokens
from .sql_compiler import build_predicates, compile_export, compile_insert, compile_search, compile_select

__all__ = [
    "CompiledQuery",
    "ExportCriteria",
    "Predicate",
    "SearchCriteria",
    "FIELD_STRATEGIES",
    "IGNORED_FIELDS",
    "normalize_field",
    "parse_range_token",
    "split_tokens",
    "build_predicates",
    "compile_export",
    "compile_insert",
    "compile_search",
    "compile_select",
]
