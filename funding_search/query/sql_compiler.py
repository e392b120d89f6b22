"""Compile search criteria into parameterized SQL + params.

Key invariant: caller-supplied values only ever reach SQLite as bound
parameters. Column and table names come from the schema registry and
settings, never from the payload.
"""
from __future__ import annotations

import re
from typing import Any

from ..domain import REGISTRY, SchemaRegistry
from ..errors import InvalidCriteriaError
from .models import CompiledQuery, ExportCriteria, Predicate, SearchCriteria
from .normalizer import FIELD_STRATEGIES, IGNORED_FIELDS, normalize_field

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


# ------------------------------------------------------------------
# Predicate collection
# ------------------------------------------------------------------

def build_predicates(criteria: SearchCriteria | ExportCriteria) -> list[Predicate]:
    """Normalize every present field, in a fixed field order."""
    present = criteria.present_fields()
    predicates: list[Predicate] = []
    for field in FIELD_STRATEGIES:
        if field in present:
            predicates.extend(normalize_field(field, present[field]))
    for field in present:
        if field in IGNORED_FIELDS:
            normalize_field(field, present[field])
    return predicates


def compile_where(predicates: list[Predicate]) -> tuple[str, list[Any]]:
    if not predicates:
        return "", []

    clauses: list[str] = []
    params: list[Any] = []
    for predicate in predicates:
        clauses.append(predicate.to_sql())
        params.extend(predicate.parameters)

    return "WHERE " + " OR ".join(clauses), params


# ------------------------------------------------------------------
# Query compilation
# ------------------------------------------------------------------

def compile_select(
    predicates: list[Predicate],
    *,
    table_name: str,
    registry: SchemaRegistry = REGISTRY,
) -> CompiledQuery:
    """SELECT DISTINCT over every registry column, OR-ing the predicates."""
    _require_identifier(table_name)
    unknown = [p.field for p in predicates if p.field not in registry]
    if unknown:
        raise InvalidCriteriaError(f"Unknown column(s): {', '.join(unknown)}")

    where_sql, params = compile_where(predicates)
    sql = f"SELECT DISTINCT {registry.column_list_sql()} FROM {table_name}"
    if where_sql:
        sql = f"{sql} {where_sql}"
    return CompiledQuery(sql=f"{sql};", parameters=params, predicates=tuple(predicates))


def compile_search(
    criteria: SearchCriteria,
    *,
    table_name: str,
    registry: SchemaRegistry = REGISTRY,
) -> CompiledQuery:
    """Compile a search payload. Never produces an unfiltered query."""
    if criteria.is_empty():
        raise InvalidCriteriaError("At least one search parameter is required")

    predicates = build_predicates(criteria)
    if not predicates:
        raise InvalidCriteriaError("Search parameters did not produce any usable filter")

    return compile_select(predicates, table_name=table_name, registry=registry)


def compile_export(
    criteria: ExportCriteria,
    *,
    table_name: str,
    registry: SchemaRegistry = REGISTRY,
) -> CompiledQuery:
    """Compile export filters.

    No filters at all means "export everything"; filters that are present
    but yield nothing usable are rejected like a search would be.
    """
    if criteria.is_empty():
        return compile_select([], table_name=table_name, registry=registry)

    predicates = build_predicates(criteria)
    if not predicates:
        raise InvalidCriteriaError("Export filters did not produce any usable filter")

    return compile_select(predicates, table_name=table_name, registry=registry)


def compile_insert(*, table_name: str, registry: SchemaRegistry = REGISTRY) -> str:
    _require_identifier(table_name)
    placeholders = ", ".join("?" for _ in range(len(registry)))
    return f"INSERT INTO {table_name} ({registry.column_list_sql()}) VALUES ({placeholders});"


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _require_identifier(name: str) -> None:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
