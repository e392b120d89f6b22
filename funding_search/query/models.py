from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, model_validator

from ..domain import PredicateKind

RawCriterion = Union[str, list[Union[str, int]], None]


class _CriteriaModel(BaseModel):
    """Shared behaviour for search payloads.

    Blank strings and empty lists are coerced to None so that "field present"
    always means "field carries something to split".
    """
    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _blank_to_none(cls, values: Any) -> Any:
        if isinstance(values, dict):
            cleaned = dict(values)
            for key, value in values.items():
                if isinstance(value, str) and not value.strip():
                    cleaned[key] = None
                elif isinstance(value, list) and not value:
                    cleaned[key] = None
            return cleaned
        return values

    def present_fields(self) -> dict[str, Union[str, list[Union[str, int]]]]:
        return {k: v for k, v in self.model_dump().items() if v is not None}

    def is_empty(self) -> bool:
        return not self.present_fields()


class SearchCriteria(_CriteriaModel):
    """Full search payload accepted by the search endpoint."""
    organization_name: RawCriterion = None
    website: RawCriterion = None
    number_of_employees: RawCriterion = None
    estimated_revenue_range: RawCriterion = None
    industries: RawCriterion = None
    headquarters_location: RawCriterion = None
    linkedin_url: RawCriterion = None
    contact_name: RawCriterion = None
    contact_title: RawCriterion = None


class ExportCriteria(_CriteriaModel):
    """Narrower filter set accepted by the export endpoint."""
    organization_name: RawCriterion = None
    website: RawCriterion = None


def _numeric_guard(field: str) -> str:
    return f"typeof({field}) IN ('integer', 'real')"


@dataclass(frozen=True)
class Predicate:
    """One filter condition over a registry column; values travel as parameters only."""
    field: str
    kind: PredicateKind
    parameters: tuple[Any, ...]

    def to_sql(self) -> str:
        if self.kind == "set_membership":
            placeholders = ", ".join("?" for _ in self.parameters)
            return f"{self.field} IN ({placeholders})"
        # Unparseable cells are stored as TEXT, which SQLite sorts above every number.
        if self.kind == "numeric_range":
            return f"({_numeric_guard(self.field)} AND {self.field} BETWEEN ? AND ?)"
        if self.kind == "numeric_lower_bound":
            return f"({_numeric_guard(self.field)} AND {self.field} >= ?)"
        raise ValueError(f"Unsupported predicate kind: {self.kind}")


@dataclass(frozen=True)
class CompiledQuery:
    sql: str
    parameters: list[Any]
    predicates: tuple[Predicate, ...] = ()
