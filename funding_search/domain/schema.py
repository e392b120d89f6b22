"""Fixed column registry shared by ingestion, search and export.

Ordinal position defines both the spreadsheet column order and the SQL
column order, so every component reads columns from the same registry.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from .types import FieldKind

SQLITE_TYPE_MAP: dict[str, str] = {
    "text": "TEXT",
    "free_text": "TEXT",
    "date": "TEXT",
    "money_currency": "TEXT",
    "integer": "INTEGER",
    "flag": "INTEGER",
    "money": "REAL",
}


@dataclass(frozen=True)
class FieldSpec:
    """Named, typed, ordered column definition."""
    name: str
    kind: FieldKind
    ordinal: int
    label: str

    @property
    def sqlite_type(self) -> str:
        return SQLITE_TYPE_MAP[self.kind]


_FIELD_DEFINITIONS: tuple[tuple[str, FieldKind, str], ...] = (
    ("organization_name", "text", "Organization Name"),
    ("monthly_visits", "integer", "Monthly Visits"),
    ("founded_date", "date", "Founded Date"),
    ("operating_status", "text", "Operating Status"),
    ("company_type", "text", "Company Type"),
    ("ipo_status", "text", "IPO Status"),
    ("number_of_employees", "integer", "Number of Employees"),
    ("contact_job_departments", "text", "Contact Job Departments"),
    ("actively_hiring", "flag", "Actively Hiring"),
    ("last_funding_date", "date", "Last Funding Date"),
    ("estimated_revenue_range", "text", "Estimated Revenue Range"),
    ("last_funding_type", "text", "Last Funding Type"),
    ("industries", "text", "Industries"),
    ("headquarters_location", "text", "Headquarters Location"),
    ("description", "free_text", "Description"),
    ("cb_rank_company", "integer", "CB Rank (Company)"),
    ("headquarters_regions", "text", "Headquarters Regions"),
    ("website", "text", "Website"),
    ("contact_email", "text", "Contact Email"),
    ("phone_number", "text", "Phone Number"),
    ("last_funding_amount", "money", "Last Funding Amount"),
    ("last_funding_amount_currency", "money_currency", "Last Funding Amount Currency"),
    ("last_funding_amount_usd", "money", "Last Funding Amount (in USD)"),
    ("funding_status", "text", "Funding Status"),
    ("number_of_funding_rounds", "integer", "Number of Funding Rounds"),
    ("last_equity_funding_amount", "money", "Last Equity Funding Amount"),
    ("last_equity_funding_amount_currency", "money_currency", "Last Equity Funding Amount Currency"),
    ("last_equity_funding_amount_usd", "money", "Last Equity Funding Amount (in USD)"),
    ("last_equity_funding_type", "text", "Last Equity Funding Type"),
    ("total_equity_funding_amount", "money", "Total Equity Funding Amount"),
    ("total_equity_funding_amount_currency", "money_currency", "Total Equity Funding Amount Currency"),
    ("total_equity_funding_amount_usd", "money", "Total Equity Funding Amount (in USD)"),
    ("total_funding_amount", "money", "Total Funding Amount"),
    ("total_funding_amount_currency", "money_currency", "Total Funding Amount Currency"),
    ("total_funding_amount_usd", "money", "Total Funding Amount (in USD)"),
    ("lead_investor", "text", "Lead Investor"),
    ("valuation_at_ipo", "money", "Valuation at IPO"),
    ("contact_name", "text", "Name"),
    ("contact_title", "text", "Title"),
    ("work_email", "text", "Work Email"),
    ("linkedin_url", "text", "LinkedIn URL"),
    ("source_url", "text", "Source URL"),
    ("comment", "free_text", "Comment"),
)


class SchemaRegistry:
    """Immutable ordered collection of FieldSpecs."""

    def __init__(self, fields: tuple[FieldSpec, ...]) -> None:
        ordinals = [f.ordinal for f in fields]
        if ordinals != list(range(len(fields))):
            raise ValueError("Field ordinals must be contiguous and start at 0")
        names = [f.name for f in fields]
        if len(set(names)) != len(names):
            raise ValueError("Field names must be unique")
        self._fields = fields
        self._by_name = {f.name: f for f in fields}

    @classmethod
    def from_definitions(cls, definitions: tuple[tuple[str, FieldKind, str], ...]) -> SchemaRegistry:
        return cls(tuple(
            FieldSpec(name=name, kind=kind, ordinal=i, label=label)
            for i, (name, kind, label) in enumerate(definitions)
        ))

    def fields(self) -> tuple[FieldSpec, ...]:
        return self._fields

    def names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self._fields)

    def labels(self) -> tuple[str, ...]:
        return tuple(f.label for f in self._fields)

    def get(self, name: str) -> FieldSpec:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"Unknown field: {name}") from None

    def column_list_sql(self) -> str:
        return ", ".join(self.names())

    def columns_ddl(self) -> str:
        return ", ".join(f"{f.name} {f.sqlite_type}" for f in self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[FieldSpec]:
        return iter(self._fields)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name


REGISTRY = SchemaRegistry.from_definitions(_FIELD_DEFINITIONS)
