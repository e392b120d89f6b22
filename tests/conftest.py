"""Shared fixtures: in-memory SQLite, a wired FundingService, workbook builders."""
from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Callable

import openpyxl
import pytest
import xlrd
from xlrd.sheet import Cell

from funding_search.config import Settings
from funding_search.domain import REGISTRY, Record
from funding_search.repositories import FundingRepository, UploadRepository
from funding_search.services import FundingService
from funding_search.spreadsheets import coerce_record

TABLE = "funding_data"


def make_row(**values: Any) -> list[Any]:
    """Full-width row in registry order; unspecified fields are None."""
    unknown = set(values) - set(REGISTRY.names())
    assert not unknown, f"unknown test fields: {unknown}"
    return [values.get(name) for name in REGISTRY.names()]


SAMPLE_ROWS: list[dict[str, Any]] = [
    {"organization_name": "Acme", "number_of_employees": 50, "website": "acme.com",
     "contact_name": "Wile E. Coyote", "contact_title": "CTO", "linkedin_url": "linkedin.com/in/wile"},
    {"organization_name": "Globex", "number_of_employees": 2000, "website": "globex.com",
     "contact_name": "Hank Scorpio", "contact_title": "CEO", "industries": "Energy"},
    {"organization_name": "Initech", "number_of_employees": 12000, "website": "initech.com",
     "contact_name": "Bill Lumbergh", "contact_title": "VP Sales", "actively_hiring": "Yes",
     "last_funding_amount": "1,500,000", "last_funding_amount_currency": "usd"},
]


@pytest.fixture
def row_factory() -> Callable[..., list[Any]]:
    return make_row


@pytest.fixture
def sample_rows() -> list[list[Any]]:
    return [make_row(**values) for values in SAMPLE_ROWS]


@pytest.fixture
def xlsx_factory(tmp_path: Path) -> Callable[..., str]:
    """Write rows (below a label header unless header=False) to a fresh .xlsx file."""
    counter = {"n": 0}

    def build(rows: list[list[Any]], *, header: bool = True, name: str | None = None) -> str:
        counter["n"] += 1
        path = tmp_path / (name or f"sheet_{counter['n']}.xlsx")
        workbook = openpyxl.Workbook()
        sheet = workbook.active
        if header:
            sheet.append(list(REGISTRY.labels()))
        for row in rows:
            sheet.append(row)
        workbook.save(path)
        return str(path)

    return build


class _XlsSheet:
    """Stand-in for an xlrd sheet built from rows of (ctype, value) cells."""

    def __init__(self, rows):
        self._rows = rows
        self.nrows = len(rows)
        self.ncols = max((len(r) for r in rows), default=0)

    def cell(self, row, col):
        ctype, value = self._rows[row][col]
        return Cell(ctype, value)


class _XlsBook:
    nsheets = 1
    datemode = 0

    def __init__(self, rows):
        self._sheet = _XlsSheet(rows)

    def sheet_by_index(self, index):
        return self._sheet


@pytest.fixture
def fake_xls(monkeypatch, tmp_path) -> Callable[..., str]:
    """Serve the given (ctype, value) rows as the first sheet of any .xls path."""
    def install(rows: list[list[tuple[int, Any]]]) -> str:
        monkeypatch.setattr(xlrd, "open_workbook", lambda path: _XlsBook(rows))
        path = tmp_path / "legacy.xls"
        path.write_bytes(b"")
        return str(path)

    return install


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        db_path=":memory:",
        table_name=TABLE,
        upload_dir=str(tmp_path / "uploads"),
        export_dir=str(tmp_path / "exports"),
        max_upload_mb=5,
        cors_origins=("http://localhost:3000",),
        host="127.0.0.1",
        port=2000,
        log_level="INFO",
    )


@pytest.fixture
def in_memory_db() -> sqlite3.Connection:
    conn = sqlite3.connect(":memory:", check_same_thread=False)
    yield conn
    conn.close()


@pytest.fixture
def repository(in_memory_db: sqlite3.Connection) -> FundingRepository:
    repo = FundingRepository(in_memory_db, TABLE, REGISTRY)
    repo.create_table()
    return repo


@pytest.fixture
def service(settings: Settings, repository: FundingRepository) -> FundingService:
    return FundingService(settings, repository, UploadRepository(settings.upload_dir))


@pytest.fixture
def seeded_service(service: FundingService, repository: FundingRepository) -> FundingService:
    for values in SAMPLE_ROWS:
        repository.insert_values(coerce_record(Record.from_mapping(values)))
    return service
