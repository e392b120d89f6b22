"""End-to-end service tests: ingestion, search and export against in-memory SQLite."""
from __future__ import annotations

import asyncio
import os

import pytest
import xlrd

from funding_search.domain import REGISTRY, Record
from funding_search.errors import (
    EmptyResultError,
    FormatError,
    InvalidCriteriaError,
    PersistenceError,
    UnsupportedFileTypeError,
)
from funding_search.query import ExportCriteria, SearchCriteria
from funding_search.repositories import FundingRepository, UploadRepository
from funding_search.services import FundingService
from funding_search.spreadsheets import coerce_record, iter_records, read_grid

TABLE = "funding_data"

ACME = {
    "organization_name": "Acme", "number_of_employees": 50, "website": "acme.com",
    "contact_name": "Wile E. Coyote", "contact_title": "CTO", "linkedin_url": "linkedin.com/in/wile",
}


def _names(records):
    return sorted(r.get("organization_name") for r in records)


# ============================================================================
# Ingestion
# ============================================================================

class TestIngestion:
    def test_ingest_counts_every_data_row(self, service, xlsx_factory, sample_rows):
        report = service.ingest_file(xlsx_factory(sample_rows))
        assert report.rows_inserted == 3
        assert service.count() == 3

    def test_blank_rows_are_inserted(self, service, xlsx_factory, row_factory):
        path = xlsx_factory([row_factory(organization_name="Acme"), [None] * 43, row_factory(organization_name="B")])
        assert service.ingest_file(path).rows_inserted == 3
        assert service.count() == 3

    def test_header_only_inserts_nothing(self, service, xlsx_factory):
        assert service.ingest_file(xlsx_factory([])).rows_inserted == 0
        assert service.count() == 0

    def test_ingest_upload_stores_then_ingests(self, service, settings, xlsx_factory, sample_rows):
        with open(xlsx_factory(sample_rows), "rb") as f:
            content = f.read()
        report = service.ingest_upload("../funding data.xlsx", content)
        assert report.filename == "funding data.xlsx"
        assert report.rows_inserted == 3
        assert os.path.dirname(report.stored_path) == settings.upload_dir
        assert report.stored_path.endswith("_funding data.xlsx")
        assert os.listdir(settings.upload_dir) == []

    def test_failed_upload_is_removed(self, service, settings):
        with pytest.raises(FormatError):
            service.ingest_upload("broken.xlsx", b"not a workbook")
        assert os.listdir(settings.upload_dir) == []

    def test_empty_xls_inserts_nothing(self, service, fake_xls):
        assert service.ingest_file(fake_xls([])).rows_inserted == 0
        assert service.count() == 0

    def test_xls_rows_ingested(self, service, fake_xls):
        path = fake_xls([
            [(xlrd.XL_CELL_TEXT, "Organization Name"), (xlrd.XL_CELL_TEXT, "Monthly Visits")],
            [(xlrd.XL_CELL_TEXT, "Acme"), (xlrd.XL_CELL_NUMBER, 1200.0)],
        ])
        assert service.ingest_file(path).rows_inserted == 1
        (record,) = service.search(SearchCriteria(organization_name="Acme"))
        assert record.get("monthly_visits") == 1200

    def test_unsupported_upload_is_not_stored(self, service, settings):
        with pytest.raises(UnsupportedFileTypeError):
            service.ingest_upload("data.csv", b"a,b\n1,2\n")
        assert not os.path.exists(settings.upload_dir)
        assert service.count() == 0

    def test_unsupported_file_is_deleted(self, service, tmp_path):
        path = tmp_path / "data.csv"
        path.write_text("a,b\n")
        with pytest.raises(UnsupportedFileTypeError):
            service.ingest_file(str(path))
        assert not path.exists()

    def test_corrupt_workbook_is_format_error(self, service, tmp_path):
        path = tmp_path / "broken.xlsx"
        path.write_bytes(b"not a workbook")
        with pytest.raises(FormatError):
            service.ingest_file(str(path))
        assert service.count() == 0

    def test_first_failing_row_aborts_the_rest(self, settings, in_memory_db, xlsx_factory, row_factory):
        in_memory_db.execute(
            f"CREATE TABLE {TABLE} ({REGISTRY.columns_ddl()}, "
            "CHECK (organization_name IS NULL OR organization_name <> 'BAD'))"
        )
        repo = FundingRepository(in_memory_db, TABLE, REGISTRY)
        repo.create_table()
        service = FundingService(settings, repo, UploadRepository(settings.upload_dir))
        path = xlsx_factory([row_factory(organization_name=n) for n in ("A", "B", "BAD", "C")])

        with pytest.raises(PersistenceError) as exc_info:
            service.ingest_file(path)

        assert exc_info.value.rows_inserted == 2
        assert exc_info.value.row_number == 4
        assert service.count() == 2

    def test_values_coerced_on_insert(self, service, xlsx_factory, row_factory):
        path = xlsx_factory([row_factory(
            organization_name=" Umbrella ", number_of_employees="2,000",
            actively_hiring="Yes", last_funding_amount="$1,500,000",
        )])
        service.ingest_file(path)
        (record,) = service.search(SearchCriteria(organization_name="Umbrella"))
        assert record.get("number_of_employees") == 2000
        assert record.get("actively_hiring") == 1
        assert record.get("last_funding_amount") == 1500000.0


# ============================================================================
# Search
# ============================================================================

class TestSearch:
    def test_predicates_are_ored(self, seeded_service):
        records = seeded_service.search(SearchCriteria(organization_name="Acme", contact_title="CEO"))
        assert _names(records) == ["Acme", "Globex"]

    def test_name_set(self, seeded_service):
        records = seeded_service.search(SearchCriteria(organization_name="Acme\nInitech, Nobody"))
        assert _names(records) == ["Acme", "Initech"]

    @pytest.mark.parametrize("employees,expected", [
        ("1001-5000", ["Globex"]),
        ("10001+", ["Initech"]),
        ("1-100, 10001+", ["Acme", "Initech"]),
        ("50-50", ["Acme"]),
    ])
    def test_employee_ranges(self, seeded_service, employees, expected):
        records = seeded_service.search(SearchCriteria(number_of_employees=employees))
        assert _names(records) == expected

    @pytest.mark.parametrize("employees", ["10001+", "1-100", "11-50", "1-1000000"])
    def test_text_employee_counts_never_match_numeric_filters(self, seeded_service, repository, employees):
        for name, count in (("Tiny", "11-50"), ("Odd", "unknown")):
            repository.insert_values(coerce_record(Record.from_mapping(
                {"organization_name": name, "number_of_employees": count},
            )))
        records = seeded_service.search(SearchCriteria(number_of_employees=employees))
        assert not {"Tiny", "Odd"} & set(_names(records))

    def test_text_employee_count_kept_as_text(self, seeded_service, repository):
        repository.insert_values(coerce_record(Record.from_mapping(
            {"organization_name": "Tiny", "number_of_employees": "11-50"},
        )))
        (record,) = seeded_service.search(SearchCriteria(organization_name="Tiny"))
        assert record.get("number_of_employees") == "11-50"

    def test_websites_split_on_whitespace(self, seeded_service):
        records = seeded_service.search(SearchCriteria(website="acme.com   globex.com"))
        assert _names(records) == ["Acme", "Globex"]

    def test_duplicate_rows_returned_once(self, seeded_service, repository):
        repository.insert_values(coerce_record(Record.from_mapping(ACME)))
        assert seeded_service.count() == 4
        records = seeded_service.search(SearchCriteria(organization_name="Acme"))
        assert len(records) == 1

    def test_no_match_is_empty_list(self, seeded_service):
        assert seeded_service.search(SearchCriteria(organization_name="Nobody")) == []

    def test_ignored_filter_alone_rejected(self, seeded_service):
        with pytest.raises(InvalidCriteriaError):
            seeded_service.search(SearchCriteria(industries="Energy"))

    def test_records_carry_every_field(self, seeded_service):
        (record,) = seeded_service.search(SearchCriteria(contact_title="VP Sales"))
        assert list(record.as_dict()) == list(REGISTRY.names())
        assert record.get("last_funding_amount_currency") == "USD"

    def test_search_async(self, seeded_service):
        records = asyncio.run(seeded_service.search_async(SearchCriteria(organization_name="Globex")))
        assert _names(records) == ["Globex"]


# ============================================================================
# Export
# ============================================================================

class TestExport:
    def test_export_filtered(self, seeded_service, tmp_path):
        artifact = seeded_service.export(ExportCriteria(organization_name="Acme", website="initech.com"))
        assert artifact.row_count == 2

        path = tmp_path / "out.xlsx"
        path.write_bytes(artifact.content)
        assert _names(iter_records(read_grid(str(path)))) == ["Acme", "Initech"]

    def test_export_without_filters_exports_all(self, seeded_service):
        assert seeded_service.export(ExportCriteria()).row_count == 3

    def test_export_no_match(self, seeded_service, settings):
        with pytest.raises(EmptyResultError):
            seeded_service.export(ExportCriteria(organization_name="Nobody"))

    def test_export_empty_table(self, service):
        with pytest.raises(EmptyResultError):
            service.export(ExportCriteria())

    def test_export_leaves_no_temp_files(self, seeded_service, settings):
        seeded_service.export(ExportCriteria())
        assert os.listdir(settings.export_dir) == []
