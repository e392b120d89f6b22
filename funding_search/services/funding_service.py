"""
Ingestion and export orchestration.

Ingestion reads an uploaded workbook and inserts one row at a time. The
first failing insert aborts the remaining rows; the raised PersistenceError
reports how many rows were committed before it. Stored uploads are
removed once ingestion finishes, whatever the outcome.
"""
from __future__ import annotations

import asyncio
import logging
import os
import sqlite3
from dataclasses import dataclass

from ..config import Settings
from ..domain import Record, SchemaRegistry
from ..errors import PersistenceError, UnsupportedFileTypeError
from ..exporter import ExportArtifact, build_export_artifact
from ..query import CompiledQuery, ExportCriteria, SearchCriteria, compile_export, compile_search
from ..repositories import FundingRepository, UploadRepository
from ..spreadsheets import (
    coerce_record,
    first_data_row,
    get_spreadsheet_type,
    iter_records,
    read_grid,
    sanitize_filename,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestReport:
    filename: str
    stored_path: str
    rows_inserted: int


class FundingService:
    """Drives decode -> persist for uploads and query -> export for downloads."""

    def __init__(
        self,
        settings: Settings,
        repository: FundingRepository,
        uploads: UploadRepository,
    ) -> None:
        self._settings = settings
        self._repo = repository
        self._uploads = uploads

    @property
    def registry(self) -> SchemaRegistry:
        return self._repo.registry

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest_upload(self, filename: str, content: bytes) -> IngestReport:
        safe_name = sanitize_filename(filename)
        if get_spreadsheet_type(safe_name) is None:
            raise UnsupportedFileTypeError("Only Excel files are allowed (.xlsx, .xls)")
        stored_path = self._uploads.save_file(safe_name, content)
        try:
            rows = self._ingest_path(stored_path)
        finally:
            self._uploads.delete_file(stored_path)
        return IngestReport(filename=safe_name, stored_path=stored_path, rows_inserted=rows)

    def ingest_file(self, file_path: str) -> IngestReport:
        if get_spreadsheet_type(file_path) is None:
            self._uploads.delete_file(file_path)
            raise UnsupportedFileTypeError("Only Excel files are allowed (.xlsx, .xls)")
        rows = self._ingest_path(file_path)
        return IngestReport(filename=os.path.basename(file_path), stored_path=file_path, rows_inserted=rows)

    def _ingest_path(self, file_path: str) -> int:
        grid = read_grid(file_path)
        records = iter_records(grid, self.registry)
        row_number = first_data_row(grid)
        inserted = 0
        for record in records:
            try:
                self._repo.insert_values(coerce_record(record))
            except sqlite3.Error as exc:
                logger.exception(
                    "Ingestion of %s aborted at sheet row %d after %d row(s)",
                    file_path, row_number, inserted,
                )
                raise PersistenceError(
                    f"Failed to insert sheet row {row_number}: {exc}",
                    rows_inserted=inserted,
                    row_number=row_number,
                ) from exc
            inserted += 1
            row_number += 1
        logger.info("Ingested %d row(s) from %s", inserted, file_path)
        return inserted

    # ------------------------------------------------------------------
    # Search + export
    # ------------------------------------------------------------------

    def search(self, criteria: SearchCriteria) -> list[Record]:
        compiled = compile_search(criteria, table_name=self._repo.table_name, registry=self.registry)
        return self._execute(compiled)

    def export(self, criteria: ExportCriteria) -> ExportArtifact:
        compiled = compile_export(criteria, table_name=self._repo.table_name, registry=self.registry)
        records = self._execute(compiled)
        return build_export_artifact(records, self._settings.export_dir, self.registry)

    def count(self) -> int:
        try:
            return self._repo.count()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to count rows: {exc}") from exc

    def _execute(self, compiled: CompiledQuery) -> list[Record]:
        try:
            records = self._repo.execute_select(compiled)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Query failed: {exc}") from exc
        logger.info("Query matched %d row(s) using %d predicate(s)", len(records), len(compiled.predicates))
        return records

    # Async wrappers
    async def ingest_upload_async(self, filename: str, content: bytes) -> IngestReport:
        return await asyncio.to_thread(self.ingest_upload, filename, content)

    async def search_async(self, criteria: SearchCriteria) -> list[Record]:
        return await asyncio.to_thread(self.search, criteria)

    async def export_async(self, criteria: ExportCriteria) -> ExportArtifact:
        return await asyncio.to_thread(self.export, criteria)

    async def count_async(self) -> int:
        return await asyncio.to_thread(self.count)
