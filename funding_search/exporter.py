"""Project query results into a spreadsheet grid and a downloadable workbook."""
from __future__ import annotations

import logging
import os
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Sequence

from openpyxl.utils.exceptions import IllegalCharacterError

from .domain import EXPORT_FILENAME, REGISTRY, Record, SchemaRegistry
from .errors import EmptyResultError, ExportIOError
from .spreadsheets import write_workbook

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportArtifact:
    filename: str
    content: bytes
    row_count: int


def records_to_grid(records: Sequence[Record], registry: SchemaRegistry = REGISTRY) -> list[list[Any]]:
    """Header row of field labels followed by one row per record, in ordinal order."""
    if not records:
        raise EmptyResultError("No data available for export")

    rows: list[list[Any]] = [list(registry.labels())]
    for record in records:
        if record.registry is not registry:
            raise ValueError("Record was built against a different schema registry")
        rows.append(list(record.values))
    return rows


@contextmanager
def temporary_export_file(directory: str) -> Iterator[Path]:
    """Yield a fresh workbook path inside ``directory`` and always remove it afterwards."""
    try:
        os.makedirs(directory, exist_ok=True)
    except OSError as exc:
        raise ExportIOError(f"Cannot create export directory {directory}: {exc}") from exc

    path = Path(directory) / f"export_{uuid.uuid4().hex}.xlsx"
    try:
        yield path
    except BaseException:
        _remove_export_file(path, failing=True)
        raise
    _remove_export_file(path, failing=False)


def _remove_export_file(path: Path, *, failing: bool) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        if failing:
            logger.error("Could not remove export file %s: %s", path, exc)
            return
        raise ExportIOError(f"Could not remove export file {path}: {exc}") from exc


def build_export_artifact(
    records: Sequence[Record],
    directory: str,
    registry: SchemaRegistry = REGISTRY,
) -> ExportArtifact:
    grid = records_to_grid(records, registry)
    with temporary_export_file(directory) as path:
        try:
            write_workbook(grid, str(path))
            content = path.read_bytes()
        except (OSError, ValueError, IllegalCharacterError) as exc:
            raise ExportIOError(f"Could not write export file: {exc}") from exc
    logger.info("Exported %d row(s)", len(records))
    return ExportArtifact(filename=EXPORT_FILENAME, content=content, row_count=len(records))
