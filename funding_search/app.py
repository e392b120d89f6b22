"""
FastAPI application for funding search.

Routes delegate business logic to the services layer.
"""
from __future__ import annotations

import logging
import sqlite3
from typing import Any, Literal

from fastapi import Depends, FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel

from .config import get_settings
from .domain import REGISTRY, XLSX_MEDIA_TYPE, ErrorCode
from .errors import (
    EmptyResultError,
    ExportIOError,
    FormatError,
    InvalidCriteriaError,
    PersistenceError,
    UnsupportedFileTypeError,
)
from .query import ExportCriteria, SearchCriteria
from .repositories import FundingRepository, UploadRepository, connect
from .services import FundingService

logger = logging.getLogger(__name__)

app = FastAPI(title="Funding Search", version="1.0.0", docs_url="/docs", redoc_url="/redoc", openapi_url="/openapi.json")
app.add_middleware(CORSMiddleware, allow_origins=list(get_settings().cors_origins), allow_credentials=True, allow_methods=["*"], allow_headers=["*"])


# ============================================================================
# Pydantic Models
# ============================================================================

class UploadResponse(BaseModel):
    message: str
    filename: str
    rows_inserted: int


class SearchResponse(BaseModel):
    data: list[dict[str, Any]]
    count: int


class FieldModel(BaseModel):
    name: str
    kind: str
    label: str
    ordinal: int


class SchemaResponse(BaseModel):
    fields: list[FieldModel]


class HealthResponse(BaseModel):
    status: Literal["ok", "error"]
    row_count: int | None = None
    message: str | None = None


# ============================================================================
# Service Factories
# ============================================================================

_db_conn: sqlite3.Connection | None = None


def _connection() -> sqlite3.Connection:
    global _db_conn
    if _db_conn is None:
        _db_conn = connect(get_settings().db_path)
    return _db_conn


def _funding_repo() -> FundingRepository:
    return FundingRepository(_connection(), get_settings().table_name, REGISTRY)


def get_funding_service() -> FundingService:
    s = get_settings()
    return FundingService(s, _funding_repo(), UploadRepository(s.upload_dir))


def close_connection() -> None:
    global _db_conn
    if _db_conn is not None:
        _db_conn.close()
        _db_conn = None


@app.on_event("startup")
async def startup() -> None:
    _funding_repo().create_table()
    logger.info("Funding table %s ready in %s", get_settings().table_name, get_settings().db_path)


@app.on_event("shutdown")
async def shutdown() -> None:
    close_connection()


# ============================================================================
# Upload Route
# ============================================================================

@app.post("/api/upload", response_model=UploadResponse)
async def upload_file(file: UploadFile = File(...), service: FundingService = Depends(get_funding_service)) -> UploadResponse:
    s = get_settings()
    try:
        if not file.filename:
            raise HTTPException(400, {"code": ErrorCode.INVALID_FILENAME, "message": "No file uploaded"})
        content = await file.read()
        if len(content) > s.max_upload_mb * 1024 * 1024:
            raise HTTPException(413, {"code": ErrorCode.FILE_TOO_LARGE, "message": f"File exceeds {s.max_upload_mb}MB"})
        report = await service.ingest_upload_async(file.filename, content)
    except UnsupportedFileTypeError as e:
        raise HTTPException(400, {"code": ErrorCode.UNSUPPORTED_TYPE, "message": str(e)})
    except FormatError as e:
        raise HTTPException(422, {"code": ErrorCode.INVALID_FORMAT, "message": str(e)})
    except PersistenceError as e:
        raise HTTPException(500, {"code": ErrorCode.PERSISTENCE_ERROR, "message": "Error processing the file",
                                  "rows_inserted": e.rows_inserted, "row_number": e.row_number})
    finally:
        await file.close()
    return UploadResponse(
        message="File uploaded successfully and data inserted into the database",
        filename=report.filename,
        rows_inserted=report.rows_inserted,
    )


# ============================================================================
# Search + Export Routes
# ============================================================================

@app.post("/api/search", response_model=SearchResponse)
async def search(criteria: SearchCriteria, service: FundingService = Depends(get_funding_service)) -> SearchResponse:
    try:
        records = await service.search_async(criteria)
    except InvalidCriteriaError as e:
        raise HTTPException(400, {"code": ErrorCode.INVALID_CRITERIA, "message": str(e)})
    except PersistenceError as e:
        logger.error("Search failed: %s", e)
        raise HTTPException(500, {"code": ErrorCode.PERSISTENCE_ERROR, "message": "Failed to search company data"})
    return SearchResponse(data=[r.as_dict() for r in records], count=len(records))


@app.get("/api/export")
async def export(
    organization_name: str | None = Query(None),
    website: str | None = Query(None),
    service: FundingService = Depends(get_funding_service),
) -> Response:
    criteria = ExportCriteria(organization_name=organization_name, website=website)
    try:
        artifact = await service.export_async(criteria)
    except InvalidCriteriaError as e:
        raise HTTPException(400, {"code": ErrorCode.INVALID_CRITERIA, "message": str(e)})
    except EmptyResultError as e:
        raise HTTPException(404, {"code": ErrorCode.NO_DATA, "message": str(e)})
    except ExportIOError as e:
        logger.error("Export failed: %s", e)
        raise HTTPException(500, {"code": ErrorCode.EXPORT_ERROR, "message": "Error exporting file"})
    except PersistenceError as e:
        logger.error("Export query failed: %s", e)
        raise HTTPException(500, {"code": ErrorCode.PERSISTENCE_ERROR, "message": "Failed to export data"})
    return Response(
        content=artifact.content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{artifact.filename}"'},
    )


# ============================================================================
# Schema & Health Routes
# ============================================================================

@app.get("/api/schema", response_model=SchemaResponse)
async def get_schema() -> SchemaResponse:
    return SchemaResponse(fields=[
        FieldModel(name=f.name, kind=f.kind, label=f.label, ordinal=f.ordinal) for f in REGISTRY
    ])


@app.get("/api/health", response_model=HealthResponse)
async def health_check(service: FundingService = Depends(get_funding_service)) -> HealthResponse:
    try:
        return HealthResponse(status="ok", row_count=await service.count_async())
    except PersistenceError as e:
        return HealthResponse(status="error", message=str(e))


@app.get("/")
async def root() -> dict:
    return {"service": "Funding Search", "docs": "/docs"}
