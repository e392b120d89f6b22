from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Any

from dotenv import load_dotenv

load_dotenv()

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_DEFAULT_TABLE = "funding_data"


def _getenv_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _normalize_table_name(raw: str | None) -> str:
    value = (raw or _DEFAULT_TABLE).strip()
    return value if _IDENTIFIER.match(value) else _DEFAULT_TABLE


def _split_origins(raw: str | None) -> tuple[str, ...]:
    value = raw or "http://localhost:3000"
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    db_path: str
    table_name: str
    upload_dir: str
    export_dir: str
    max_upload_mb: int
    cors_origins: tuple[str, ...]
    host: str
    port: int
    log_level: str


settings = Settings(
    db_path=os.getenv("DB_PATH", "funding.db"),
    table_name=_normalize_table_name(os.getenv("TABLE_NAME")),
    upload_dir=os.getenv("UPLOAD_DIR", "uploads"),
    export_dir=os.getenv("EXPORT_DIR", "temp"),
    max_upload_mb=_getenv_int("MAX_UPLOAD_MB", 25),
    cors_origins=_split_origins(os.getenv("CORS_ORIGINS")),
    host=os.getenv("HOST", "127.0.0.1"),
    port=_getenv_int("PORT", 2000),
    log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
)

_RUNTIME_OVERRIDES: dict[str, Any] = {}


def get_settings() -> Settings:
    if not _RUNTIME_OVERRIDES:
        return settings
    base = settings
    return Settings(
        db_path=_RUNTIME_OVERRIDES.get("db_path", base.db_path),
        table_name=_RUNTIME_OVERRIDES.get("table_name", base.table_name),
        upload_dir=_RUNTIME_OVERRIDES.get("upload_dir", base.upload_dir),
        export_dir=_RUNTIME_OVERRIDES.get("export_dir", base.export_dir),
        max_upload_mb=_RUNTIME_OVERRIDES.get("max_upload_mb", base.max_upload_mb),
        cors_origins=_RUNTIME_OVERRIDES.get("cors_origins", base.cors_origins),
        host=_RUNTIME_OVERRIDES.get("host", base.host),
        port=_RUNTIME_OVERRIDES.get("port", base.port),
        log_level=_RUNTIME_OVERRIDES.get("log_level", base.log_level),
    )


def update_settings(overrides: dict[str, Any]) -> Settings:
    normalized: dict[str, Any] = {}
    for key, value in overrides.items():
        if value is None:
            continue
        if key == "table_name":
            normalized[key] = _normalize_table_name(str(value))
        elif key == "cors_origins":
            normalized[key] = _split_origins(value) if isinstance(value, str) else tuple(value)
        elif key in {"max_upload_mb", "port"}:
            normalized[key] = int(value)
        elif key == "log_level":
            normalized[key] = str(value).upper()
        else:
            normalized[key] = value
    _RUNTIME_OVERRIDES.update(normalized)
    return get_settings()


def reset_settings() -> Settings:
    _RUNTIME_OVERRIDES.clear()
    return settings
