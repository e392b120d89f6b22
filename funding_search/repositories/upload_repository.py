"""
Upload repository for storing received spreadsheets on disk.

File naming convention: {upload_dir}/{millisecond timestamp}_{filename}
"""
from __future__ import annotations

import logging
import os
import time

logger = logging.getLogger(__name__)


class UploadRepository:
    """Filesystem operations for uploaded spreadsheets."""

    def __init__(self, upload_dir: str) -> None:
        self._upload_dir = upload_dir

    def _ensure_upload_dir(self) -> str:
        os.makedirs(self._upload_dir, exist_ok=True)
        return self._upload_dir

    def save_file(self, filename: str, content: bytes) -> str:
        """Save uploaded file to disk."""
        upload_dir = self._ensure_upload_dir()
        file_path = os.path.join(upload_dir, f"{int(time.time() * 1000)}_{filename}")
        with open(file_path, "wb") as f:
            f.write(content)
        return file_path

    def delete_file(self, file_path: str) -> None:
        """Delete a stored upload; a missing file is not an error."""
        try:
            os.remove(file_path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not delete upload %s: %s", file_path, exc)
