"""Repository layer for funding-search."""
from .funding_repository import FundingRepository, connect
from .upload_repository import UploadRepository

__all__ = ["FundingRepository", "UploadRepository", "connect"]
