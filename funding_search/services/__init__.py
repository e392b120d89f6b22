"""Services layer for funding-search."""
from .funding_service import FundingService, IngestReport

__all__ = ["FundingService", "IngestReport"]
