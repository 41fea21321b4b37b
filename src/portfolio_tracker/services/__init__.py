"""Business services: importers, link lifecycle, summaries and maintenance."""

from .admin_tasks import AdminService, AdminStats
from .importers import ImportResult, PortfolioImporter, RatingsImportResult, SchwabImportResult
from .position_links import LinkTransitions, PositionLinkManager
from .summary import AllocationLine, PortfolioSummary, SymbolHolding

__all__ = [
    "AdminService",
    "AdminStats",
    "AllocationLine",
    "ImportResult",
    "LinkTransitions",
    "PortfolioImporter",
    "PortfolioSummary",
    "PositionLinkManager",
    "RatingsImportResult",
    "SchwabImportResult",
    "SymbolHolding",
]
