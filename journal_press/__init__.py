"""Journal publishing core: submissions, catalog, search and citations."""
from .catalog import CatalogStore, InMemoryCatalog
from .citation import CitationStyle, format_citation
from .config import Config
from .errors import (
    BackendUnavailableError,
    JournalPressError,
    LoginRequiredError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from .library import CatalogService
from .search import search_articles
from .workflow import SubmissionWorkflow

__version__ = "1.0.0"
__all__ = [
    "BackendUnavailableError",
    "CatalogService",
    "CatalogStore",
    "CitationStyle",
    "Config",
    "InMemoryCatalog",
    "JournalPressError",
    "LoginRequiredError",
    "NotFoundError",
    "PermissionDeniedError",
    "SubmissionWorkflow",
    "ValidationError",
    "format_citation",
    "search_articles",
]
