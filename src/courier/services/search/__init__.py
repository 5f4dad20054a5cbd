"""Phone-number search."""

from .resolver import SearchError, SearchResolver, SearchResult, stop_from_record

__all__ = ["SearchError", "SearchResolver", "SearchResult", "stop_from_record"]
