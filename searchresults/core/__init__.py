"""Core interfaces and state definitions."""

from searchresults.core.interfaces import SearchResults
from searchresults.core.states import ReaderState

__all__ = [
    "ReaderState",
    "SearchResults",
]
