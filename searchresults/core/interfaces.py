"""Protocol-based interfaces for result readers."""

from typing import Iterator, List, Protocol

from searchresults.schema.event import Event


class SearchResults(Protocol):
    """Protocol for one result set (or a reader that concatenates sets)."""

    @property
    def is_preview(self) -> bool:
        """Whether the results are a preview of an unfinished search."""
        ...

    @property
    def fields(self) -> List[str]:
        """All field names that may appear in a result of the set."""
        ...

    def __iter__(self) -> Iterator[Event]:
        ...
