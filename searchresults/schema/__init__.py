"""Schema definitions for search result events."""

from searchresults.schema.event import Event, FieldValue

__all__ = [
    "Event",
    "FieldValue",
]
