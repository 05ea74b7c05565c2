"""Stream wrappers that carry result stream provenance."""

from typing import Any, BinaryIO


class ExportResultsStream:
    """Pass-through wrapper marking a byte stream as coming from the export endpoint.

    Export streams may hold several result sets, including previews, and the
    JSON export grammar (one object per line) cannot be told apart from the
    normal grammar by content alone. Readers check for this wrapper to pick
    the right behaviour.
    """

    def __init__(self, stream: BinaryIO):
        self._inner = stream

    @property
    def inner(self) -> BinaryIO:
        return self._inner

    @property
    def closed(self) -> bool:
        return self._inner.closed

    def readable(self) -> bool:
        return self._inner.readable()

    def read(self, size: int = -1) -> bytes:
        return self._inner.read(size)

    def readline(self, size: int = -1) -> bytes:
        return self._inner.readline(size)

    def close(self) -> None:
        self._inner.close()

    def __enter__(self) -> "ExportResultsStream":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def is_export_stream(stream: Any) -> bool:
    """Return True if the stream was produced by the export endpoint."""
    return isinstance(stream, ExportResultsStream)
