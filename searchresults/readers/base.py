"""Shared results reader engine.

All result readers expose the same contract: a field name list, a preview
flag and a single-pass iterator over events. The per-format readers only
know how to advance to the next result set and how to iterate the events of
the current one. Everything else lives here:

- the initialization policy, which skips preview sets on export streams
  when the reader is used on its own;
- the concatenation policy, which joins consecutive final sets into one
  event sequence but never reads past a preview set.

A reader embedded in a multi results reader skips nothing; the container
hands each set to the caller separately.
"""

import logging
from typing import Any, BinaryIO, Iterator, List, Optional

from searchresults.config.reader import ReaderConfig, load_reader_config
from searchresults.core.states import ReaderState
from searchresults.schema.event import Event
from searchresults.utils.exceptions import (
    InternalConsistencyError,
    ReaderDisposedError,
    ReaderStateError,
)
from searchresults.utils.streams import is_export_stream

logger = logging.getLogger(__name__)


def resolve_config(config: Optional[ReaderConfig], stream: BinaryIO) -> ReaderConfig:
    """Return the given configuration, or load it from the environment and .env.

    The stream is closed when the environment settings are invalid, since no
    reader will exist to close it.
    """
    if config is not None:
        return config
    try:
        return load_reader_config()
    except Exception:
        stream.close()
        raise


class ResultsReader:
    """Base class for streaming result readers."""

    def __init__(
        self,
        stream: BinaryIO,
        config: Optional[ReaderConfig] = None,
        *,
        is_export: Optional[bool] = None,
        in_multi_reader: bool = False,
    ):
        """
        Initialize the shared reader state.

        Args:
            stream: Readable binary stream holding the search results
            config: Reader configuration (defaults to environment settings)
            is_export: Whether the stream comes from the export endpoint.
                Detected from an ExportResultsStream wrapper when omitted.
            in_multi_reader: Whether the reader is owned by a multi results reader
        """
        self.config = resolve_config(config, stream)
        self.is_export_stream = is_export if is_export is not None else is_export_stream(stream)
        self.in_multi_reader = in_multi_reader
        self.state = ReaderState.NOT_STARTED
        self._stream = stream
        self._preview = False
        self._fields: List[str] = []
        self._events_requested = False

    @property
    def fields(self) -> List[str]:
        """Field names that may appear in a result of the current set.

        Any given result contains a subset of these fields.
        """
        return list(self._fields)

    @property
    def is_preview(self) -> bool:
        """Whether the current set is a preview from an unfinished search."""
        return self._preview

    @property
    def is_disposed(self) -> bool:
        return self.state == ReaderState.DISPOSED

    def _finish_initialization(self) -> None:
        """Position a stand-alone reader on its first usable set.

        Reads the metadata of the first set and, for export streams, skips
        preview sets until a final set (or the end of the stream) is found.
        """
        if self.in_multi_reader:
            return

        while True:
            if not self.advance_to_next_set():
                break

            # No skipping of result sets if the stream is not from an export endpoint
            if not self.is_export_stream:
                break

            if not self._preview:
                break

            logger.debug("Skipping preview result set of export stream")

    def advance_to_next_set(self) -> bool:
        """Advance to the next set, skipping any events left in the current one.

        Returns:
            False if the end of the stream is reached
        """
        self._ensure_open()
        if self.state == ReaderState.EXHAUSTED:
            return False

        advanced = self._read_next_set()
        if self.state == ReaderState.DISPOSED:
            return False
        self.state = ReaderState.IN_SET if advanced else ReaderState.EXHAUSTED
        logger.debug(f"{type(self).__name__} advanced to state {self.state.value} (preview={self._preview})")
        return advanced

    def events_of_current_set(self) -> Iterator[Event]:
        """Iterate the events of the current set without advancing past it."""
        self._ensure_open()
        if self.state != ReaderState.IN_SET:
            return

        for event in self._iter_current_set():
            yield event
            self._ensure_open()

        if self.state == ReaderState.IN_SET:
            self.state = ReaderState.BETWEEN_SETS

    def events(self) -> Iterator[Event]:
        """Return the single-pass iterator over all events of the stream.

        Raises:
            ReaderStateError: If an iterator was already handed out
        """
        self._ensure_open()
        if self._events_requested:
            raise ReaderStateError(
                "Events can only be iterated once; open a new reader over a new stream"
            )
        self._events_requested = True
        return ConcatenatingEventIterator(self)

    def __iter__(self) -> Iterator[Event]:
        return self.events()

    def close(self) -> None:
        """Release the parser and close the underlying stream.

        Safe to call several times, mid-iteration, or after a failed constructor.
        """
        if self.state == ReaderState.DISPOSED:
            return

        stream, self._stream = self._stream, None
        self.state = ReaderState.DISPOSED
        try:
            self._release()
        except Exception as e:
            logger.warning(f"Failed to release parser of {type(self).__name__}: {e}")
            raise
        finally:
            if stream is not None:
                stream.close()

    def __enter__(self) -> "ResultsReader":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self.state == ReaderState.DISPOSED:
            raise ReaderDisposedError(f"{type(self).__name__} has been closed")

    def _read_next_set(self) -> bool:
        """Format-specific: move to the next set and read its metadata."""
        raise NotImplementedError

    def _iter_current_set(self) -> Iterator[Event]:
        """Format-specific: yield the events of the current set."""
        raise NotImplementedError

    def _release(self) -> None:
        """Format-specific: tear down parsers. Must tolerate partial construction."""
        return None


class ConcatenatingEventIterator:
    """Pull iterator joining the result sets of one reader into one sequence.

    Final sets are concatenated. A preview set ends the sequence, since each
    preview may be a snapshot or a partial aggregation that cannot be merged
    with what follows.
    """

    def __init__(self, reader: ResultsReader):
        self._reader = reader
        self._current: Optional[Iterator[Event]] = None
        self._done = False

    def __iter__(self) -> "ConcatenatingEventIterator":
        return self

    def __next__(self) -> Event:
        reader = self._reader
        while not self._done:
            reader._ensure_open()

            if self._current is None:
                if reader.state == ReaderState.NOT_STARTED and not reader.advance_to_next_set():
                    break
                if reader.state != ReaderState.IN_SET:
                    break
                self._current = reader.events_of_current_set()

            try:
                return next(self._current)
            except StopIteration:
                self._current = None

            # The internal flag is used rather than is_preview, which raises
            # for streams that never carry a preview flag.
            if reader._preview:
                break

            if not reader.advance_to_next_set():
                break

            if reader._preview:
                self._done = True
                logger.error("Preview result set found after a final result set")
                raise InternalConsistencyError(
                    "Preview result set should never be after a final set"
                )

        self._done = True
        raise StopIteration
