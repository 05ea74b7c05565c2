"""Multi results readers: one SearchResults per result set.

A single results reader skips export previews and concatenates final sets.
A multi results reader hands every set to the caller, previews included,
each as its own SearchResults. Only the multi reader needs to be closed.
"""

import logging
from typing import Any, BinaryIO, Iterator, List, Optional

from searchresults.config.reader import ReaderConfig
from searchresults.core.interfaces import SearchResults
from searchresults.readers.base import ResultsReader
from searchresults.readers.json_reader import ResultsReaderJson
from searchresults.readers.xml_reader import ResultsReaderXml
from searchresults.schema.event import Event

logger = logging.getLogger(__name__)


class ResultSet:
    """One result set of a multi results reader.

    Valid until the multi reader moves on to the next set.
    """

    def __init__(self, reader: ResultsReader, index: int):
        self._reader = reader
        self.index = index

    @property
    def is_preview(self) -> bool:
        return self._reader.is_preview

    @property
    def fields(self) -> List[str]:
        return self._reader.fields

    def __iter__(self) -> Iterator[Event]:
        return self._reader.events_of_current_set()


class MultiResultsReader:
    """Iterates the result sets of an underlying reader built for multi-set use."""

    def __init__(self, reader: ResultsReader):
        self.reader = reader

    def __iter__(self) -> Iterator[SearchResults]:
        index = 0
        while self.reader.advance_to_next_set():
            logger.debug(f"Multi reader at result set {index} (preview={self.reader._preview})")
            yield ResultSet(self.reader, index)
            index += 1

    def close(self) -> None:
        self.reader.close()

    def __enter__(self) -> "MultiResultsReader":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class MultiResultsReaderXml(MultiResultsReader):
    """Multi results reader for XML streams."""

    def __init__(self, stream: BinaryIO, config: Optional[ReaderConfig] = None):
        super().__init__(ResultsReaderXml(stream, config, in_multi_reader=True))


class MultiResultsReaderJson(MultiResultsReader):
    """Multi results reader for JSON streams in the export (one row per line) format."""

    def __init__(self, stream: BinaryIO, config: Optional[ReaderConfig] = None):
        super().__init__(ResultsReaderJson(stream, config, in_multi_reader=True))
