"""
Streaming decoder for search result streams.

Turns XML and JSON result streams (including export-endpoint streams with
preview sets) into a lazy sequence of Event records.
"""

from searchresults.config import OutputMode, ReaderConfig, load_reader_config
from searchresults.readers import (
    MultiResultsReader,
    MultiResultsReaderJson,
    MultiResultsReaderXml,
    ResultsReader,
    ResultsReaderJson,
    ResultsReaderXml,
    ResultSet,
    open_multi_results_reader,
    open_results_reader,
)
from searchresults.schema import Event, FieldValue
from searchresults.utils import (
    ExportResultsStream,
    InternalConsistencyError,
    MalformedInputError,
    ReaderDisposedError,
    ReaderStateError,
    ResultsReaderException,
    UnsupportedOperationError,
)

__all__ = [
    "Event",
    "FieldValue",
    "ResultsReader",
    "ResultsReaderXml",
    "ResultsReaderJson",
    "MultiResultsReader",
    "MultiResultsReaderXml",
    "MultiResultsReaderJson",
    "ResultSet",
    "open_results_reader",
    "open_multi_results_reader",
    "ExportResultsStream",
    "OutputMode",
    "ReaderConfig",
    "load_reader_config",
    "ResultsReaderException",
    "MalformedInputError",
    "UnsupportedOperationError",
    "InternalConsistencyError",
    "ReaderStateError",
    "ReaderDisposedError",
]
