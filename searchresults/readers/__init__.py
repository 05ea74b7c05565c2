"""Streaming result readers."""

from searchresults.readers.base import ConcatenatingEventIterator, ResultsReader
from searchresults.readers.factory import open_multi_results_reader, open_results_reader
from searchresults.readers.json_reader import ExportRowReader, JsonLayout, ResultsReaderJson
from searchresults.readers.multi import (
    MultiResultsReader,
    MultiResultsReaderJson,
    MultiResultsReaderXml,
    ResultSet,
)
from searchresults.readers.xml_reader import ResultsReaderXml

__all__ = [
    # Engine
    "ResultsReader",
    "ConcatenatingEventIterator",
    # Formats
    "ResultsReaderXml",
    "ResultsReaderJson",
    "ExportRowReader",
    "JsonLayout",
    # Multi-set
    "MultiResultsReader",
    "MultiResultsReaderXml",
    "MultiResultsReaderJson",
    "ResultSet",
    # Factory
    "open_results_reader",
    "open_multi_results_reader",
]
