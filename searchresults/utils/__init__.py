"""Utility functions for searchresults."""

from searchresults.utils.env import load_env
from searchresults.utils.exceptions import (
    ConfigurationError,
    FieldConversionError,
    InternalConsistencyError,
    MalformedInputError,
    ReaderDisposedError,
    ReaderStateError,
    ResultsReaderException,
    UnsupportedOperationError,
)
from searchresults.utils.streams import ExportResultsStream, is_export_stream

__all__ = [
    # Environment
    "load_env",
    # Streams
    "ExportResultsStream",
    "is_export_stream",
    # Exceptions
    "ResultsReaderException",
    "MalformedInputError",
    "UnsupportedOperationError",
    "InternalConsistencyError",
    "ReaderStateError",
    "ReaderDisposedError",
    "FieldConversionError",
    "ConfigurationError",
]
