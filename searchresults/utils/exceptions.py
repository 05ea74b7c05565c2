"""Exception hierarchy for searchresults."""


class ResultsReaderException(Exception):
    """Base exception for all searchresults errors."""

    pass


class MalformedInputError(ResultsReaderException, ValueError):
    """Exception raised when the result stream does not follow its wire format."""

    pass


class UnsupportedOperationError(ResultsReaderException):
    """Exception raised when a reader cannot answer a query for its format."""

    pass


class InternalConsistencyError(ResultsReaderException):
    """Exception raised when the server breaks the result set contract."""

    pass


class ReaderStateError(ResultsReaderException):
    """Exception raised when a reader is used out of order."""

    pass


class ReaderDisposedError(ReaderStateError):
    """Exception raised when a closed reader is read from."""

    pass


class FieldConversionError(ResultsReaderException, ValueError):
    """Exception raised when a field value cannot be converted."""

    pass


class ConfigurationError(ResultsReaderException):
    """Exception raised due to configuration issues."""

    pass
