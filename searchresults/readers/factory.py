"""Reader selection by output mode."""

from typing import BinaryIO, Optional, Union

from searchresults.config.reader import OutputMode, ReaderConfig
from searchresults.readers.base import ResultsReader, resolve_config
from searchresults.readers.json_reader import ResultsReaderJson
from searchresults.readers.multi import MultiResultsReader, MultiResultsReaderJson, MultiResultsReaderXml
from searchresults.readers.xml_reader import ResultsReaderXml
from searchresults.utils.exceptions import ConfigurationError


def _resolve_mode(
    output_mode: Optional[Union[OutputMode, str]], config: ReaderConfig, stream: BinaryIO
) -> OutputMode:
    if output_mode is None:
        return config.output_mode
    try:
        return OutputMode(output_mode)
    except ValueError as e:
        stream.close()
        raise ConfigurationError(f"Unsupported output mode: {output_mode!r}") from e


def open_results_reader(
    stream: BinaryIO,
    output_mode: Optional[Union[OutputMode, str]] = None,
    *,
    is_export: Optional[bool] = None,
    config: Optional[ReaderConfig] = None,
) -> ResultsReader:
    """
    Open a results reader for the format the search was asked to return.

    Args:
        stream: Readable binary stream holding the search results
        output_mode: "xml" or "json" (defaults to the configured output mode)
        is_export: Whether the stream comes from the export endpoint
        config: Reader configuration

    Returns:
        A reader positioned on its first usable result set
    """
    config = resolve_config(config, stream)
    mode = _resolve_mode(output_mode, config, stream)
    if mode == OutputMode.JSON:
        return ResultsReaderJson(stream, config, is_export=is_export)
    return ResultsReaderXml(stream, config, is_export=is_export)


def open_multi_results_reader(
    stream: BinaryIO,
    output_mode: Optional[Union[OutputMode, str]] = None,
    *,
    config: Optional[ReaderConfig] = None,
) -> MultiResultsReader:
    """Open a multi results reader, which exposes every result set separately."""
    config = resolve_config(config, stream)
    mode = _resolve_mode(output_mode, config, stream)
    if mode == OutputMode.JSON:
        return MultiResultsReaderJson(stream, config)
    return MultiResultsReaderXml(stream, config)
