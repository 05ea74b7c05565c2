"""Centralized configuration for searchresults."""

from searchresults.config.reader import OutputMode, ReaderConfig, load_reader_config

__all__ = [
    "OutputMode",
    "ReaderConfig",
    "load_reader_config",
]
