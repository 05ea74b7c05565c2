"""Configuration management using Pydantic Settings for result readers."""

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from searchresults.utils.env import load_env


class OutputMode(str, Enum):
    """Wire formats a search can be asked to return."""

    XML = "xml"
    JSON = "json"


class ReaderConfig(BaseSettings):
    """Results reader configuration."""

    # Format picked by the reader factory when the caller does not name one
    output_mode: OutputMode = OutputMode.XML

    # Streaming
    xml_read_size: int = Field(default=65536, gt=0, description="Bytes fed to the XML pull parser per read")
    json_buffer_size: int = Field(default=65536, gt=0, description="ijson buffer size")

    # Export endpoint
    skip_blank_export_lines: bool = True

    model_config = SettingsConfigDict(env_prefix="SEARCHRESULTS_", extra="ignore")


def load_reader_config(**overrides) -> ReaderConfig:
    """Load reader configuration from the environment (and .env) with optional overrides."""
    load_env()
    return ReaderConfig(**overrides)
