"""Shared fixtures for the results reader tests."""

import io
import logging
from pathlib import Path

import pytest

logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

DATA_DIR = Path(__file__).parent / "data"


class TrackingStream(io.BytesIO):
    """BytesIO that counts close() calls."""

    def __init__(self, data: bytes = b""):
        super().__init__(data)
        self.close_calls = 0

    def close(self) -> None:
        self.close_calls += 1
        super().close()


@pytest.fixture
def data_dir() -> Path:
    return DATA_DIR


@pytest.fixture
def open_data():
    """Open a wire-format fixture as an in-memory byte stream."""

    def _open(name: str) -> TrackingStream:
        return TrackingStream((DATA_DIR / name).read_bytes())

    return _open


@pytest.fixture
def stream_of():
    """Wrap raw bytes or text in a byte stream."""

    def _stream(data) -> TrackingStream:
        if isinstance(data, str):
            data = data.encode("utf-8")
        return TrackingStream(data)

    return _stream
