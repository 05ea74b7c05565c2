"""Streaming JSON results reader.

Three JSON layouts are supported:

- Pre-5.0 servers return a flat top-level array of events:
      [{"sum(kb)":"14372242.758775","series":"twitter"}, ...]
- 5.0 servers, normal endpoints, return an object with the events under
  "results":
      {"preview":false,"init_offset":0,"messages":[...],"results":[{...}, ...]}
- 5.0 servers, export endpoint, return one object per line:
      {"preview":true,"offset":0,"lastrow":true,"result":{"host":"a","count":"62"}}

The export grammar cannot be told apart from the normal one by content, so
it is selected from the stream provenance (see ExportResultsStream).
"""

import io
import logging
from enum import Enum
from typing import Any, BinaryIO, FrozenSet, Iterator, List, Optional, Tuple

import ijson

from searchresults.config.reader import ReaderConfig
from searchresults.readers.base import ResultsReader
from searchresults.schema.event import Event, FieldValue
from searchresults.utils.exceptions import MalformedInputError, UnsupportedOperationError

logger = logging.getLogger(__name__)

JsonToken = Tuple[str, Any]

_CONTAINER_START = ("start_map", "start_array")
_CONTAINER_END = ("end_map", "end_array")
_WHITESPACE = b" \t\r\n"
_UTF8_BOM = b"\xef\xbb\xbf"
# Row metadata keys, never event fields
_ROW_FLAGS = frozenset(("preview", "lastrow"))


class JsonLayout(str, Enum):
    LEGACY_ARRAY = "legacy_array"
    RESULTS_OBJECT = "results_object"
    EXPORT_LINES = "export_lines"


class JsonTokenCursor:
    """Forward-only cursor over ijson basic_parse events."""

    def __init__(self, source: Any, buf_size: int):
        self._events = ijson.basic_parse(source, buf_size=buf_size)

    def next(self) -> Optional[JsonToken]:
        """Return the next (event, value) pair, or None at the end of input."""
        if self._events is None:
            return None
        try:
            return next(self._events)
        except StopIteration:
            return None
        except ijson.JSONError as e:
            raise MalformedInputError(f"Malformed JSON results: {e}") from e

    def next_required(self, context: str) -> JsonToken:
        token = self.next()
        if token is None:
            raise MalformedInputError(f"Unexpected end of JSON stream while reading {context}")
        return token

    def skip_value(self) -> None:
        """Skip the next value, including nested containers."""
        kind, _ = self.next_required("a value")
        if kind in _CONTAINER_START:
            self.skip_container()

    def skip_container(self) -> None:
        """Skip to the end of a container whose start token was just read."""
        depth = 1
        while depth:
            kind, _ = self.next_required("a nested value")
            if kind in _CONTAINER_START:
                depth += 1
            elif kind in _CONTAINER_END:
                depth -= 1

    def close(self) -> None:
        if self._events is not None:
            close = getattr(self._events, "close", None)
            if close is not None:
                close()
            self._events = None


class _ReplayStream:
    """Byte stream that replays an already consumed prefix before its source."""

    def __init__(self, prefix: bytes, stream: BinaryIO):
        self._prefix = prefix
        self._stream = stream

    def read(self, size: int = -1) -> bytes:
        if not self._prefix or size == 0:
            return self._stream.read(size)
        data, self._prefix = self._prefix, b""
        if size < 0:
            return data + self._stream.read()
        if size > len(data):
            data += self._stream.read(size - len(data))
        return data


def _scalar_text(kind: str, value: Any) -> Optional[str]:
    if kind == "string":
        return value
    if kind == "number":
        return str(value)
    if kind == "boolean":
        return "true" if value else "false"
    return None


def read_event_object(cursor: JsonTokenCursor, excluded: FrozenSet[str] = frozenset()) -> Event:
    """Read one event object whose start_map token was just consumed.

    Events are almost flat: string values become single-valued fields, array
    values become multi-valued fields, nested objects are skipped.

    Args:
        cursor: Cursor positioned just after the start_map token
        excluded: Keys to skip rather than turn into fields
    """
    event = Event()
    while True:
        kind, name = cursor.next_required("an event")
        if kind == "end_map":
            return event

        if name in excluded:
            cursor.skip_value()
            continue

        kind, value = cursor.next_required(f"field {name!r}")
        if kind == "start_array":
            event[name] = FieldValue(values=_read_string_array(cursor))
        elif kind == "start_map":
            cursor.skip_container()
        else:
            text = _scalar_text(kind, value)
            if text is not None:
                event[name] = FieldValue(single=text)


def _read_string_array(cursor: JsonTokenCursor) -> List[str]:
    values: List[str] = []
    while True:
        kind, value = cursor.next_required("a multi-valued field")
        if kind == "end_array":
            return values
        if kind in _CONTAINER_START:
            cursor.skip_container()
            continue
        text = _scalar_text(kind, value)
        if text is not None:
            values.append(text)


def _read_payload(cursor: JsonTokenCursor, excluded: FrozenSet[str] = frozenset()) -> Event:
    kind, _ = cursor.next_required("a result row")
    if kind != "start_map":
        raise MalformedInputError(f"Expected a result object in export row, got {kind}")
    return read_event_object(cursor, excluded)


class ExportRowReader:
    """Reads the export endpoint's one-object-per-line stream, a row at a time.

    Each row gets its own parser scoped to the line. After read_into_row()
    the row's preview/lastrow flags are available and `cursor` is positioned
    just before the row's result object.
    """

    def __init__(self, stream: BinaryIO, buf_size: int, skip_blank_lines: bool = True):
        self._stream = stream
        self._buf_size = buf_size
        self._skip_blank_lines = skip_blank_lines
        self.cursor: Optional[JsonTokenCursor] = None
        self.preview: Optional[bool] = None
        # Initially true so that the first row starts a new set
        self.last_row = True
        self.in_row = False
        self.rows_read = 0
        # Keys to leave out of the payload when the row object is the payload
        self.excluded_keys: FrozenSet[str] = frozenset()

    def read_into_row(self) -> bool:
        """Read the metadata of the next row, up to its result payload.

        Returns:
            False if the end of the stream is reached
        """
        if self.in_row:
            return True

        line = self._next_line()
        if line is None:
            return False

        self.in_row = True
        self.rows_read += 1
        self.preview = None
        self.excluded_keys = frozenset()
        self.cursor = JsonTokenCursor(io.BytesIO(line), self._buf_size)

        kind, _ = self.cursor.next_required("an export row")
        if kind == "start_array":
            logger.error("Pre-5.0 JSON array found in export stream")
            raise MalformedInputError(
                "A stream from an export endpoint of a pre-5.0 server in the JSON "
                "output format is not supported. Use the XML output format and "
                "ResultsReaderXml instead."
            )
        if kind != "start_map":
            raise MalformedInputError(f"Export row {self.rows_read} is not a JSON object")

        # lastrow does not appear if the row is not the last in the set
        self.last_row = False
        while True:
            token = self.cursor.next()
            if token is None or token[0] == "end_map":
                break
            name = token[1]
            if name == "preview":
                self.preview = self._read_flag(name)
            elif name == "lastrow":
                self.last_row = self._read_flag(name)
            elif name == "result":
                return True
            else:
                self.cursor.skip_value()

        # No "result" key: the row object is itself the payload
        self.cursor.close()
        self.cursor = JsonTokenCursor(io.BytesIO(line), self._buf_size)
        self.excluded_keys = _ROW_FLAGS
        return True

    def skip_rest_of_row(self) -> None:
        if not self.in_row:
            return
        self.in_row = False
        if self.cursor is not None:
            self.cursor.close()
            self.cursor = None

    def close(self) -> None:
        self.skip_rest_of_row()

    def _read_flag(self, name: str) -> bool:
        kind, value = self.cursor.next_required(f"'{name}'")
        if kind != "boolean":
            raise MalformedInputError(f"Export row flag {name!r} is not a boolean")
        return value

    def _next_line(self) -> Optional[bytes]:
        while True:
            line = self._stream.readline()
            if not line:
                return None
            if self.rows_read == 0 and line.startswith(_UTF8_BOM):
                line = line[len(_UTF8_BOM):]
            if self._skip_blank_lines and not line.strip():
                continue
            return line


class ResultsReaderJson(ResultsReader):
    """Streaming reader for JSON search results.

    The field list is not available in any JSON layout, and the preview flag
    is only known once the stream has carried one (never with pre-5.0
    servers). Both raise UnsupportedOperationError rather than guessing.
    """

    def __init__(
        self,
        stream: BinaryIO,
        config: Optional[ReaderConfig] = None,
        *,
        is_export: Optional[bool] = None,
        in_multi_reader: bool = False,
    ):
        super().__init__(stream, config, is_export=is_export, in_multi_reader=in_multi_reader)
        self.layout: Optional[JsonLayout] = None
        self._cursor: Optional[JsonTokenCursor] = None
        self._export_rows: Optional[ExportRowReader] = None
        self._in_array = False
        self._preview_read = False
        try:
            # A multi reader always consumes the export grammar
            if self.is_export_stream or in_multi_reader:
                self.layout = JsonLayout.EXPORT_LINES
                self._export_rows = ExportRowReader(
                    stream,
                    self.config.json_buffer_size,
                    skip_blank_lines=self.config.skip_blank_export_lines,
                )
            self._finish_initialization()
        except Exception:
            self.close()
            raise

    @property
    def fields(self) -> List[str]:
        raise UnsupportedOperationError("fields is not supported by ResultsReaderJson")

    @property
    def is_preview(self) -> bool:
        if not self._preview_read:
            raise UnsupportedOperationError(
                "is_preview is not supported with a stream from a pre-5.0 server by "
                "ResultsReaderJson. Use the XML format and ResultsReaderXml instead."
            )
        return self._preview

    def _set_preview_flag(self, value: bool) -> None:
        self._preview = value
        self._preview_read = True

    def _read_next_set(self) -> bool:
        if self.layout == JsonLayout.EXPORT_LINES:
            return self._advance_export_rows()

        if self._cursor is None:
            return self._open_document()

        if self.layout == JsonLayout.RESULTS_OBJECT:
            self._skip_rest_of_array()
            return self._seek_results_key()

        # The flat array of pre-5.0 servers is a single set
        self._skip_rest_of_array()
        return False

    def _advance_export_rows(self) -> bool:
        rows = self._export_rows
        while True:
            end_passed = rows.last_row
            rows.skip_rest_of_row()
            if not rows.read_into_row():
                return False
            if rows.preview is not None:
                self._set_preview_flag(rows.preview)
            if end_passed:
                logger.debug(f"Export row {rows.rows_read} starts a new result set")
                return True

    def _open_document(self) -> bool:
        """Probe the first token to tell the pre-5.0 array from the 5.0 object."""
        first = self._read_first_byte()
        if first is None:
            return False
        if first not in (b"[", b"{"):
            raise MalformedInputError(f"Unexpected start of JSON results: {first!r}")

        self._cursor = JsonTokenCursor(_ReplayStream(first, self._stream), self.config.json_buffer_size)
        kind, _ = self._cursor.next_required("the results document")
        if kind == "start_array":
            self.layout = JsonLayout.LEGACY_ARRAY
            self._in_array = True
            logger.debug("Reading pre-5.0 JSON results array")
            return True

        self.layout = JsonLayout.RESULTS_OBJECT
        return self._seek_results_key()

    def _read_first_byte(self) -> Optional[bytes]:
        at_start = True
        while True:
            byte = self._stream.read(1)
            if not byte:
                return None
            if at_start and byte == _UTF8_BOM[:1]:
                rest = self._stream.read(len(_UTF8_BOM) - 1)
                if byte + rest != _UTF8_BOM:
                    raise MalformedInputError(f"Unexpected start of JSON results: {byte + rest!r}")
                at_start = False
                continue
            at_start = False
            if byte not in _WHITESPACE:
                return byte

    def _seek_results_key(self) -> bool:
        """Scan the top-level object for "preview" and stop inside "results"."""
        cursor = self._cursor
        while True:
            token = cursor.next()
            if token is None or token[0] == "end_map":
                return False

            name = token[1]
            if name == "preview":
                kind, value = cursor.next_required("'preview'")
                if kind != "boolean":
                    raise MalformedInputError("'preview' is not a boolean")
                self._set_preview_flag(value)
            elif name == "results":
                kind, _ = cursor.next_required("'results'")
                if kind != "start_array":
                    raise MalformedInputError("'results' is not an array")
                self._in_array = True
                return True
            else:
                cursor.skip_value()

    def _skip_rest_of_array(self) -> None:
        if self._in_array:
            self._cursor.skip_container()
            self._in_array = False

    def _iter_current_set(self) -> Iterator[Event]:
        if self.layout == JsonLayout.EXPORT_LINES:
            yield from self._iter_export_rows()
            return

        cursor = self._cursor
        while self._in_array:
            kind, _ = cursor.next_required("the results array")
            if kind == "end_array":
                self._in_array = False
                return
            if kind == "start_map":
                yield read_event_object(cursor)
            elif kind == "start_array":
                cursor.skip_container()

    def _iter_export_rows(self) -> Iterator[Event]:
        rows = self._export_rows
        while True:
            # The last row has been consumed: the set is over until the
            # reader is asked to advance.
            if rows.last_row and not rows.in_row:
                return
            if not rows.read_into_row():
                return
            if rows.preview is not None:
                self._set_preview_flag(rows.preview)

            event = _read_payload(rows.cursor, rows.excluded_keys)
            rows.skip_rest_of_row()
            yield event

    def _release(self) -> None:
        if self._cursor is not None:
            self._cursor.close()
            self._cursor = None
        if self._export_rows is not None:
            self._export_rows.close()
            self._export_rows = None
        self._in_array = False
