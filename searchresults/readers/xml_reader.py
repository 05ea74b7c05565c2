"""Streaming XML results reader."""

import logging
import re
from collections import deque
from typing import BinaryIO, Deque, Iterator, List, Optional, Tuple
from xml.etree import ElementTree
from xml.etree.ElementTree import Element

from bs4 import BeautifulSoup

from searchresults.config.reader import ReaderConfig
from searchresults.readers.base import ResultsReader
from searchresults.schema.event import Event, FieldValue
from searchresults.utils.exceptions import MalformedInputError

logger = logging.getLogger(__name__)

# (event, element, parent) as produced by XmlTokenStream
XmlToken = Tuple[str, Element, Optional[Element]]

_FRAGMENT_ROOT = "searchresults-fragment"
_DECLARATION = re.compile(rb"<\?xml\b.*?\?>", re.DOTALL)
_DECLARATION_START = b"<?xml"
_UTF8_BOM = b"\xef\xbb\xbf"


class XmlTokenStream:
    """Incremental start/end token stream over an XML fragment.

    Export streams carry several top-level <results> elements (each possibly
    preceded by its own XML declaration), which a conforming parser rejects.
    The bytes are fed to an XMLPullParser inside a synthetic root element,
    with declarations stripped on the way.
    """

    def __init__(self, stream: BinaryIO, read_size: int):
        self._stream = stream
        self._read_size = read_size
        self._parser: Optional[ElementTree.XMLPullParser] = ElementTree.XMLPullParser(events=("start", "end"))
        self._pending: Deque[Tuple[str, Element]] = deque()
        self._lookahead: List[XmlToken] = []
        self._stack: List[Element] = []
        self._carry = b""
        self._at_start = True
        self._eof = False
        self._feed(f"<{_FRAGMENT_ROOT}>".encode("ascii"))

    @property
    def root(self) -> Optional[Element]:
        return self._stack[0] if self._stack else None

    def next(self) -> Optional[XmlToken]:
        """Return the next token, or None at the end of the stream."""
        if self._lookahead:
            return self._lookahead.pop()

        while True:
            while not self._pending:
                if self._eof or self._parser is None:
                    return None
                self._fill()

            event, elem = self._pending.popleft()
            if event == "start":
                parent = self._stack[-1] if self._stack else None
                self._stack.append(elem)
            else:
                self._stack.pop()
                parent = self._stack[-1] if self._stack else None

            if elem.tag == _FRAGMENT_ROOT:
                continue
            return event, elem, parent

    def push_back(self, token: XmlToken) -> None:
        self._lookahead.append(token)

    def consume_subtree(self, elem: Element) -> None:
        """Read tokens until the end tag of an element whose start was just read."""
        while True:
            token = self.next()
            if token is None:
                raise MalformedInputError(f"Unexpected end of stream inside <{elem.tag}>")
            event, current, _ = token
            if event == "end" and current is elem:
                return

    @staticmethod
    def release(elem: Element, parent: Optional[Element]) -> None:
        """Detach a fully read element so the tree does not grow with the stream."""
        if parent is not None:
            parent.remove(elem)

    def close(self) -> None:
        self._parser = None
        self._pending.clear()
        self._lookahead.clear()
        self._stack.clear()

    def _fill(self) -> None:
        chunk = self._stream.read(self._read_size)
        if not chunk:
            data, self._carry = self._carry, b""
            self._feed(data + f"</{_FRAGMENT_ROOT}>".encode("ascii"))
            try:
                self._parser.close()
            except ElementTree.ParseError as e:
                raise MalformedInputError(f"Malformed XML results: {e}") from e
            self._eof = True
            self._pending.extend(self._parser.read_events())
            return

        data = self._carry + chunk
        if self._at_start:
            if data.startswith(_UTF8_BOM):
                data = data[len(_UTF8_BOM):]
            self._at_start = False
        self._feed(self._strip_declarations(data))

    def _strip_declarations(self, data: bytes) -> bytes:
        data = _DECLARATION.sub(b"", data)
        # Hold back a declaration cut by the chunk boundary
        index = data.rfind(b"<")
        if index != -1:
            tail = data[index:]
            if (len(tail) < len(_DECLARATION_START) and _DECLARATION_START.startswith(tail)) or (
                tail.startswith(_DECLARATION_START) and b"?>" not in tail
            ):
                self._carry = tail
                return data[:index]
        self._carry = b""
        return data

    def _feed(self, data: bytes) -> None:
        if not data:
            return
        try:
            self._parser.feed(data)
            self._pending.extend(self._parser.read_events())
        except ElementTree.ParseError as e:
            raise MalformedInputError(f"Malformed XML results: {e}") from e


def extract_text(markup: str) -> str:
    """Extract and concatenate the text of an XML fragment, excluding markup."""
    return BeautifulSoup(markup, "html.parser").get_text()


def parse_xml_boolean(value: Optional[str]) -> bool:
    """Parse an xs:boolean attribute value. A missing attribute is false."""
    if value is None:
        return False
    normalized = value.strip()
    if normalized in ("1", "true"):
        return True
    if normalized in ("0", "false"):
        return False
    raise MalformedInputError(f"Invalid XML boolean value: {value!r}")


class ResultsReaderXml(ResultsReader):
    """Streaming reader for XML search results.

    When a stream from an export search is passed to this reader, it skips
    any preview sets in the stream. Use MultiResultsReaderXml to access the
    previews.

    Example of an input stream with a single results element (export
    streams can carry several):

        <?xml version='1.0' encoding='UTF-8'?>
        <results preview='0'>
        <meta>
        <fieldOrder>
        <field>series</field>
        <field>sum(kb)</field>
        </fieldOrder>
        </meta>
        <messages>
        <msg type='DEBUG'>base lispy: [ AND ]</msg>
        </messages>
        <result offset='0'>
        <field k='series'>
        <value><text>twitter</text></value>
        </field>
        <field k='sum(kb)'>
        <value><text>14372242.758775</text></value>
        </field>
        </result>
        </results>
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
        self._tokens: Optional[XmlTokenStream] = None
        self._results: Optional[Element] = None
        try:
            self._tokens = XmlTokenStream(stream, self.config.xml_read_size)
            self._finish_initialization()
        except Exception:
            self.close()
            raise

    def _read_next_set(self) -> bool:
        """Read to the next <results> element, its preview flag and field order."""
        tokens = self._tokens
        while True:
            token = tokens.next()
            if token is None:
                self._results = None
                return False

            event, elem, parent = token
            if event == "start" and elem.tag == "results" and parent is tokens.root:
                self._results = elem
                self._preview = parse_xml_boolean(elem.get("preview"))
                self._fields = []
                self._read_meta()
                return True

            if event == "end":
                tokens.release(elem, parent)

    def _read_meta(self) -> None:
        """Read the optional <meta> element that opens a results element."""
        tokens = self._tokens
        token = tokens.next()
        if token is None:
            return

        event, elem, parent = token
        if not (event == "start" and elem.tag == "meta" and parent is self._results):
            tokens.push_back(token)
            return

        while True:
            token = tokens.next()
            if token is None:
                raise MalformedInputError("Unexpected end of stream inside <meta>")
            event, current, current_parent = token
            if event != "end":
                continue
            if current is elem:
                tokens.release(elem, parent)
                return
            if current.tag == "field" and current_parent is not None and current_parent.tag == "fieldOrder":
                self._fields.append(current.text or "")

    def _iter_current_set(self) -> Iterator[Event]:
        tokens = self._tokens
        results = self._results
        while results is not None:
            token = tokens.next()
            if token is None:
                self._results = None
                return

            event, elem, parent = token
            if event == "end" and elem is results:
                tokens.release(results, parent)
                self._results = None
                return

            if event == "start" and parent is results:
                tokens.consume_subtree(elem)
                if elem.tag == "result":
                    result = self._convert_result(elem)
                    tokens.release(elem, results)
                    yield result
                else:
                    tokens.release(elem, results)

    def _convert_result(self, result_elem: Element) -> Event:
        event = Event()
        for field in result_elem:
            if field.tag != "field":
                continue

            key = field.get("k")
            if key is None:
                logger.error("Result field without 'k' attribute")
                raise MalformedInputError("'field' attribute 'k' not found")

            values: List[str] = []
            for child in field:
                if child.tag == "value":
                    text = child.find(".//text")
                    if text is not None:
                        values.append(text.text or "")
                elif child.tag == "v":
                    child.tail = None
                    event.segmented_raw = ElementTree.tostring(child, encoding="unicode")
                    values.append(extract_text(event.segmented_raw))

            if values:
                event[key] = FieldValue(values=values)
        return event

    def _release(self) -> None:
        if self._tokens is not None:
            self._tokens.close()
            self._tokens = None
        self._results = None
