"""Tests for the streaming JSON results reader."""

import io

import pytest

from searchresults.config.reader import ReaderConfig
from searchresults.core.states import ReaderState
from searchresults.readers.json_reader import ExportRowReader, JsonLayout, ResultsReaderJson
from searchresults.utils.exceptions import (
    MalformedInputError,
    ReaderDisposedError,
    UnsupportedOperationError,
)
from searchresults.utils.streams import ExportResultsStream

EXPORT_PREVIEW_SET = (
    '{"preview":true,"lastrow":false,"result":{"x":"1"}}\n'
    '{"preview":true,"lastrow":true,"result":{"x":"2"}}\n'
)


def test_normal_endpoint_round_trip(stream_of):
    reader = ResultsReaderJson(stream_of('{"preview":false,"results":[{"host":"a","count":"1"}]}'))
    assert reader.layout == JsonLayout.RESULTS_OBJECT
    assert reader.is_preview is False

    events = list(reader)
    assert len(events) == 1
    assert str(events[0]["host"]) == "a"
    assert str(events[0]["count"]) == "1"
    reader.close()


def test_normal_endpoint_skips_messages(open_data):
    with ResultsReaderJson(open_data("results5.json")) as reader:
        events = [event.to_dict() for event in reader]

    assert events == [
        {"sum(kb)": "14372242.758775", "series": "twitter"},
        {"sum(kb)": "267802.333926", "series": "splunkd"},
        {"sum(kb)": "5979.036338", "series": "splunkd_access"},
    ]


def test_pre_5_array_has_no_preview_flag(open_data):
    with ResultsReaderJson(open_data("results4.json")) as reader:
        assert reader.layout == JsonLayout.LEGACY_ARRAY
        with pytest.raises(UnsupportedOperationError):
            reader.is_preview
        events = list(reader)
        assert reader.state == ReaderState.EXHAUSTED

    assert [str(event["series"]) for event in events] == ["twitter", "splunkd", "splunkd_access"]


def test_fields_is_unsupported(stream_of):
    with ResultsReaderJson(stream_of('{"preview":false,"results":[]}')) as reader:
        with pytest.raises(UnsupportedOperationError):
            reader.fields


def test_value_kinds_map_to_fields(stream_of):
    json_text = (
        '{"results":[{"tags":["a","b",3],"count":42,"ok":true,"none":null,'
        '"nested":{"x":"y"},"name":"n"}]}'
    )
    with ResultsReaderJson(stream_of(json_text)) as reader:
        event = next(iter(reader))

    assert event["tags"].get_array() == ["a", "b", "3"]
    assert str(event["count"]) == "42"
    assert str(event["ok"]) == "true"
    assert str(event["name"]) == "n"
    assert "none" not in event
    assert "nested" not in event


def test_empty_stream_is_exhausted(stream_of):
    with ResultsReaderJson(stream_of(b"  \n")) as reader:
        assert reader.state == ReaderState.EXHAUSTED
        assert list(reader) == []


def test_unexpected_document_is_malformed(stream_of):
    stream = stream_of('"results"')
    with pytest.raises(MalformedInputError):
        ResultsReaderJson(stream)
    assert stream.close_calls == 1


def test_truncated_document_is_malformed(stream_of):
    reader = ResultsReaderJson(stream_of('{"preview":false,"results":[{"host":"a"},{"host":'))
    events = reader.events()
    assert str(next(events)["host"]) == "a"
    with pytest.raises(MalformedInputError):
        next(events)
    reader.close()


def test_export_rows_in_one_preview_set(stream_of):
    reader = ResultsReaderJson(stream_of(EXPORT_PREVIEW_SET), in_multi_reader=True)
    assert reader.layout == JsonLayout.EXPORT_LINES
    assert reader.state == ReaderState.NOT_STARTED

    assert reader.advance_to_next_set() is True
    assert reader.is_preview is True
    events = [event.to_dict() for event in reader.events_of_current_set()]
    assert events == [{"x": "1"}, {"x": "2"}]

    # No further set in the stream
    assert reader.advance_to_next_set() is False
    assert reader.state == ReaderState.EXHAUSTED
    reader.close()


def test_export_fields_is_unsupported(stream_of):
    with ResultsReaderJson(ExportResultsStream(stream_of(EXPORT_PREVIEW_SET))) as reader:
        with pytest.raises(UnsupportedOperationError):
            reader.fields


def test_export_stream_skips_previews(open_data):
    with ResultsReaderJson(ExportResultsStream(open_data("export.json"))) as reader:
        assert reader.is_preview is False
        events = [event.to_dict() for event in reader]

    assert events == [
        {"host": "web-01", "count": "1700"},
        {"host": "web-02", "count": "15"},
    ]


def test_export_stream_of_previews_only_yields_nothing(stream_of):
    with ResultsReaderJson(stream_of(EXPORT_PREVIEW_SET), is_export=True) as reader:
        assert reader.state == ReaderState.EXHAUSTED
        assert list(reader) == []


def test_export_stream_with_pre_5_array_is_rejected(stream_of):
    stream = ExportResultsStream(stream_of('[{"host":"a"}]\n'))
    with pytest.raises(MalformedInputError, match="XML"):
        ResultsReaderJson(stream)
    assert stream.closed


def test_export_row_without_result_key_is_the_payload(stream_of):
    rows = '{"host":"a","count":"1"}\n\n{"host":"b","count":"2"}\n'
    with ResultsReaderJson(stream_of(rows), is_export=True) as reader:
        with pytest.raises(UnsupportedOperationError):
            reader.is_preview
        events = [event.to_dict() for event in reader]

    assert events == [{"host": "a", "count": "1"}, {"host": "b", "count": "2"}]


def test_export_row_flags_without_result_key_are_not_fields(stream_of):
    rows = '{"preview":false,"offset":0,"lastrow":true,"host":"a"}\n'
    with ResultsReaderJson(stream_of(rows), is_export=True) as reader:
        assert reader.is_preview is False
        events = [event.to_dict() for event in reader]

    # offset is not a row flag and stays a field
    assert events == [{"offset": "0", "host": "a"}]


def test_export_row_reader_contract():
    rows = ExportRowReader(io.BytesIO(EXPORT_PREVIEW_SET.encode("utf-8")), buf_size=16)
    assert rows.last_row is True

    assert rows.read_into_row() is True
    assert rows.in_row is True
    assert rows.preview is True
    assert rows.last_row is False
    # Reading again inside a row is a no-op
    assert rows.read_into_row() is True
    assert rows.rows_read == 1

    rows.skip_rest_of_row()
    assert rows.in_row is False
    assert rows.cursor is None

    assert rows.read_into_row() is True
    assert rows.last_row is True
    rows.skip_rest_of_row()
    assert rows.read_into_row() is False
    rows.close()


def test_close_is_idempotent(stream_of):
    stream = stream_of(EXPORT_PREVIEW_SET)
    reader = ResultsReaderJson(stream, in_multi_reader=True)
    reader.close()
    reader.close()
    assert stream.close_calls == 1
    with pytest.raises(ReaderDisposedError):
        reader.advance_to_next_set()


def test_close_mid_iteration(open_data):
    reader = ResultsReaderJson(open_data("results5.json"), ReaderConfig(json_buffer_size=8))
    events = reader.events()
    next(events)
    reader.close()
    with pytest.raises(ReaderDisposedError):
        next(events)


def test_byte_order_mark_is_skipped(stream_of):
    stream = stream_of(b'\xef\xbb\xbf{"preview":false,"results":[{"a":"1"}]}')
    with ResultsReaderJson(stream) as reader:
        assert [event.to_dict() for event in reader] == [{"a": "1"}]


def test_byte_order_mark_on_export_stream_is_skipped(stream_of):
    rows = b'\xef\xbb\xbf{"preview":false,"lastrow":true,"result":{"a":"1"}}\n'
    with ResultsReaderJson(stream_of(rows), is_export=True) as reader:
        assert [event.to_dict() for event in reader] == [{"a": "1"}]


def test_truncated_byte_order_mark_is_malformed(stream_of):
    with pytest.raises(MalformedInputError):
        ResultsReaderJson(stream_of(b'\xef\xbb{"results":[]}'))


def test_numbers_keep_decimal_text(stream_of):
    with ResultsReaderJson(stream_of('{"results":[{"big":1e5,"ratio":1.50,"n":7}]}')) as reader:
        event = next(iter(reader))

    # Exponent forms come back in Decimal notation
    assert str(event["big"]) == "1E+5"
    assert str(event["ratio"]) == "1.50"
    assert str(event["n"]) == "7"
