"""Tests for the multi results readers."""

import pytest

from searchresults.readers.multi import MultiResultsReaderJson, MultiResultsReaderXml
from searchresults.utils.exceptions import UnsupportedOperationError


def test_xml_multi_reader_exposes_every_set(open_data):
    stream = open_data("export_previews.xml")
    sets = []
    with MultiResultsReaderXml(stream) as multi:
        for result_set in multi:
            counts = [str(event["count"]) for event in result_set]
            sets.append((result_set.index, result_set.is_preview, result_set.fields, counts))

    assert sets == [
        (0, True, ["count"], ["10"]),
        (1, True, ["count"], ["20"]),
        (2, False, ["count", "host"], ["30"]),
    ]
    assert stream.close_calls == 1


def test_xml_multi_reader_skips_unread_sets(open_data):
    with MultiResultsReaderXml(open_data("export_previews.xml")) as multi:
        result_sets = iter(multi)
        next(result_sets)
        next(result_sets)
        final = next(result_sets)
        assert final.is_preview is False
        assert [str(event["count"]) for event in final] == ["30"]
        assert list(result_sets) == []


def test_json_multi_reader_exposes_every_set(open_data):
    sets = []
    with MultiResultsReaderJson(open_data("export.json")) as multi:
        for result_set in multi:
            counts = [str(event["count"]) for event in result_set]
            sets.append((result_set.is_preview, counts))

    assert sets == [
        (True, ["62"]),
        (True, ["1682", "12"]),
        (False, ["1700", "15"]),
    ]


def test_json_multi_reader_skips_partly_read_sets(open_data):
    with MultiResultsReaderJson(open_data("export.json")) as multi:
        counts = []
        for result_set in multi:
            # Only the first event of each set
            event = next(iter(result_set))
            counts.append(str(event["count"]))

    assert counts == ["62", "1682", "1700"]


def test_json_multi_reader_has_no_fields(open_data):
    with MultiResultsReaderJson(open_data("export.json")) as multi:
        result_set = next(iter(multi))
        with pytest.raises(UnsupportedOperationError):
            result_set.fields


def test_multi_reader_close_is_idempotent(open_data):
    stream = open_data("export.json")
    multi = MultiResultsReaderJson(stream)
    multi.close()
    multi.close()
    assert stream.close_calls == 1
    assert multi.reader.is_disposed
