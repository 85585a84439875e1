import pytest

from storage_metrics.decoders.json_records import extract_records
from storage_metrics.errors import DecodeError


def test_bare_list():
    assert extract_records('[{"id": 1}, {"id": 2}]') == [{'id': 1}, {'id': 2}]


def test_container_key_and_path():
    assert extract_records('{"data": [{"id": 1}]}', 'data') == [{'id': 1}]
    assert extract_records({'stats': {'volumes': [{'id': 1}]}}, ['stats', 'volumes']) == [{'id': 1}]


def test_single_object_is_one_record():
    assert extract_records(b'{"id": 1}') == [{'id': 1}]


def test_missing_container():
    with pytest.raises(DecodeError, match="'data' container not found"):
        extract_records('{"items": []}', 'data')


def test_invalid_json():
    with pytest.raises(DecodeError, match='Invalid JSON'):
        extract_records('{not json')


def test_non_object_records():
    with pytest.raises(DecodeError):
        extract_records('[{"id": 1}, 2]')
    with pytest.raises(DecodeError):
        extract_records('"text"')
