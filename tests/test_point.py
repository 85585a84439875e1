from datetime import datetime, timezone

import pytest

from storage_metrics.errors import CoercionError
from storage_metrics.point import Point, Value, ValueType, stamp


def test_value_of_maps_python_scalars():
    assert Value.of(True).kind is ValueType.BOOLEAN
    assert Value.of(7).kind is ValueType.SIGNED_LONG
    assert Value.of(1.5).kind is ValueType.FLOAT
    assert Value.of('node1').kind is ValueType.STRING
    existing = Value.short(3)
    assert Value.of(existing) is existing


def test_integer_variants_are_range_checked():
    assert Value.byte(255).data == 255
    assert Value.short(65535).data == 65535
    assert Value.long(2**64 - 1).data == 2**64 - 1
    with pytest.raises(CoercionError):
        Value.byte(256)
    with pytest.raises(CoercionError):
        Value.long(-1)
    with pytest.raises(CoercionError):
        Value.integer(2**31)
    with pytest.raises(CoercionError):
        Value.signed_long(True)


def test_boolean_renders_lowercase():
    assert str(Value.boolean(True)) == 'true'
    assert str(Value.signed_long(-4)) == '-4'


def test_empty_measurement_rejected():
    with pytest.raises(ValueError):
        Point('')


def test_measurement_is_read_only():
    p = Point('volume')
    with pytest.raises(AttributeError):
        p.measurement = 'other'


def test_add_overwrites_by_key_and_allows_same_key_in_both_maps():
    p = Point('volume')
    p.add_tag('name', 'vol1')
    p.add_tag('name', 'vol2')
    p.add_field('name', 5)
    assert p.tags['name'] == Value.string('vol2')
    assert p.fields['name'] == Value.signed_long(5)
    assert p.overlapping_keys() == ['name']


def test_to_dict_uses_epoch_seconds():
    instant = datetime(2024, 1, 2, 3, 4, 5, 600000, tzinfo=timezone.utc)
    p = Point('port', instant)
    p.add_tag('port', 'fc0')
    p.add_field('online', True)
    p.add_field('rate', Value.float(2.5))
    assert p.to_dict() == {
        'measurement': 'port',
        'tags': {'port': 'fc0'},
        'fields': {'online': True, 'rate': 2.5},
        'time': int(instant.timestamp()),
    }


def test_stamp_gives_every_point_the_same_instant():
    instant = datetime(2024, 5, 1, tzinfo=timezone.utc)
    points = [Point('a'), Point('b'), Point('c')]
    stamped = stamp(points, instant)
    assert stamped == points
    assert {p.timestamp for p in stamped} == {instant}


def test_add_field_accepts_any_integer_width():
    p = Point('volume')
    p.add_field('capacity', 2**64 - 1)
    p.add_field('offset', -(2**63))
    p.add_field('huge', 2**70)
    p.add_field('very_negative', -(2**70))
    assert p.fields['capacity'] == Value.long(2**64 - 1)
    assert p.fields['offset'] == Value.signed_long(-(2**63))
    assert p.fields['huge'] == Value.float(float(2**70))
    assert p.fields['very_negative'] == Value.float(float(-(2**70)))


def test_none_adds_nothing():
    p = Point('volume')
    p.add_tag('label', None)
    p.add_field('errors', None)
    assert p.tags == {}
    assert p.fields == {}
    with pytest.raises(TypeError):
        Value.of(None)
