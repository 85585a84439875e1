import pytest

from storage_metrics.decoders.csv_table import column_value, csv_to_points, row_values
from storage_metrics.errors import CoercionError, DecodeError
from storage_metrics.point import Value, ValueType


def test_blank_cells_are_omitted():
    [point] = csv_to_points('a,b,c\nstring,double,ulong\nx,,100\n', 'port')
    assert point.measurement == 'port'
    assert point.tags == {'a': Value.string('x')}
    assert point.fields == {'c': Value.long(100)}


def test_one_point_per_data_row():
    text = 'ldev,iops,time\nstring,float,time_t\n00:01,1.5,1700000000\n00:02,2.5,1700000060\n'
    points = csv_to_points(text, 'ldev')
    assert len(points) == 2
    assert points[1].tags == {'ldev': Value.string('00:02'), 'time': Value.string('1700000060')}
    assert points[1].fields == {'iops': Value.float(2.5)}


@pytest.mark.parametrize('type_tag, text, expected', [
    ('string', 'abc', Value.string('abc')),
    ('double', '1.5', Value.float(1.5)),
    ('float', '2', Value.float(2.0)),
    ('time_t', '1700000000', Value.string('1700000000')),
    ('ulong', '5', Value.long(5)),
    ('long', '-5', Value.signed_long(-5)),
    ('short', '7', Value.short(7)),
    ('unsigned char', '8', Value.short(8)),
])
def test_column_type_tags(type_tag, text, expected):
    assert column_value(type_tag, text, 'col') == expected


def test_unknown_type_tag_is_skipped(caplog):
    assert column_value('blob', 'xyz', 'col') is None
    assert 'Unknown type: blob' in caplog.text


def test_unparseable_cell_raises_for_its_column():
    with pytest.raises(CoercionError):
        column_value('ulong', 'many', 'col')


def test_bad_cell_only_drops_its_column(caplog):
    values = row_values(['x', 'oops', '3'], ['string', 'ulong', 'short'], ['a', 'b', 'c'])
    assert values == [('a', Value.string('x')), ('c', Value.short(3))]
    assert 'Unable to convert oops' in caplog.text


def test_short_row_and_missing_header_are_skipped():
    assert row_values(['x'], ['string', 'ulong'], ['a', 'b']) == [('a', Value.string('x'))]
    assert row_values(['x', '1'], ['string', 'ulong'], ['a']) == [('a', Value.string('x'))]


def test_missing_type_row_is_a_parse_failure():
    with pytest.raises(DecodeError, match='CSV Parsing failure'):
        csv_to_points('a,b,c\n', 'port')


def test_empty_payload_is_a_parse_failure():
    with pytest.raises(DecodeError, match='CSV Parsing failure'):
        csv_to_points('', 'port')


def test_bytes_payload_is_decoded():
    [point] = csv_to_points(b'a,b\nstring,ulong\nx,1\n', 'port')
    assert point.fields['b'].kind is ValueType.LONG
