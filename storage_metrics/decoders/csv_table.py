# -----------------------------------------------------------------------------
# Copyright (c) 2025 Storage Metrics (scaleoutSean@Github)
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Type-tagged CSV decoding.

The payload is a header row, a row of per-column type tags ("string", "double",
"ulong", "short", "time_t", ...) and any number of data rows. Columns are
matched by position. String-typed columns become tags, everything else fields.
"""

import csv
import io
import logging
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from storage_metrics.coercion import parse_float, parse_integer
from storage_metrics.errors import CoercionError, DecodeError
from storage_metrics.point import Point, Value, ValueType

LOG = logging.getLogger(__name__)


def column_value(type_tag: str, text: str, name: str = '') -> Optional[Value]:
    """
    Convert one cell according to its column type tag.

    Tags are matched by substring, so "ulong" is tested before "long" and
    "unsigned char" maps to Short.

    Returns:
        The Value, or None for an unknown type tag

    Raises:
        CoercionError: the cell does not parse as the declared type
    """
    if 'string' in type_tag:
        return Value.string(text)
    if 'double' in type_tag or 'float' in type_tag:
        return Value.float(parse_float(text, name))
    if 'time_t' in type_tag:
        return Value.string(text)
    if 'ulong' in type_tag:
        return _integer(Value.long, text, name)
    if 'long' in type_tag:
        return _integer(Value.signed_long, text, name)
    if 'short' in type_tag or 'unsigned char' in type_tag:
        return _integer(Value.short, text, name)
    LOG.warning(f"Unknown type: {type_tag}, value: {text}. Skipping")
    return None


def _integer(factory, text: str, name: str) -> Value:
    try:
        return factory(parse_integer(text, name))
    except CoercionError as e:
        raise CoercionError(f"Column '{name}': {e}", field=name) from e


def row_values(row: Sequence[str], types: Sequence[str], headers: Sequence[str]) -> List[Tuple[str, Value]]:
    """
    Zip one data row with the header and type rows by position.

    Blank cells are skipped. A missing cell or header, an unknown type tag or a
    cell that fails to parse only drops that column.
    """
    values: List[Tuple[str, Value]] = []
    for pos, type_tag in enumerate(types):
        if pos >= len(row):
            LOG.error(f"Unable to get csv record at position {pos} from {list(row)}. Skipping")
            continue
        cell = row[pos]
        if cell == '':
            continue
        if pos >= len(headers):
            LOG.error(f"Unable to get csv header at position {pos} from {list(row)}. Skipping")
            continue
        header = headers[pos]
        try:
            value = column_value(type_tag, cell, header)
        except CoercionError as e:
            LOG.error(f"Unable to convert {cell} for column {header}: {e}. Skipping")
            continue
        if value is not None:
            values.append((header, value))
    return values


def csv_to_points(text: str, measurement: str, timestamp: Optional[datetime] = None) -> List[Point]:
    """
    Decode a type-tagged CSV blob into one point per data row.

    Args:
        text: CSV text, header row first, type row second
        measurement: Measurement name for every point
        timestamp: Shared timestamp for all points of this poll

    Raises:
        DecodeError: the header or type row is missing, or the CSV is malformed
    """
    if isinstance(text, bytes):
        text = text.decode('utf-8', errors='replace')
    try:
        rows = list(csv.reader(io.StringIO(text)))
    except csv.Error as e:
        raise DecodeError(f"CSV Parsing failure: {e}") from e

    if not rows or not rows[0]:
        LOG.error(f"Unable to discover csv headers. Cannot parse record: {text!r}")
        raise DecodeError("CSV Parsing failure: missing header row")
    if len(rows) < 2 or not rows[1]:
        LOG.error(f"Unable to discover csv fields. Cannot parse record: {text!r}")
        raise DecodeError("CSV Parsing failure: missing type row")

    headers, types = rows[0], rows[1]
    points = []
    for row in rows[2:]:
        if not row:
            continue
        p = Point(measurement, timestamp)
        for name, value in row_values(row, types, headers):
            if value.kind is ValueType.STRING:
                p.add_tag(name, value)
            else:
                p.add_field(name, value)
        points.append(p)
    LOG.debug(f"Decoded {len(points)} {measurement} points from csv")
    return points
