# -----------------------------------------------------------------------------
# Copyright (c) 2025 Storage Metrics (scaleoutSean@Github)
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Field classification and type coercion.

Given a FieldSpec and the raw decoded value, decide whether the value becomes a
tag or a field, convert it to the matching Value variant, or emit nothing.

    string          -> tag, only when non-empty
    bool            -> Boolean field
    u8 / u16        -> Byte / Short field
    i32 / i64 / u64 -> Integer / SignedLong / Long field
    f64             -> Float field
    uuid            -> String field
    bwc             -> Long field holding the bandwidth average, plus the raw
                       counters unless the field is optional
    optional, None  -> nothing
    unknown type    -> nothing, logged

Numbers may arrive as JSON numbers or as text. Numeric text may carry
surrounding whitespace but no digit separators ("1_000", "1 000"). Text that
does not parse is a CoercionError; fields already added to the point are kept.
"""

import logging
import re
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from storage_metrics.errors import CoercionError
from storage_metrics.point import Point, Value
from storage_metrics.schema import FIELD, TAG, BandwidthWindow, FieldSpec, RecordSchema

LOG = logging.getLogger(__name__)

Emission = Tuple[str, str, Value]

# Plain decimal text only: no digit separators or inner whitespace
_INTEGER_TEXT = re.compile(r"[+-]?[0-9]+")
_FLOAT_TEXT = re.compile(r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)", re.IGNORECASE)


def parse_integer(raw: Any, name: str = '') -> int:
    """Parse an integer from a JSON number or its text form."""
    if isinstance(raw, bool):
        raise CoercionError(f"Field '{name}': boolean {raw} is not an integer", field=name)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if raw.is_integer():
            return int(raw)
        raise CoercionError(f"Field '{name}': {raw} is not a whole number", field=name)
    if isinstance(raw, (str, bytes)):
        text = raw.decode() if isinstance(raw, bytes) else raw
        if not _INTEGER_TEXT.fullmatch(text.strip()):
            raise CoercionError(f"Field '{name}': unable to parse '{text}' as an integer", field=name)
        return int(text.strip())
    raise CoercionError(f"Field '{name}': unsupported integer source {type(raw).__name__}", field=name)


def parse_float(raw: Any, name: str = '') -> float:
    """Parse a float from a JSON number or its text form."""
    if isinstance(raw, bool):
        raise CoercionError(f"Field '{name}': boolean {raw} is not a number", field=name)
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, (str, bytes)):
        text = raw.decode() if isinstance(raw, bytes) else raw
        if not _FLOAT_TEXT.fullmatch(text.strip()):
            raise CoercionError(f"Field '{name}': unable to parse '{text}' as a float", field=name)
        return float(text.strip())
    raise CoercionError(f"Field '{name}': unsupported float source {type(raw).__name__}", field=name)


def parse_bool(raw: Any, name: str = '') -> bool:
    """Only true booleans and the literals 'true'/'false' are accepted."""
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str) and raw.strip().lower() in ('true', 'false'):
        return raw.strip().lower() == 'true'
    raise CoercionError(f"Field '{name}': unable to parse {raw!r} as a boolean", field=name)


def parse_uuid(raw: Any, name: str = '') -> str:
    try:
        return str(uuid.UUID(str(raw)))
    except ValueError:
        raise CoercionError(f"Field '{name}': '{raw}' is not a valid UUID", field=name)


def _integer_rule(factory: Callable[[int], Value]) -> Callable[[Any, str], Value]:
    def rule(raw: Any, name: str) -> Value:
        try:
            return factory(parse_integer(raw, name))
        except CoercionError as e:
            if e.field is None:
                raise CoercionError(f"Field '{name}': {e}", field=name)
            raise
    return rule


# Scalar rules: semantic type -> converter producing the Value variant
SCALAR_RULES: Dict[str, Callable[[Any, str], Value]] = {
    'bool': lambda raw, name: Value.boolean(parse_bool(raw, name)),
    'u8': _integer_rule(Value.byte),
    'u16': _integer_rule(Value.short),
    'i32': _integer_rule(Value.integer),
    'i64': _integer_rule(Value.signed_long),
    'u64': _integer_rule(Value.long),
    'f64': lambda raw, name: Value.float(parse_float(raw, name)),
    'uuid': lambda raw, name: Value.string(parse_uuid(raw, name)),
}


def bandwidth_average(total_weight: int, occurrences: int, seconds: int) -> int:
    """Lossy average of a bandwidth window; any zero divisor gives 0."""
    return BandwidthWindow(total_weight, occurrences, seconds).average()


def _coerce_bandwidth(spec: FieldSpec, raw: Any) -> List[Emission]:
    try:
        window = BandwidthWindow.from_raw(raw)
    except (KeyError, TypeError) as e:
        raise CoercionError(f"Field '{spec.name}': invalid bandwidth window: {e}", field=spec.name)
    window = BandwidthWindow(
        total_weight=parse_integer(window.total_weight, spec.name),
        occurrences=parse_integer(window.occurrences, spec.name),
        seconds=parse_integer(window.seconds, spec.name),
    )
    average = (FIELD, spec.name, Value.long(window.average()))
    if spec.optional:
        # An optional window only carries its average
        return [average]
    return [
        average,
        (FIELD, f"{spec.name}_total_weight_in_kb", Value.long(window.total_weight)),
        (FIELD, f"{spec.name}_num_occured", Value.long(window.occurrences)),
        (FIELD, f"{spec.name}_num_seconds", Value.long(window.seconds)),
    ]


def coerce(spec: FieldSpec, raw: Any) -> List[Emission]:
    """
    Classify and convert one raw value.

    Args:
        spec: The field description
        raw: The decoded value, None when absent

    Returns:
        List of (target, key, Value) where target is 'tag' or 'field'. Empty when
        nothing should be emitted.

    Raises:
        CoercionError: when a present value cannot be parsed as its declared type,
            or a required value is absent
    """
    if not spec.is_known_type:
        LOG.warning(f"[coerce] Skipping field '{spec.name}': unrecognized type '{spec.semantic_type}'")
        return []

    if raw is None:
        if spec.optional:
            return []
        raise CoercionError(f"Field '{spec.name}': required value is missing", field=spec.name)

    if spec.semantic_type == 'string':
        text = raw if isinstance(raw, str) else str(raw)
        if not text:
            return []
        return [(FIELD if spec.hint == FIELD else TAG, spec.name, Value.string(text))]

    if spec.semantic_type == 'bwc':
        return _coerce_bandwidth(spec, raw)

    value = SCALAR_RULES[spec.semantic_type](raw, spec.name)
    if spec.hint == TAG:
        return [(TAG, spec.name, Value.string(str(value)))]
    return [(FIELD, spec.name, value)]


def apply(point: Point, spec: FieldSpec, raw: Any) -> int:
    """Coerce one value onto a point. Returns the number of entries added."""
    emitted = coerce(spec, raw)
    for target, key, value in emitted:
        if target == TAG:
            point.add_tag(key, value)
        else:
            point.add_field(key, value)
    return len(emitted)


def record_to_point(record: Mapping[str, Any], schema: RecordSchema, measurement: Optional[str] = None,
                    timestamp: Optional[datetime] = None) -> Point:
    """
    Convert one decoded record into a Point following its schema.

    Records are keyed by wire name (FieldSpec.key). On a CoercionError the
    partially built point is attached to the exception as `point`.
    """
    point = Point(measurement or schema.measurement)
    if timestamp is not None:
        point.with_time(timestamp)

    for spec in schema:
        try:
            apply(point, spec, record.get(spec.key))
        except CoercionError as e:
            e.point = point
            raise

    overlap = point.overlapping_keys()
    if overlap:
        LOG.warning(f"[coerce] {point.measurement}: keys present as both tag and field: {overlap}")
    return point


def records_to_points(records: Iterable[Mapping[str, Any]], schema: RecordSchema,
                      measurement: Optional[str] = None, timestamp: Optional[datetime] = None) -> List[Point]:
    """Convert a batch of records; all points share `timestamp` when given."""
    points = [record_to_point(r, schema, measurement, timestamp) for r in records]
    LOG.debug(f"[coerce] Built {len(points)} {measurement or schema.measurement} points")
    return points
