# -----------------------------------------------------------------------------
# Copyright (c) 2025 Storage Metrics (scaleoutSean@Github)
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Vendor-neutral time series point model.

A Point is created per decoded vendor record, gets tags and fields added while
the record is classified, and is handed to the sink once complete. Tags are
strings by convention only; nothing enforces it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from storage_metrics.errors import CoercionError

LOG = logging.getLogger(__name__)


class ValueType(Enum):
    BOOLEAN = "boolean"
    BYTE = "byte"
    SHORT = "short"
    INTEGER = "integer"
    SIGNED_LONG = "signed_long"
    LONG = "long"
    FLOAT = "float"
    STRING = "string"


# Inclusive bounds of the integer variants
INTEGER_RANGES = {
    ValueType.BYTE: (0, 2**8 - 1),
    ValueType.SHORT: (0, 2**16 - 1),
    ValueType.INTEGER: (-(2**31), 2**31 - 1),
    ValueType.SIGNED_LONG: (-(2**63), 2**63 - 1),
    ValueType.LONG: (0, 2**64 - 1),
}


@dataclass(frozen=True)
class Value:
    """Tagged union over the value variants a point can carry."""
    kind: ValueType
    data: Any

    @classmethod
    def _integer(cls, kind: ValueType, data: Any) -> "Value":
        if isinstance(data, bool) or not isinstance(data, int):
            raise CoercionError(f"{kind.value} requires an integer, got {type(data).__name__}({data!r})")
        low, high = INTEGER_RANGES[kind]
        if not low <= data <= high:
            raise CoercionError(f"{data} out of range for {kind.value} [{low}, {high}]")
        return cls(kind, data)

    @classmethod
    def boolean(cls, data: bool) -> "Value":
        return cls(ValueType.BOOLEAN, bool(data))

    @classmethod
    def byte(cls, data: int) -> "Value":
        return cls._integer(ValueType.BYTE, data)

    @classmethod
    def short(cls, data: int) -> "Value":
        return cls._integer(ValueType.SHORT, data)

    @classmethod
    def integer(cls, data: int) -> "Value":
        return cls._integer(ValueType.INTEGER, data)

    @classmethod
    def signed_long(cls, data: int) -> "Value":
        return cls._integer(ValueType.SIGNED_LONG, data)

    @classmethod
    def long(cls, data: int) -> "Value":
        return cls._integer(ValueType.LONG, data)

    @classmethod
    def float(cls, data: float) -> "Value":
        return cls(ValueType.FLOAT, float(data))

    @classmethod
    def string(cls, data: str) -> "Value":
        return cls(ValueType.STRING, str(data))

    @classmethod
    def of(cls, data: Any) -> "Value":
        """
        Wrap a plain Python scalar into its natural variant.

        bool -> Boolean, int -> SignedLong (Long above the signed 64-bit range),
        float -> Float, anything else -> String. Never raises for a scalar;
        integers outside both 64-bit ranges fall back to Float. None has no
        variant and raises TypeError.
        """
        if isinstance(data, Value):
            return data
        if data is None:
            raise TypeError("None has no Value variant")
        if isinstance(data, bool):
            return cls.boolean(data)
        if isinstance(data, int):
            return cls._wide_integer(data)
        if isinstance(data, float):
            return cls.float(data)
        return cls.string(data)

    @classmethod
    def _wide_integer(cls, data: int) -> "Value":
        low, high = INTEGER_RANGES[ValueType.SIGNED_LONG]
        if low <= data <= high:
            return cls(ValueType.SIGNED_LONG, data)
        if 0 <= data <= INTEGER_RANGES[ValueType.LONG][1]:
            return cls(ValueType.LONG, data)
        try:
            return cls(ValueType.FLOAT, float(data))
        except OverflowError:
            return cls(ValueType.STRING, str(data))

    def __str__(self) -> str:
        if self.kind is ValueType.BOOLEAN:
            return str(self.data).lower()
        return str(self.data)


class Point:
    """
    One timestamped measurement record.

    measurement is fixed at construction. add_tag/add_field overwrite by key and
    never fail; a None value adds nothing. The same key may live in both tags
    and fields.
    """

    def __init__(self, measurement: str, timestamp: Optional[datetime] = None):
        if not measurement:
            raise ValueError("Point measurement must be a non-empty string")
        self._measurement = measurement
        self.tags: Dict[str, Value] = {}
        self.fields: Dict[str, Value] = {}
        self.timestamp: Optional[datetime] = timestamp or datetime.now(timezone.utc)

    @property
    def measurement(self) -> str:
        return self._measurement

    def add_tag(self, key: str, value: Any) -> None:
        if value is None:
            LOG.debug(f"{self._measurement}: no value for tag {key}, skipped")
            return
        self.tags[str(key)] = Value.of(value)

    def add_field(self, key: str, value: Any) -> None:
        if value is None:
            LOG.debug(f"{self._measurement}: no value for field {key}, skipped")
            return
        self.fields[str(key)] = Value.of(value)

    def with_time(self, instant: datetime) -> "Point":
        self.timestamp = instant
        return self

    def overlapping_keys(self) -> List[str]:
        """Keys present in both tags and fields."""
        return sorted(set(self.tags) & set(self.fields))

    def to_dict(self) -> Dict[str, Any]:
        """
        Build the measurement/tags/fields/time dictionary used by line-protocol writers.
        Time is expressed in whole seconds since the epoch.
        """
        return dict(
            measurement=self._measurement,
            tags={k: str(v) for k, v in self.tags.items()},
            fields={k: v.data for k, v in self.fields.items()},
            time=int(self.timestamp.timestamp()) if self.timestamp else None,
        )

    def __repr__(self) -> str:
        return (f"Point(measurement={self._measurement!r}, tags={len(self.tags)}, "
                f"fields={len(self.fields)}, timestamp={self.timestamp!r})")


def stamp(points: Iterable[Point], instant: datetime) -> List[Point]:
    """Give every point of one poll the same timestamp."""
    stamped = [p.with_time(instant) for p in points]
    LOG.debug(f"Stamped {len(stamped)} points with {instant.isoformat()}")
    return stamped
