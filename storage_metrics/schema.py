# -----------------------------------------------------------------------------
# Copyright (c) 2025 Storage Metrics (scaleoutSean@Github)
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Record schema descriptions consumed by the coercion engine and the decoders.

A schema is an explicit list of (name, semantic type, tag/field hint) entries
per record type. Decoders use the same entries to find values on the wire
(source key, XML sub-block path, optional flag).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from storage_metrics.utils import snake_to_camel_case, snake_to_kebab_case

LOG = logging.getLogger(__name__)

TAG = 'tag'
FIELD = 'field'

SEMANTIC_TYPES = ('string', 'bool', 'u8', 'u16', 'i32', 'i64', 'u64', 'f64', 'uuid', 'bwc')

TYPE_ALIASES = {
    'str': 'string',
    'text': 'string',
    'boolean': 'bool',
    'byte': 'u8',
    'short': 'u16',
    'int': 'i32',
    'int32': 'i32',
    'int64': 'i64',
    'long': 'i64',
    'ulong': 'u64',
    'uint64': 'u64',
    'float': 'f64',
    'double': 'f64',
}


def normalize_type(name: str) -> str:
    """Map a declared type name onto its canonical spelling; unknown names pass through."""
    lowered = str(name).strip().lower()
    return TYPE_ALIASES.get(lowered, lowered)


@dataclass(frozen=True)
class FieldSpec:
    """
    One entry of a record schema.

    name:          key emitted on the point
    semantic_type: canonical type name (see SEMANTIC_TYPES)
    hint:          'tag', 'field' or None to classify by type
    optional:      value may be absent; absence emits nothing
    source:        key / element / attribute name on the wire, defaults to name
    path:          '/'-separated XML sub-block holding the value
    default:       value used when an optional source is missing
    """
    name: str
    semantic_type: str
    hint: Optional[str] = None
    optional: bool = False
    source: Optional[str] = None
    path: Optional[str] = None
    default: Any = None

    def __post_init__(self):
        object.__setattr__(self, 'semantic_type', normalize_type(self.semantic_type))
        if self.hint not in (None, TAG, FIELD):
            raise ValueError(f"Invalid hint '{self.hint}' for field '{self.name}', expected 'tag' or 'field'")

    @property
    def key(self) -> str:
        """The wire name this field is read from."""
        return self.source or self.name

    @property
    def is_known_type(self) -> bool:
        return self.semantic_type in SEMANTIC_TYPES


@dataclass
class RecordSchema:
    """Ordered field descriptions for one vendor record type."""
    measurement: str
    fields: List[FieldSpec] = field(default_factory=list)

    def __iter__(self) -> Iterator[FieldSpec]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def get(self, name: str) -> Optional[FieldSpec]:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    def by_source(self) -> Dict[str, FieldSpec]:
        """Index the fields by wire name."""
        return {spec.key: spec for spec in self.fields}

    @classmethod
    def from_dict(cls, measurement: str, schema: Dict[str, Any], source_case: Optional[str] = None,
                  path: Optional[str] = None) -> 'RecordSchema':
        """
        Build a schema from the dictionary style used for measurement overrides:

            {
                'tags': ['node_name', 'state'],           # string tags
                'fields': {'size_total': 'u64', ...},     # name -> type
                'optional': ['size_total'],               # names that may be absent
            }

        Args:
            measurement: Default measurement name for points built from this schema
            schema: The dictionary description
            source_case: 'camel' or 'kebab' to derive wire names from snake_case names
            path: XML sub-block applied to every field

        Returns:
            RecordSchema
        """
        optional = set(schema.get('optional', []))
        tags = schema.get('tags', [])
        if not isinstance(tags, dict):
            tags = {name: 'string' for name in tags}

        specs = []
        for name, type_name in tags.items():
            specs.append(FieldSpec(name, type_name, hint=TAG, optional=name in optional,
                                   source=_source_name(name, source_case), path=path))
        for name, type_name in schema.get('fields', {}).items():
            specs.append(FieldSpec(name, type_name, hint=FIELD, optional=name in optional,
                                   source=_source_name(name, source_case), path=path))

        unknown = [s.name for s in specs if not s.is_known_type]
        if unknown:
            LOG.warning(f"[schema] {measurement}: fields with unrecognized types will be skipped: {unknown}")
        return cls(measurement, specs)


def _source_name(name: str, source_case: Optional[str]) -> Optional[str]:
    if source_case is None:
        return None
    if source_case == 'camel':
        return snake_to_camel_case(name)
    if source_case == 'kebab':
        return snake_to_kebab_case(name)
    raise ValueError(f"Unsupported source_case '{source_case}'")


@dataclass(frozen=True)
class BandwidthWindow:
    """
    Composite bandwidth counter: accumulated weight, occurrence count and elapsed seconds.
    """
    total_weight: int
    occurrences: int
    seconds: int

    def average(self) -> int:
        """Average per occurrence per second, 0 whenever a divisor is zero."""
        per_occurrence = checked_div(self.total_weight, self.occurrences)
        return checked_div(per_occurrence, self.seconds)

    @classmethod
    def from_raw(cls, raw: Any) -> 'BandwidthWindow':
        """
        Accept a BandwidthWindow, a mapping with totalWeightInKb/numOccured/numSeconds
        (camelCase or snake_case) keys, or a (total, occurrences, seconds) sequence.
        """
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, dict):
            return cls(
                total_weight=_first_present(raw, ('totalWeightInKb', 'total_weight_in_kb', 'total_weight')),
                occurrences=_first_present(raw, ('numOccured', 'num_occured', 'occurrences')),
                seconds=_first_present(raw, ('numSeconds', 'num_seconds', 'seconds')),
            )
        if isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)) and len(raw) == 3:
            return cls(*raw)
        raise TypeError(f"Cannot build a bandwidth window from {type(raw).__name__}")


def checked_div(numerator: int, denominator: int) -> int:
    """Integer division that yields 0 instead of raising on a zero divisor."""
    if denominator == 0:
        return 0
    return numerator // denominator


def _first_present(raw: Dict[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    raise KeyError(f"none of {list(keys)} present in bandwidth window {raw}")
