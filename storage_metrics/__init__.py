"""
Storage Metrics: vendor API responses to time series points.

Authenticated sessions against storage array control planes, decoders for
their XML, CSV and JSON responses, and a schema-driven coercion engine that
turns decoded records into tagged, timestamped points.
"""
from storage_metrics.errors import (
    AuthenticationError, CoercionError, DecodeError, SessionStateError, StorageError, TransportError
)
from storage_metrics.point import Point, Value, ValueType, stamp
from storage_metrics.schema import BandwidthWindow, FieldSpec, RecordSchema
from storage_metrics.coercion import coerce, record_to_point, records_to_points
from storage_metrics.session import (
    BearerTokenSession, CookieSession, Credentials, SessionClient, SessionState, TokenHeaderSession
)

__version__ = "1.0.0"
