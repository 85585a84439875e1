# -----------------------------------------------------------------------------
# Copyright (c) 2025 Storage Metrics (scaleoutSean@Github)
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Exception hierarchy for the storage metrics pipeline.

Transport and authentication errors abort a whole poll and are propagated to
the caller unmodified. Decode errors abort the decode of one response.
CoercionError is raised for a single unparseable value; points already built
keep the fields added before it.
"""

from typing import Optional


class StorageError(Exception):
    """Root of all errors raised by this package."""


class TransportError(StorageError):
    """Connection, TLS or non-2xx HTTP status failure."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(StorageError):
    """The server did not hand back the expected auth artifact."""


class SessionStateError(StorageError):
    """A request was issued on a session that is not authenticated."""


class DecodeError(StorageError):
    """A response could not be turned into records."""


class CoercionError(DecodeError):
    """A raw value could not be parsed into its declared type."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field
        # Set by the engine to the point built up to the failing field
        self.point = None
