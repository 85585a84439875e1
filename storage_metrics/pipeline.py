# -----------------------------------------------------------------------------
# Copyright (c) 2025 Storage Metrics (scaleoutSean@Github)
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
One-shot polls: a single authenticated round trip, decode, coerce, stamp.

Every point of a poll carries the same timestamp, taken once the response is
in. Transport and authentication errors propagate unmodified.
"""

import logging
from datetime import datetime, timezone
from typing import List, Mapping, Optional, Sequence, Union

from storage_metrics.coercion import records_to_points
from storage_metrics.decoders.csv_table import csv_to_points
from storage_metrics.decoders.json_records import extract_records
from storage_metrics.decoders.xml_tree import XmlListDecoder
from storage_metrics.point import Point, stamp
from storage_metrics.schema import RecordSchema
from storage_metrics.session import SessionClient

LOG = logging.getLogger(__name__)


def _finish(points: List[Point], timestamp: Optional[datetime], tags: Optional[Mapping[str, str]]) -> List[Point]:
    instant = timestamp or datetime.now(timezone.utc)
    for p in points:
        for key, value in (tags or {}).items():
            p.add_tag(key, value)
    return stamp(points, instant)


def poll_xml(client: SessionClient, path: str, body: Optional[Union[str, bytes]], decoder: XmlListDecoder,
             measurement: Optional[str] = None, timestamp: Optional[datetime] = None,
             tags: Optional[Mapping[str, str]] = None) -> List[Point]:
    """
    POST an XML request packet (or GET when body is None) and decode the list response.

    Args:
        client: Authenticated session
        path: API path on the array
        body: XML request packet
        decoder: Decoder describing the list containers and field schema
        measurement: Overrides the schema's measurement name
        timestamp: Poll instant, defaults to now (UTC)
        tags: Extra tags added to every point, e.g. the array name
    """
    if body is None:
        text = client.get(path)
    else:
        text = client.post(path, data=body, headers={'Content-Type': 'application/xml'})
    points = decoder.to_points(text, measurement)
    LOG.info(f"[poll_xml] {len(points)} {measurement or decoder.schema.measurement} points from {path}")
    return _finish(points, timestamp, tags)


def poll_csv(client: SessionClient, path: str, measurement: str, timestamp: Optional[datetime] = None,
             tags: Optional[Mapping[str, str]] = None) -> List[Point]:
    """GET a type-tagged CSV report and decode one point per data row."""
    text = client.get(path)
    points = csv_to_points(text, measurement)
    LOG.info(f"[poll_csv] {len(points)} {measurement} points from {path}")
    return _finish(points, timestamp, tags)


def poll_json(client: SessionClient, path: str, schema: RecordSchema,
              container: Optional[Union[str, Sequence[str]]] = None, timestamp: Optional[datetime] = None,
              tags: Optional[Mapping[str, str]] = None) -> List[Point]:
    """GET a JSON resource and coerce each record in `container` with `schema`."""
    text = client.get(path)
    records = extract_records(text, container)
    points = records_to_points(records, schema)
    LOG.info(f"[poll_json] {len(points)} {schema.measurement} points from {path}")
    return _finish(points, timestamp, tags)
