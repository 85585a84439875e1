# -----------------------------------------------------------------------------
# Copyright (c) 2025 Storage Metrics (scaleoutSean@Github)
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Attribute-tree XML decoding for XML-RPC style vendor APIs.

Responses are trees of named elements. Values live either in element text
(looked up per field with a single-path, first-match search) or in element
attributes (counter blocks such as <Ip .../> or <Tcp .../>). A failed query is
reported on the response root or a list container as status="failed" with the
vendor's reason text.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from lxml import etree

from storage_metrics.coercion import records_to_points
from storage_metrics.errors import DecodeError
from storage_metrics.point import Point
from storage_metrics.schema import RecordSchema

LOG = logging.getLogger(__name__)

_PARSER = etree.XMLParser(remove_blank_text=True, resolve_entities=False, no_network=True)


def parse_document(data: Union[str, bytes]) -> etree._Element:
    """
    Parse a response body and return its root element.

    Raises:
        DecodeError: empty body or malformed XML
    """
    if data is None or not data.strip():
        raise DecodeError("root xml not found: empty response body")
    if isinstance(data, str):
        data = data.encode('utf-8')
    try:
        return etree.fromstring(data, parser=_PARSER)
    except etree.XMLSyntaxError as e:
        raise DecodeError(f"invalid xml data from server: {e}") from e


def local_name(element: etree._Element) -> Optional[str]:
    """Tag name without namespace, None for comments and processing instructions."""
    if not isinstance(element.tag, str):
        return None
    return etree.QName(element).localname


def check_failure(element: etree._Element) -> None:
    """Raise with the vendor's reason text when the element reports a failed query."""
    if element.get('status') == 'failed':
        raise DecodeError(f"query failed: {element.get('reason', '')}")


def find_child(element: etree._Element, tag: str) -> Optional[etree._Element]:
    """First direct child named `tag`."""
    for child in element:
        if local_name(child) == tag:
            return child
    return None


def require_child(element: etree._Element, tag: str) -> etree._Element:
    child = find_child(element, tag)
    if child is None:
        raise DecodeError(f"{tag} tag not found in {local_name(element)}")
    return child


def find_path(element: etree._Element, path: str) -> Optional[etree._Element]:
    """Follow a '/'-separated chain of direct children."""
    current = element
    for tag in path.split('/'):
        if not tag:
            continue
        current = find_child(current, tag)
        if current is None:
            return None
    return current


def find_first(element: etree._Element, tag: str) -> Optional[etree._Element]:
    """
    Depth-first search below `element` for the first element named `tag`.

    Resolution stops at the first match in document order; repeated tags further
    down are never considered.
    """
    for descendant in element.iterdescendants():
        if local_name(descendant) == tag:
            return descendant
    return None


def find_text(element: etree._Element, tag: str) -> Optional[str]:
    found = find_first(element, tag)
    if found is None:
        return None
    return found.text or ''


def attributes_to_record(element: etree._Element, schema: RecordSchema) -> Dict[str, Any]:
    """
    Read an element's attributes into a record keyed by wire name.

    Wire names may carry a leading underscore to dodge reserved words; it is
    stripped before matching. Unknown attributes are ignored, missing ones are
    omitted from the record.
    """
    wanted = {spec.key.lstrip('_'): spec for spec in schema}
    record: Dict[str, Any] = {}
    for raw_name, value in element.attrib.items():
        name = etree.QName(raw_name).localname
        spec = wanted.get(name)
        if spec is None:
            LOG.debug(f"unknown xml attribute: {name} for {local_name(element)}")
            continue
        record[spec.key] = value
    missing = [name for name, spec in wanted.items() if spec.key not in record]
    if missing:
        LOG.debug(f"xml attributes missing on {local_name(element)}: {missing}")
    return record


class XmlListDecoder:
    """
    Decode list-style XML responses into flat records.

    Args:
        schema: Fields read from element text under each list item. A field's
            `path` names the sub-block to search in, its `key` the element name.
        containers: '/'-separated paths from the root to each list container.
            Every container is required.
        item_tag: Only list children with this name are items. None takes all.
        item_attributes: Schema for attributes carried by the item element itself.
        blocks: Sub-element name -> attribute schema. Counters split across
            sibling blocks are merged into the item's record.
    """

    def __init__(self, schema: RecordSchema, containers: Sequence[str] = ('results/attributes-list',),
                 item_tag: Optional[str] = None, item_attributes: Optional[RecordSchema] = None,
                 blocks: Optional[Dict[str, RecordSchema]] = None):
        self.schema = schema
        self.containers = list(containers)
        self.item_tag = item_tag
        self.item_attributes = item_attributes
        self.blocks = blocks or {}

        # Attribute values are optional: a missing attribute degrades to an absent field
        combined = list(schema.fields)
        for attr_schema in ([item_attributes] if item_attributes else []) + list(self.blocks.values()):
            combined.extend(replace(spec, optional=True) for spec in attr_schema)
        self.point_schema = RecordSchema(schema.measurement, combined)

    def _items(self, root: etree._Element) -> List[etree._Element]:
        containers = []
        if not self.containers:
            containers.append(root)
        for path in self.containers:
            current = root
            for tag in (t for t in path.split('/') if t):
                current = require_child(current, tag)
                check_failure(current)
            containers.append(current)

        items = []
        for container in containers:
            for child in container:
                name = local_name(child)
                if name is None:
                    continue
                if self.item_tag is None or name == self.item_tag:
                    items.append(child)
        return items

    def decode_item(self, item: etree._Element) -> Dict[str, Any]:
        record: Dict[str, Any] = {}
        if self.item_attributes is not None:
            record.update(attributes_to_record(item, self.item_attributes))

        for spec in self.schema:
            scope = find_path(item, spec.path) if spec.path else item
            found = find_first(scope, spec.key) if scope is not None else None
            if found is None:
                if not spec.optional:
                    raise DecodeError(f"{spec.key} not found in {local_name(item)}")
                LOG.debug(f"Optional {spec.key} not found in {local_name(item)}")
                if spec.default is not None:
                    record[spec.key] = spec.default
                continue
            record[spec.key] = found.text or ''

        if self.blocks:
            for element in item.iterdescendants():
                block = self.blocks.get(local_name(element))
                if block is not None:
                    record.update(attributes_to_record(element, block))
        return record

    def decode(self, data: Union[str, bytes]) -> List[Dict[str, Any]]:
        """
        Decode a response body into records keyed by wire name.

        Raises:
            DecodeError: missing root or container, failed status, missing required field
        """
        root = parse_document(data)
        check_failure(root)
        records = [self.decode_item(item) for item in self._items(root)]
        LOG.debug(f"Decoded {len(records)} {self.schema.measurement} records from xml")
        return records

    def to_points(self, data: Union[str, bytes], measurement: Optional[str] = None,
                  timestamp: Optional[datetime] = None) -> List[Point]:
        return records_to_points(self.decode(data), self.point_schema, measurement, timestamp)
