# -----------------------------------------------------------------------------
# Copyright (c) 2025 Storage Metrics (scaleoutSean@Github)
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Request packets for XML-RPC style vendor APIs.

The query side of the attribute-tree APIs: every request is an envelope root
in the vendor namespace, a chain of wrapper elements naming the call, and the
call's parameters as child elements.

    build_request('netapp', NETAPP_NAMESPACE, {'version': '1.0'},
                  ['volume-get-iter'], [('max-records', '1000'), ('tag', None)])
"""

import logging
import platform
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from lxml import etree

LOG = logging.getLogger(__name__)

NETAPP_NAMESPACE = "http://www.netapp.com/filer/admin"
NETAPP_DOCTYPE = "<!DOCTYPE netapp SYSTEM 'file:/etc/netapp_filer.dtd'>"
CELERRA_NAMESPACE = "http://www.emc.com/schemas/celerra/xml_api"

# A path step is a tag, or a tag with its attributes
PathStep = Union[str, Tuple[str, Dict[str, str]]]
# Parameters: (name, value) pairs; a value that is itself a list nests elements
Params = Union[Dict[str, Any], Sequence[Tuple[str, Any]]]


def _qualified(tag: str, namespace: Optional[str]) -> str:
    return f"{{{namespace}}}{tag}" if namespace else tag


def _add_params(parent: etree._Element, params: Optional[Params], namespace: Optional[str]) -> None:
    if not params:
        return
    items = params.items() if isinstance(params, dict) else params
    for name, value in items:
        child = etree.SubElement(parent, _qualified(name, namespace))
        if isinstance(value, (list, tuple, dict)):
            _add_params(child, value, namespace)
        elif value is not None:
            child.text = str(value)


def build_request(root_tag: str, namespace: Optional[str] = None, attrs: Optional[Dict[str, str]] = None,
                  path: Sequence[PathStep] = (), params: Optional[Params] = None,
                  doctype: Optional[str] = None) -> bytes:
    """
    Serialize one request packet.

    Args:
        root_tag: Envelope element, e.g. 'netapp' or 'RequestPacket'
        namespace: Default namespace for the envelope and everything inside it
        attrs: Attributes of the envelope
        path: Wrapper elements from the envelope down to the call
        params: Child elements of the innermost wrapper
        doctype: Optional DOCTYPE line

    Returns:
        UTF-8 encoded document with an XML declaration
    """
    nsmap = {None: namespace} if namespace else None
    root = etree.Element(_qualified(root_tag, namespace), nsmap=nsmap)
    for key, value in (attrs or {}).items():
        root.set(key, str(value))

    current = root
    for step in path:
        tag, step_attrs = (step, {}) if isinstance(step, str) else step
        current = etree.SubElement(current, _qualified(tag, namespace))
        for key, value in step_attrs.items():
            current.set(key, str(value))
    _add_params(current, params, namespace)

    packet = etree.tostring(root, xml_declaration=True, encoding='UTF-8', doctype=doctype)
    LOG.debug(f"Built {root_tag} request: {packet!r}")
    return packet


def netapp_request(api: str, params: Optional[Params] = None, version: str = '1.0',
                   vfiler: Optional[str] = None) -> bytes:
    """ZAPI call wrapped in the <netapp> envelope, e.g. netapp_request('volume-get-iter', [('max-records', '1000')])."""
    attrs = {
        'version': version,
        'nmsdk_version': '9.4',
        'nmsdk_platform': f"{platform.system()} {platform.machine()}",
        'nmsdk_language': 'Python',
        'nmsdk_app': 'storage-metrics',
    }
    if vfiler:
        attrs['vfiler'] = vfiler
    return build_request('netapp', NETAPP_NAMESPACE, attrs, [api], params, doctype=NETAPP_DOCTYPE)


def celerra_query(element: str, attrs: Optional[Dict[str, str]] = None, stats: bool = False,
                  params: Optional[Params] = None) -> bytes:
    """
    Celerra XML API query packet: RequestPacket/Request/Query (or QueryStats
    when `stats` is set) wrapping one query element.
    """
    path: List[PathStep] = ['Request', 'QueryStats' if stats else 'Query', (element, attrs or {})]
    return build_request('RequestPacket', CELERRA_NAMESPACE, path=path, params=params)
