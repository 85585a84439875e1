"""
Structured response decoders: attribute-tree XML, type-tagged CSV and JSON records,
plus the XML request packets that query the attribute-tree APIs.
"""
from storage_metrics.decoders.csv_table import column_value, csv_to_points, row_values
from storage_metrics.decoders.json_records import extract_records
from storage_metrics.decoders.xml_request import (
    CELERRA_NAMESPACE, NETAPP_NAMESPACE, build_request, celerra_query, netapp_request
)
from storage_metrics.decoders.xml_tree import (
    XmlListDecoder, attributes_to_record, check_failure, find_first, find_text, parse_document
)

__all__ = [
    'CELERRA_NAMESPACE',
    'NETAPP_NAMESPACE',
    'XmlListDecoder',
    'attributes_to_record',
    'build_request',
    'celerra_query',
    'check_failure',
    'column_value',
    'csv_to_points',
    'extract_records',
    'find_first',
    'find_text',
    'netapp_request',
    'parse_document',
    'row_values',
]
