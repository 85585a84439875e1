# -----------------------------------------------------------------------------
# Copyright (c) 2025 Storage Metrics (scaleoutSean@Github)
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Command line tooling for decoding captured array responses and one-shot polls.

Usage:
    storage-metrics decode-csv capture.csv --measurement port_stats
    storage-metrics decode-json volumes.json --schema volume.yaml
    storage-metrics decode-xml volumes.xml --schema volume-xml.yaml
    storage-metrics poll --config config.yaml --array vnx1 --path /api/stats --measurement port_stats
"""

import argparse
import json
import logging
import sys
from typing import List, Optional, Tuple

import yaml

from storage_metrics.coercion import records_to_points
from storage_metrics.config import Settings
from storage_metrics.decoders.csv_table import csv_to_points
from storage_metrics.decoders.json_records import extract_records
from storage_metrics.decoders.xml_tree import XmlListDecoder
from storage_metrics.errors import StorageError
from storage_metrics.log import configure_logging
from storage_metrics.pipeline import poll_csv, poll_json
from storage_metrics.point import Point
from storage_metrics.schema import RecordSchema

LOG = logging.getLogger(__name__)


def load_schema(schema_file: str) -> Tuple[RecordSchema, Optional[str]]:
    """
    Read a record schema from YAML:

        measurement: volumes
        container: data
        source_case: camel
        tags: [name, pool_id]
        fields: {total_size_in_bytes: u64, read_ops: f64}
        optional: [read_ops]

    Returns:
        (RecordSchema, container key or None)
    """
    with open(schema_file, 'r') as f:
        data = yaml.safe_load(f) or {}
    if 'measurement' not in data:
        raise ValueError(f"Schema file {schema_file} has no 'measurement'")
    schema = RecordSchema.from_dict(data['measurement'], data, source_case=data.get('source_case'))
    return schema, data.get('container')


def _sub_schema(measurement: str, data: dict, source_case: Optional[str]) -> RecordSchema:
    return RecordSchema.from_dict(measurement, data, source_case=data.get('source_case', source_case),
                                  path=data.get('path'))


def load_xml_decoder(schema_file: str) -> XmlListDecoder:
    """
    Read an XML list decoder from YAML. Text fields use the record schema keys;
    attribute schemas for the item element and its counter blocks are nested:

        measurement: volumes
        source_case: kebab
        containers: [results/attributes-list]
        item_tag: volume-attributes
        path: volume-id-attributes
        tags: [name]
        fields: {size_total: u64}
        item_attributes: {tags: [mover]}
        blocks:
          Ip: {source_case: camel, fields: {ip_in_packets: u64}}
    """
    with open(schema_file, 'r') as f:
        data = yaml.safe_load(f) or {}
    if 'measurement' not in data:
        raise ValueError(f"Schema file {schema_file} has no 'measurement'")
    measurement = data['measurement']
    source_case = data.get('source_case')
    item_attributes = data.get('item_attributes')
    return XmlListDecoder(
        _sub_schema(measurement, data, source_case),
        containers=data.get('containers', ['results/attributes-list']),
        item_tag=data.get('item_tag'),
        item_attributes=_sub_schema(measurement, item_attributes, source_case) if item_attributes else None,
        blocks={tag: _sub_schema(measurement, block or {}, source_case)
                for tag, block in (data.get('blocks') or {}).items()},
    )


def _read(path: str) -> str:
    with open(path, 'r', encoding='utf-8', errors='replace') as f:
        return f.read()


def _dump(points: List[Point], output: Optional[str]) -> None:
    payload = [p.to_dict() for p in points]
    if output:
        with open(output, 'w') as f:
            json.dump(payload, f, indent=2)
        LOG.info(f"Wrote {len(payload)} points to {output}")
    else:
        json.dump(payload, sys.stdout, indent=2)
        sys.stdout.write('\n')


def cmd_decode_csv(args) -> List[Point]:
    return csv_to_points(_read(args.file), args.measurement)


def cmd_decode_json(args) -> List[Point]:
    schema, container = load_schema(args.schema)
    records = extract_records(_read(args.file), args.container or container)
    return records_to_points(records, schema)


def cmd_decode_xml(args) -> List[Point]:
    return load_xml_decoder(args.schema).to_points(_read(args.file))


def cmd_poll(args) -> List[Point]:
    settings = Settings(config_file=args.config, from_env=args.config is None)
    array = settings.get_array(args.array)
    with settings.open_session(array) as client:
        if args.schema:
            schema, container = load_schema(args.schema)
            return poll_json(client, args.path, schema, args.container or container, tags=array.tags())
        return poll_csv(client, args.path, args.measurement, tags=array.tags())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='storage-metrics', description="Decode storage array responses into points")
    parser.add_argument('--logfile', type=str, default=None,
        help='Path to log file. If not provided, logs to console only.')
    parser.add_argument('--loglevel', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], default='WARNING',
        help='Log level for both console and file output. Default: WARNING')
    parser.add_argument('--output', '-o', type=str, default=None,
        help='Write points as JSON to this file instead of stdout.')
    sub = parser.add_subparsers(dest='command', required=True)

    csv_cmd = sub.add_parser('decode-csv', help='Decode a captured type-tagged CSV report')
    csv_cmd.add_argument('file', help='CSV file: header row, type row, data rows')
    csv_cmd.add_argument('--measurement', '-m', required=True, help='Measurement name for every point')
    csv_cmd.set_defaults(func=cmd_decode_csv)

    json_cmd = sub.add_parser('decode-json', help='Decode a captured JSON response with a YAML record schema')
    json_cmd.add_argument('file', help='JSON response body')
    json_cmd.add_argument('--schema', '-s', required=True, help='YAML record schema')
    json_cmd.add_argument('--container', type=str, default=None, help='Key holding the record list')
    json_cmd.set_defaults(func=cmd_decode_json)

    xml_cmd = sub.add_parser('decode-xml', help='Decode a captured attribute-tree XML response with a YAML decoder schema')
    xml_cmd.add_argument('file', help='XML response body')
    xml_cmd.add_argument('--schema', '-s', required=True, help='YAML decoder schema')
    xml_cmd.set_defaults(func=cmd_decode_xml)

    poll_cmd = sub.add_parser('poll', help='Log in to a configured array and poll one resource once')
    poll_cmd.add_argument('--config', type=str, default=None,
        help='Path to YAML config file. Environment variables and .env are used when omitted.')
    poll_cmd.add_argument('--array', required=True, help='Name of the array in the configuration')
    poll_cmd.add_argument('--path', required=True, help='API path to poll')
    group = poll_cmd.add_mutually_exclusive_group(required=True)
    group.add_argument('--measurement', '-m', help='Decode the response as type-tagged CSV')
    group.add_argument('--schema', '-s', help='Decode the response as JSON with this YAML record schema')
    poll_cmd.add_argument('--container', type=str, default=None, help='Key holding the JSON record list')
    poll_cmd.set_defaults(func=cmd_poll)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.loglevel, args.logfile)
    try:
        points = args.func(args)
    except (StorageError, OSError, ValueError, KeyError, yaml.YAMLError) as e:
        LOG.error(f"{args.command} failed: {e}")
        return 1
    _dump(points, args.output)
    return 0


if __name__ == '__main__':
    sys.exit(main())
