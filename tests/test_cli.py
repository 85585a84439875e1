import json
import logging

import pytest

from storage_metrics import cli
from storage_metrics.log import configure_logging


@pytest.fixture
def capture(tmp_path):
    path = tmp_path / 'ports.csv'
    path.write_text('port,iops,errors\nstring,double,ulong\nCL1-A,1.5,0\n')
    return str(path)


def test_decode_csv_prints_points(capture, capsys):
    assert cli.main(['decode-csv', capture, '--measurement', 'port_perf']) == 0
    [point] = json.loads(capsys.readouterr().out)
    assert point['measurement'] == 'port_perf'
    assert point['tags'] == {'port': 'CL1-A'}
    assert point['fields'] == {'iops': 1.5, 'errors': 0}


def test_decode_csv_writes_output_file(capture, tmp_path):
    out = tmp_path / 'points.json'
    assert cli.main(['--output', str(out), 'decode-csv', capture, '-m', 'port_perf']) == 0
    assert len(json.loads(out.read_text())) == 1


def test_decode_failure_exits_non_zero(tmp_path):
    path = tmp_path / 'broken.csv'
    path.write_text('port,iops\n')
    assert cli.main(['decode-csv', str(path), '-m', 'port_perf']) == 1


def test_decode_json_with_schema(tmp_path, capsys):
    schema = tmp_path / 'volume.yaml'
    schema.write_text('measurement: volume\ncontainer: data\nsource_case: camel\n'
                      'tags: [volume_name]\nfields: {total_size: u64}\n')
    body = tmp_path / 'volumes.json'
    body.write_text('{"data": [{"volumeName": "vol1", "totalSize": "2048"}]}')
    assert cli.main(['decode-json', str(body), '--schema', str(schema)]) == 0
    [point] = json.loads(capsys.readouterr().out)
    assert point['tags'] == {'volume_name': 'vol1'}
    assert point['fields'] == {'total_size': 2048}


def test_decode_xml_with_decoder_schema(tmp_path, capsys):
    schema = tmp_path / 'volume-xml.yaml'
    schema.write_text('measurement: volume\nsource_case: kebab\n'
                      'containers: [results/attributes-list]\nitem_tag: volume-attributes\n'
                      'tags: [name]\nfields: {size_total: u64}\n'
                      'blocks:\n  Ip: {source_case: camel, fields: {ip_in_packets: u64}}\n')
    body = tmp_path / 'volumes.xml'
    body.write_text('<?xml version="1.0" encoding="UTF-8"?>\n'
                    '<netapp version="1.0"><results status="passed"><attributes-list>'
                    '<volume-attributes><volume-id-attributes><name>vol1</name></volume-id-attributes>'
                    '<volume-space-attributes><size-total>4096</size-total></volume-space-attributes>'
                    '<Ip ipInPackets="9"/></volume-attributes>'
                    '</attributes-list></results></netapp>')
    assert cli.main(['decode-xml', str(body), '--schema', str(schema)]) == 0
    [point] = json.loads(capsys.readouterr().out)
    assert point['measurement'] == 'volume'
    assert point['tags'] == {'name': 'vol1'}
    assert point['fields'] == {'size_total': 4096, 'ip_in_packets': 9}


def test_decode_xml_failed_status_exits_non_zero(tmp_path):
    schema = tmp_path / 'volume-xml.yaml'
    schema.write_text('measurement: volume\ntags: [name]\n')
    body = tmp_path / 'failed.xml'
    body.write_text('<netapp><results status="failed" reason="not authorized"/></netapp>')
    assert cli.main(['decode-xml', str(body), '-s', str(schema)]) == 1


def test_poll_uses_configured_array(tmp_path, capsys, monkeypatch, http, make_response):
    config = tmp_path / 'config.yaml'
    config.write_text('arrays:\n  - name: e1\n    auth: bearer\n    endpoint: e1.local\n    token: tok\n')
    monkeypatch.setattr('storage_metrics.session.build_session', lambda *args, **kwargs: http)
    http.request.return_value = make_response(body='port,iops\nstring,double\nCL1-A,3\n')
    assert cli.main(['poll', '--config', str(config), '--array', 'e1', '--path', '/ports.csv', '-m', 'ports']) == 0
    [point] = json.loads(capsys.readouterr().out)
    assert point['tags'] == {'port': 'CL1-A', 'array': 'e1'}
    assert http.request.call_args.kwargs['headers'] == {'Authorization': 'Bearer tok'}
    http.close.assert_called_once()


def test_configure_logging_keeps_http_libraries_at_info():
    assert configure_logging('DEBUG') == logging.DEBUG
    assert logging.getLogger('urllib3').level == logging.INFO
    assert logging.getLogger('requests').level == logging.INFO


def test_configure_logging_falls_back_when_directory_missing(tmp_path):
    assert configure_logging('INFO', str(tmp_path / 'missing' / 'app.log')) == logging.INFO
    assert not (tmp_path / 'missing').exists()
