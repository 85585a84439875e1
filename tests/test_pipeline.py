from datetime import datetime, timezone

from storage_metrics.decoders.xml_request import celerra_query
from storage_metrics.decoders.xml_tree import XmlListDecoder
from storage_metrics.pipeline import poll_csv, poll_json, poll_xml
from storage_metrics.point import Value
from storage_metrics.schema import FieldSpec, RecordSchema
from storage_metrics.session import BearerTokenSession, CookieSession, Credentials

INSTANT = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def bearer(http):
    return BearerTokenSession('array.local', Credentials('monitor', token='tok'), session=http)


def test_poll_json(http, make_response):
    http.request.return_value = make_response(
        body='{"data": [{"volumeName": "vol1", "readIops": 10.5}, {"volumeName": "vol2", "readIops": 0}]}')
    schema = RecordSchema.from_dict('volume_perf', {
        'tags': ['volume_name'],
        'fields': {'read_iops': 'f64'},
    }, source_case='camel')
    points = poll_json(bearer(http), '/devmgr/v2/storage-systems/1/analysed-volume-statistics', schema,
                       container='data', timestamp=INSTANT, tags={'array': 'e1'})
    assert [p.tags for p in points] == [
        {'volume_name': Value.string('vol1'), 'array': Value.string('e1')},
        {'volume_name': Value.string('vol2'), 'array': Value.string('e1')},
    ]
    assert points[1].fields == {'read_iops': Value.float(0.0)}
    assert {p.timestamp for p in points} == {INSTANT}


def test_poll_csv_stamps_one_instant(http, make_response):
    http.request.return_value = make_response(body='port,iops\nstring,double\nCL1-A,10\nCL2-A,20\n')
    points = poll_csv(bearer(http), '/reports/ports.csv', 'port_perf')
    assert len(points) == 2
    assert points[0].timestamp == points[1].timestamp
    assert points[0].timestamp is not None


def test_poll_xml_posts_request_packet(http, make_response):
    http.request.side_effect = [
        make_response(cookies={'Ticket': 't1'}),
        make_response(body='<ResponsePacket><Response><Mover mover="1"><Ip ipInPackets="4"/></Mover>'
                           '</Response></ResponsePacket>', cookies={'JSESSIONID': 's1'}),
    ]
    client = CookieSession('vnx.local', Credentials('monitor', password='pw'), session=http)
    decoder = XmlListDecoder(
        RecordSchema('mover_net', []),
        containers=('Response',),
        item_attributes=RecordSchema('mover_net', [FieldSpec('mover', 'string')]),
        blocks={'Ip': RecordSchema('mover_net', [FieldSpec('ip_in', 'u64', source='ipInPackets')])},
    )
    packet = celerra_query('MoverStats', {'mover': '1', 'statsSet': 'Network'}, stats=True)
    [point] = poll_xml(client, client.api_path, packet, decoder, measurement='mover_stats',
                       timestamp=INSTANT)
    assert point.measurement == 'mover_stats'
    assert point.tags == {'mover': Value.string('1')}
    assert point.fields == {'ip_in': Value.long(4)}
    request = http.request.call_args_list[1]
    assert request.args[0] == 'POST'
    assert request.kwargs['data'] == packet
    assert request.kwargs['headers']['Content-Type'] == 'application/xml'
    assert client.cookies['JSESSIONID'] == 's1'
