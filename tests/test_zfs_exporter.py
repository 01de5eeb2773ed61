""" prometheus collector 和 /metrics 接口 """

import pytest
from fastapi.testclient import TestClient
from prometheus_client.core import CollectorRegistry
from prometheus_client.exposition import generate_latest

from conf import CONF
from logm import logger
from exporter.zfs import Measurement, ProcfsStatsSource, StatsSource, ValueDecodeError
from exporter.zfs_exporter import FamilySink, ZfsCollector, create_app, main


class StubSource(StatsSource):
    def __init__(self, measurements, error=None):
        self._measurements = measurements
        self.error = error
        self.passes = 0

    @property
    def platform_name(self):
        return 'stub'

    def measurements(self):
        self.passes += 1
        yield from self._measurements
        if self.error is not None:
            raise self.error


def procfs_source(procfs_path):
    return ProcfsStatsSource(procfs_path, 'spl/kstat/zfs', CONF.zfs.path_map)


def families_by_name(collector):
    return {family.name: family for family in collector.collect()}


def test_family_sink_groups_by_name():
    sink = FamilySink()
    sink.emit(Measurement('node_zfs_zpool_nread', 'kstat.zfs.misc.io.nread', {'zpool': 'a'}, 1))
    sink.emit(Measurement('node_zfs_zpool_nread', 'kstat.zfs.misc.io.nread', {'zpool': 'b'}, 2))
    sink.emit(Measurement('node_zfs_arc_hits', 'kstat.zfs.misc.arcstats.hits', {}, 3))
    assert list(sink.families) == ['node_zfs_zpool_nread', 'node_zfs_arc_hits']
    samples = sink.families['node_zfs_zpool_nread'].samples
    assert [(s.labels, s.value) for s in samples] == [({'zpool': 'a'}, 1.0), ({'zpool': 'b'}, 2.0)]
    assert sink.families['node_zfs_arc_hits'].type == 'unknown'


def test_collector_success(procfs_path):
    families = families_by_name(ZfsCollector(procfs_source(procfs_path)))
    assert families['node_zfs_arc_hits'].samples[0].value == 8772612
    assert families['node_zfs_arc_hits'].documentation == 'kstat.zfs.misc.arcstats.hits'
    assert len(families['node_zfs_zpool_nread'].samples) == 2
    assert families['node_scrape_collector_success'].samples[0].value == 1
    assert families['node_scrape_collector_success'].samples[0].labels == {'collector': 'zfs'}
    assert families['node_scrape_collector_duration_seconds'].samples[0].value >= 0


def test_collector_failure_keeps_partial_output():
    source = StubSource([Measurement('node_zfs_zpool_nread', 'nread', {'zpool': 'tank'}, 5)],
                        error=ValueDecodeError('kstat.zfs.misc.io.nwritten', 'x'))
    families = families_by_name(ZfsCollector(source))
    assert families['node_zfs_zpool_nread'].samples[0].value == 5
    assert families['node_scrape_collector_success'].samples[0].value == 0


def test_unexpected_errors_propagate():
    source = StubSource([], error=RuntimeError('bug'))
    with pytest.raises(RuntimeError):
        list(ZfsCollector(source).collect())


def test_every_scrape_is_a_new_pass():
    source = StubSource([Measurement('node_zfs_arc_hits', 'hits', {}, 1)])
    collector = ZfsCollector(source)
    list(collector.collect())
    list(collector.collect())
    assert source.passes == 2


def test_registry_exposition(procfs_path):
    registry = CollectorRegistry()
    registry.register(ZfsCollector(procfs_source(procfs_path)))
    text = generate_latest(registry).decode()
    assert '# TYPE node_zfs_arc_hits untyped' in text
    assert 'node_zfs_arc_hits 8.772612e+06' in text
    assert 'node_zfs_zpool_nread{zpool="tank"} 1.88416e+06' in text
    assert text.count('# TYPE node_zfs_zpool_nread ') == 1


def test_metrics_endpoint(procfs_path):
    client = TestClient(create_app(procfs_source(procfs_path)))
    response = client.get('/metrics')
    assert response.status_code == 200
    assert response.headers['content-type'].startswith('text/plain')
    assert 'node_zfs_zpool_nwritten{zpool="backup"} 8192.0' in response.text
    assert 'node_scrape_collector_success{collector="zfs"} 1.0' in response.text


def test_metrics_endpoint_openmetrics(procfs_path):
    client = TestClient(create_app(procfs_source(procfs_path)))
    response = client.get('/metrics', headers={'Accept': 'application/openmetrics-text; version=1.0.0'})
    assert response.headers['content-type'].startswith('application/openmetrics-text')
    assert response.text.rstrip().endswith('# EOF')


def test_main_wires_cli_options(monkeypatch, procfs_path):
    served = {}

    def fake_run(app, host, port, access_log):
        served.update(app=app, host=host, port=port)

    monkeypatch.setattr('exporter.zfs_exporter.uvicorn.run', fake_run)
    monkeypatch.setitem(CONF.zfs, 'platform', CONF.zfs.platform)
    monkeypatch.setitem(CONF.zfs, 'procfs_path', CONF.zfs.procfs_path)
    main(['--port=9999', '--platform=linux', f'--procfs={procfs_path}'])
    assert served['port'] == 9999
    assert served['host'] == '0.0.0.0'
    assert CONF.zfs.procfs_path == procfs_path
    response = TestClient(served['app']).get('/metrics')
    assert 'node_zfs_arc_hits 8.772612e+06' in response.text


def test_collector_with_non_ascii_string_row(tmp_path):
    zfs_dir = tmp_path / 'spl' / 'kstat' / 'zfs'
    zfs_dir.mkdir(parents=True)
    (zfs_dir / 'fm').write_bytes(b'name type data\nlabel 7 caf\xe9\nerpt-dropped 4 18\n')
    families = families_by_name(ZfsCollector(procfs_source(str(tmp_path))))
    assert families['node_zfs_fm_erpt_dropped'].samples[0].value == 18
    assert families['node_scrape_collector_success'].samples[0].value == 1


def test_family_sink_label_mismatch_is_logged():
    messages = []
    handler_id = logger.add(messages.append, level='DEBUG', format='{message}')
    try:
        sink = FamilySink()
        sink.emit(Measurement('node_zfs_zone_nread', 'nread', {'zone': 'web01'}, 1))
        sink.emit(Measurement('node_zfs_zone_nread', 'zone_nread', {}, 2))
    finally:
        logger.remove(handler_id)
    assert len(sink.families['node_zfs_zone_nread'].samples) == 2
    assert any('node_zfs_zone_nread' in m and 'label' in m for m in messages)
