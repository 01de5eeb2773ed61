"""
    采集 zfs kstat 统计信息的 Prometheus exporter.
    linux 上读取 /proc/spl/kstat/zfs 下的表格, solaris / illumos 上执行 `kstat -j`, 统一转成 untyped 的指标.
每次抓取 /metrics 都会完整地采集一次, 不缓存上一次的结果.

Usage:
    zfs_exporter.py [--host=<host>] [--port=<port>] [--platform=<platform>] [--procfs=<path>]

Options:
    -h --help                  显示帮助.
    --host=<host>              监听地址.
    -p --port=<port>           服务器端口.
    --platform=<platform>      数据来源: auto / linux / solaris.
    --procfs=<path>            procfs 挂载点, 默认 /proc.
"""

import sys
import time
from collections import OrderedDict

import uvicorn
from docopt import docopt
from fastapi import FastAPI
from prometheus_client.core import CollectorRegistry, GaugeMetricFamily, UnknownMetricFamily

from conf import CONF
from logm import logger, log_stage
from exporter.exporter_utils import make_scrape_endpoint
from exporter.zfs import Measurement, MetricSink, StatsSource, ZfsStatsError, build_fq_name, select_stats_source


class FamilySink(MetricSink):
    """ 按指标名归并成 metric family, 多个 pool / zone 共用同一个 family """

    def __init__(self):
        self.families = OrderedDict()

    def emit(self, measurement: Measurement):
        family = self.families.get(measurement.name)
        if family is None:
            family = UnknownMetricFamily(measurement.name, measurement.documentation,
                                         labels=list(measurement.labels))
            self.families[measurement.name] = family
        elif list(measurement.labels) != list(family._labelnames):
            # 同名指标的 label 不一致时只按第一次出现的 label 导出
            logger.debug(f'{measurement.name} label 不一致: {list(family._labelnames)} != {list(measurement.labels)}')
        family.add_metric(list(measurement.labels.values()), float(measurement.value))


class ZfsCollector(object):
    def __init__(self, source: StatsSource, namespace='node', name='zfs'):
        self.source = source
        self.namespace = namespace
        self.name = name

    @log_stage('zfs_exporter')
    def scrape(self):
        sink = FamilySink()
        start = time.time()
        success = 1
        try:
            self.source.collect(sink)
        except (ZfsStatsError, OSError) as e:  # 已经发出去的指标照常导出
            logger.error(f'collect {self.name} 失败! {e}')
            logger.exception(e)
            success = 0
        duration = time.time() - start
        logger.debug(f'collect {self.name}: {len(sink.families)} families, {duration:.3f}s, success={success}')
        return sink, duration, success

    def collect(self):
        sink, duration, success = self.scrape()
        yield from sink.families.values()

        duration_family = GaugeMetricFamily(
            build_fq_name(self.namespace, 'scrape', 'collector_duration_seconds'),
            'zfs_exporter: Duration of a collector scrape.', labels=['collector'])
        duration_family.add_metric([self.name], duration)
        yield duration_family

        success_family = GaugeMetricFamily(
            build_fq_name(self.namespace, 'scrape', 'collector_success'),
            'zfs_exporter: Whether a collector succeeded.', labels=['collector'])
        success_family.add_metric([self.name], success)
        yield success_family


def create_app(source: StatsSource = None, conf=CONF):
    source = source or select_stats_source(conf)
    collector_registry = CollectorRegistry()
    collector_registry.register(ZfsCollector(source, namespace=conf.get('namespace', 'node')))
    app = FastAPI()
    app.get('/metrics')(make_scrape_endpoint(collector_registry))
    return app


def main(argv=None):
    arguments = docopt(__doc__, argv=argv)
    if arguments['--platform']:
        CONF.zfs.platform = arguments['--platform']
    if arguments['--procfs']:
        CONF.zfs.procfs_path = arguments['--procfs']
    host = arguments['--host'] or CONF.exporter.host
    port = int(arguments['--port'] or CONF.exporter.port)
    app = create_app(conf=CONF)
    print(f'server started at: {port}, python', sys.version)
    uvicorn.run(app, host=host, port=port, access_log=False)


if __name__ == "__main__":
    main()
