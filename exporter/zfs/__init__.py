from .errors import *
from .utils import ZfsSysctl, StatRecord, PoolRecord
from .emission import Measurement, MetricSink, ListSink, build_fq_name
from .source import StatsSource
from .procfs_collector import ProcfsStatsSource, parse_procfs_file, parse_pool_procfs_file
from .kstat_collector import KstatStatsSource, parse_kstat_json
from .selector import select_stats_source
