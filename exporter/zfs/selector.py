import sys

from logm import logger
from .kstat_collector import KstatStatsSource
from .procfs_collector import ProcfsStatsSource
from .source import StatsSource


def detect_platform(sys_platform=None):
    sys_platform = sys_platform or sys.platform
    if sys_platform.startswith('linux'):
        return 'linux'
    if sys_platform.startswith('sunos'):
        return 'solaris'
    raise ValueError(f'zfs statistics are not supported on platform {sys_platform!r}')


def select_stats_source(conf, sys_platform=None) -> StatsSource:
    """
    启动时根据配置 (zfs.platform) 或当前系统选择数据来源, auto 表示按 sys.platform 判断
    """
    platform = conf.zfs.get('platform', 'auto')
    if platform == 'auto':
        platform = detect_platform(sys_platform)
    namespace = conf.get('namespace', 'node')
    if platform == 'linux':
        source = ProcfsStatsSource(
            procfs_path=conf.zfs.procfs_path,
            base_path=conf.zfs.procfs_base,
            path_map=conf.zfs.path_map,
            pool_glob=conf.zfs.zpool_io_glob,
            namespace=namespace,
        )
    elif platform == 'solaris':
        source = KstatStatsSource(
            command=conf.zfs.kstat_command,
            timeout=conf.zfs.get('kstat_timeout') or None,
            namespace=namespace,
        )
    else:
        raise ValueError(f'unknown zfs platform {platform!r}, expected auto / linux / solaris')
    logger.info(f'zfs 统计来源: {source.platform_name} ({type(source).__name__})')
    return source
