import glob
import os
from typing import Dict, Iterator, TextIO

from logm import logger
from .emission import Measurement, pool_measurement, sysctl_measurement
from .errors import MalformedHeader, PathStructureError, SourceUnavailable
from .source import StatsSource
from .utils import KSTAT_DATA_UINT64, PoolRecord, StatRecord, parse_uint64, sysctl_key


HEADER_SENTINEL = ['name', 'type', 'data']
POOL_HEADER_FIRST_COLUMN = 'nread'
POOL_HEADER_MIN_COLUMNS = 12


def parse_procfs_file(stream: TextIO, fmt_ext: str, module: str = 'zfs') -> Iterator[StatRecord]:
    """
    解析 /proc/spl/kstat/zfs/<fmt_ext> 这类 kstat 表格:

        13 1 0x01 96 26112 8415487212 1166880478330577
        name                            type data
        hits                            4    8772612
        misses                          4    604635

    `name type data` 之前的内容全部忽略, 之后每行取 name / type / value 三列,
    只保留 type 为 KSTAT_DATA_UINT64 的行, 其他类型 (char, string, 有符号整数等) 直接跳过.
    """
    parse_line = False
    for line in stream:
        parts = line.split()

        if not parse_line and parts == HEADER_SENTINEL:
            # 从下一行开始解析
            parse_line = True
            continue

        if not parse_line or len(parts) < 3:
            continue

        # TODO: 其他 KSTAT_DATA_* 类型也要导出时, 这里需要按类型分别解析
        if parts[1] == KSTAT_DATA_UINT64:
            key = sysctl_key(module, fmt_ext, parts[0])
            yield StatRecord(key, parse_uint64(parts[2], key))

    if not parse_line:
        raise MalformedHeader(fmt_ext)


def parse_pool_procfs_file(stream: TextIO, zpool_path: str, module: str = 'zfs') -> Iterator[PoolRecord]:
    """
    解析 /proc/spl/kstat/zfs/<pool>/io, 表头是一行 nread nwritten reads ... 的列名, 下一行按位置给出全部的值.
    pool 名取路径的倒数第二段, 文件名取最后一段.
    每解析出一个字段就立刻产出, 同一行后面的字段解析失败时, 前面已经产出的不会撤回.
    """
    zpool_path_elements = zpool_path.split('/')
    if len(zpool_path_elements) < 2:
        raise PathStructureError(zpool_path)
    zpool_name, zpool_file = zpool_path_elements[-2], zpool_path_elements[-1]

    fields = None
    for line in stream:
        parts = line.split()

        if fields is None:
            if len(parts) >= POOL_HEADER_MIN_COLUMNS and parts[0] == POOL_HEADER_FIRST_COLUMN:
                fields = list(parts)
            continue

        if not parts:
            continue

        for i, field in enumerate(fields):
            key = sysctl_key(module, zpool_file, field)
            token = parts[i] if i < len(parts) else None
            yield PoolRecord(zpool_name, key, parse_uint64(token, key))

    if fields is None:
        logger.debug(f'{zpool_path} 中没有找到 {POOL_HEADER_FIRST_COLUMN} 开头的表头')


class ProcfsStatsSource(StatsSource):
    """
    linux 上 zfs 把统计信息放在 /proc/spl/kstat/zfs 下, 每个 subsystem 一个文件, 每个 pool 一个 <pool>/io.
    subsystem 的文件随 zfs 版本陆续增加, 打不开就跳过; pool 的 io 文件既然 glob 到了就必须能读.
    """

    def __init__(self, procfs_path: str, base_path: str, path_map: Dict[str, str],
                 pool_glob: str = '*/io', namespace: str = 'node', module: str = 'zfs'):
        self.procfs_path = procfs_path
        self.base_path = base_path
        self.path_map = dict(path_map)
        self.pool_glob = pool_glob
        self.namespace = namespace
        self.module = module

    @property
    def platform_name(self) -> str:
        return 'linux'

    def proc_file_path(self, *paths):
        return os.path.join(self.procfs_path, self.base_path, *paths)

    def open_proc_file(self, path):
        try:
            return open(path, 'r', encoding='ascii', errors='replace')
        except (FileNotFoundError, PermissionError) as e:
            # 文件不存在的情况:
            # 1. zfs 模块没有加载
            # 2. 当前 zfs 版本还没有这个 feature 的统计
            raise SourceUnavailable(path) from e

    def measurements(self) -> Iterator[Measurement]:
        for subsystem in sorted(self.path_map):
            try:
                yield from self.subsystem_measurements(subsystem)
            except SourceUnavailable as e:
                logger.debug(str(e))
                continue
        yield from self.pool_measurements()

    def subsystem_measurements(self, subsystem) -> Iterator[Measurement]:
        fmt_ext = self.path_map[subsystem]
        with self.open_proc_file(self.proc_file_path(fmt_ext)) as f:
            for record in parse_procfs_file(f, fmt_ext, module=self.module):
                yield sysctl_measurement(self.namespace, subsystem, record)

    def pool_measurements(self) -> Iterator[Measurement]:
        zpool_paths = sorted(glob.glob(self.proc_file_path(self.pool_glob)))
        for zpool_path in zpool_paths:
            # glob 之后 pool 被 export 掉也会打不开, 这里不区分, 一律中止本次采集
            with self.open_proc_file(zpool_path) as f:
                for record in parse_pool_procfs_file(f, zpool_path, module=self.module):
                    yield pool_measurement(self.namespace, record)
