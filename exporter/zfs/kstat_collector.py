import subprocess
from typing import Iterator, List, Optional, Union

import ujson

from logm import logger
from utils import run_cmd
from .emission import Measurement, build_fq_name
from .errors import MissingRequiredField, SourceInvocationError, ValueDecodeError
from .source import StatsSource


DEFAULT_KSTAT_COMMAND = ['kstat', '-j', '/zfs|zone_zfs/:::']
ZONENAME_FIELD = 'zonename'


def _numeric(key, value):
    # json 里的 true / false 在 python 中是 int 的子类, 这里要排除掉
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueDecodeError(key, value)
    return value


def _misc_measurements(namespace, entry) -> Iterator[Measurement]:
    for k, v in entry['data'].items():
        metric_name = f"{entry['name']}_{k}"
        yield Measurement(
            name=build_fq_name(namespace, 'zfs', metric_name),
            documentation=metric_name,
            value=_numeric(k, v),
        )


def _pool_measurements(namespace, entry) -> Iterator[Measurement]:
    for k, v in entry['data'].items():
        yield Measurement(
            name=build_fq_name(namespace, 'zfs_zpool', k),
            documentation=k,
            labels={'zpool': entry['name']},
            value=_numeric(k, v),
        )


def _zone_measurements(namespace, entry) -> Iterator[Measurement]:
    zonename = entry['data'].get(ZONENAME_FIELD)
    if not isinstance(zonename, str):
        raise MissingRequiredField(entry['name'], ZONENAME_FIELD)
    for k, v in entry['data'].items():
        if k == ZONENAME_FIELD:
            continue
        yield Measurement(
            name=build_fq_name(namespace, 'zfs_zone', k),
            documentation=k,
            labels={'zone': zonename},
            value=_numeric(k, v),
        )


CLASS_HANDLERS = {
    'misc': _misc_measurements,
    'disk': _pool_measurements,
    'zone_zfs': _zone_measurements,
}


def parse_kstat_json(output: Union[bytes, str], namespace: str = 'node',
                     command: str = 'kstat') -> Iterator[Measurement]:
    """
    解析 `kstat -j` 的输出, 形如:
    [{"module": "zfs", "name": "arcstats", "class": "misc", "data": {"hits": 42, ...}}, ...]
    按 class 分别处理, 不认识的 class 直接忽略
    """
    try:
        stats = ujson.loads(output)
    except ValueError as e:
        raise SourceInvocationError(command, f'parsing kstat output: {e}') from e
    if not isinstance(stats, list):
        raise SourceInvocationError(command, f'parsing kstat output: expected a json array, got {type(stats).__name__}')

    for stat in stats:
        # data 为 null 时和缺省一样按空处理
        if not isinstance(stat, dict) or not isinstance(stat.get('data') or {}, dict):
            raise SourceInvocationError(command, f'parsing kstat output: malformed entry {stat!r}')
        handler = CLASS_HANDLERS.get(stat.get('class'))
        if handler is None:
            continue
        entry = {'name': stat.get('name', ''), 'data': stat.get('data') or {}}
        yield from handler(namespace, entry)


class KstatStatsSource(StatsSource):
    """ solaris / illumos 上没有 procfs 的 kstat 文件, 通过执行一次 kstat -j 拿到全部数据 """

    def __init__(self, command: Optional[List[str]] = None, timeout: Optional[float] = None,
                 namespace: str = 'node'):
        self.command = list(command or DEFAULT_KSTAT_COMMAND)
        self.timeout = timeout or None
        self.namespace = namespace

    @property
    def platform_name(self) -> str:
        return 'solaris'

    def read_output(self) -> bytes:
        cmd_str = ' '.join(self.command)
        try:
            return run_cmd(self.command, timeout=self.timeout)
        except subprocess.CalledProcessError as e:
            raise SourceInvocationError(cmd_str, f'executing kstat: exit code {e.returncode}') from e
        except subprocess.TimeoutExpired as e:
            raise SourceInvocationError(cmd_str, f'executing kstat: timeout after {e.timeout}s') from e
        except OSError as e:
            raise SourceInvocationError(cmd_str, f'executing kstat: {e}') from e

    def measurements(self) -> Iterator[Measurement]:
        output = self.read_output()
        logger.debug(f'kstat 输出 {len(output)} bytes')
        yield from parse_kstat_json(output, namespace=self.namespace, command=' '.join(self.command))
