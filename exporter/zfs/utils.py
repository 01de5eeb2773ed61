import re
from typing import NamedTuple, Union

from .errors import ValueDecodeError


# kstat 数据类型, 参考 zfsonlinux lib/libspl/include/sys/kstat.h
# 以字符串形式保存, 直接和第二列比较, 不需要转换
KSTAT_DATA_CHAR = '0'
KSTAT_DATA_INT32 = '1'
KSTAT_DATA_UINT32 = '2'
KSTAT_DATA_INT64 = '3'
KSTAT_DATA_UINT64 = '4'
KSTAT_DATA_LONG = '5'
KSTAT_DATA_ULONG = '6'
KSTAT_DATA_STRING = '7'

UINT64_MAX = 2 ** 64 - 1
_UINT_RE = re.compile(r'[0-9]+')


class ZfsSysctl(str):
    """ 形如 kstat.zfs.misc.arcstats.hits 的 key """

    def metric_name(self):
        return self.split('.')[-1].replace('-', '_')


class StatRecord(NamedTuple):
    key: ZfsSysctl
    value: Union[int, float]


class PoolRecord(NamedTuple):
    pool: str
    key: ZfsSysctl
    value: int


def sysctl_key(module, fmt_ext, name):
    return ZfsSysctl(f'kstat.{module}.misc.{fmt_ext}.{name}')


def parse_uint64(token, key):
    """ 严格按十进制 uint64 解析, 不接受符号、空白和下划线 """
    if token is None or not _UINT_RE.fullmatch(token):
        raise ValueDecodeError(key, token)
    value = int(token)
    if value > UINT64_MAX:
        raise ValueDecodeError(key, token)
    return value
