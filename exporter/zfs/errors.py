"""
zfs 统计采集过程中的异常.
除了 subsystem 循环里的 SourceUnavailable 会被跳过, 其他异常都会中止本次采集并原样抛给调用方.
"""


class ZfsStatsError(Exception):
    pass


class SourceUnavailable(ZfsStatsError):
    def __init__(self, path):
        self.path = path
        super().__init__(f'cannot open {path!r} for reading: ZFS / ZFS statistics are not available')


class MalformedHeader(ZfsStatsError):
    def __init__(self, fmt_ext):
        self.fmt_ext = fmt_ext
        super().__init__(f'did not parse a single {fmt_ext!r} metric: header not found')


class ValueDecodeError(ZfsStatsError):
    def __init__(self, key, value):
        self.key = key
        self.value = value
        super().__init__(f'could not parse expected numeric value for {key!r}: {value!r}')


class MissingRequiredField(ZfsStatsError):
    def __init__(self, entry, field):
        self.entry = entry
        self.field = field
        super().__init__(f'no {field} in stat {entry!r}')


class PathStructureError(ZfsStatsError):
    def __init__(self, path):
        self.path = path
        super().__init__(f'zpool path {path!r} did not return at least two elements')


class SourceInvocationError(ZfsStatsError):
    def __init__(self, command, reason):
        self.command = command
        self.reason = reason
        super().__init__(f'{command}: {reason}')
