from abc import ABC, abstractmethod
from contextlib import closing
from typing import Iterator

from .emission import Measurement, MetricSink


class StatsSource(ABC):
    """
    一种 zfs 统计数据的来源, linux 上读 procfs 的 kstat 文件, solaris / illumos 上执行 kstat 命令.
    一次 collect 就是一次完整的 读取 - 解析 - 发送, 不在两次之间保留任何状态.
    """

    @property
    @abstractmethod
    def platform_name(self) -> str:
        pass

    @abstractmethod
    def measurements(self) -> Iterator[Measurement]:
        """ 边解析边产出, 出错时已经产出的部分不会撤回 """
        pass

    def collect(self, sink: MetricSink):
        # sink 抛异常时也要关闭生成器, 释放还打开着的文件
        with closing(self.measurements()) as measurements:
            for measurement in measurements:
                sink.emit(measurement)
