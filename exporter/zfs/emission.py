from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Union

from .utils import StatRecord, PoolRecord


@dataclass(frozen=True)
class Measurement:
    name: str
    documentation: str
    labels: Dict[str, str] = field(default_factory=dict)
    value: Union[int, float] = 0


class MetricSink(ABC):
    """ 接收采集结果的一方, 每解析出一条就调用一次 emit, 不做攒批 """

    @abstractmethod
    def emit(self, measurement: Measurement):
        pass


class ListSink(MetricSink):
    def __init__(self):
        self.measurements: List[Measurement] = []

    def emit(self, measurement: Measurement):
        self.measurements.append(measurement)


def build_fq_name(*parts):
    """ 和 prometheus 的 BuildFQName 一致: 忽略空的部分, 其余用 _ 连接 """
    return '_'.join(part for part in parts if part)


def sysctl_measurement(namespace, subsystem, record: StatRecord) -> Measurement:
    return Measurement(
        name=build_fq_name(namespace, subsystem, record.key.metric_name()),
        documentation=str(record.key),
        value=record.value,
    )


def pool_measurement(namespace, record: PoolRecord) -> Measurement:
    return Measurement(
        name=build_fq_name(namespace, 'zfs_zpool', record.key.metric_name()),
        documentation=str(record.key),
        labels={'zpool': record.pool},
        value=record.value,
    )
