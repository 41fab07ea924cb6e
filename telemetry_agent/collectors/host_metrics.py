"""主机指标采集"""

import asyncio
import time
from typing import Dict, Any, List, Optional

import psutil

from ..models.telemetry import HostMetrics
from ..services.metric_cache import DeltaMetricCache, compute_rate, now_micros
from ..utils.log_manager import get_logger

MIN_DISK_SIZE = 100 * 1024 * 1024
SKIPPED_INTERFACE_PREFIXES = ('veth', 'br-')
SKIPPED_INTERFACES = ('lo', 'docker0')


def _round1(value: float) -> float:
    return round(value, 1)


def is_reported_interface(name: str) -> bool:
    """回环、veth、网桥接口不上报"""
    return name not in SKIPPED_INTERFACES and not name.startswith(SKIPPED_INTERFACE_PREFIXES)


class HostMetricsCollector:
    """主机指标采集器

    psutil 调用是阻塞的，在线程中执行。网卡速率由增量指标缓存计算。
    """

    def __init__(self, cache: DeltaMetricCache):
        self.cache = cache
        self.logger = get_logger('host')

    async def collect(self, timestamp_micros: Optional[int] = None) -> HostMetrics:
        """
        采集主机指标

        Args:
            timestamp_micros: 采样时间（微秒），默认取当前时间

        Returns:
            HostMetrics: 主机指标
        """
        if timestamp_micros is None:
            timestamp_micros = now_micros()
        return await asyncio.to_thread(self._collect_sync, timestamp_micros)

    def _collect_sync(self, timestamp_micros: int) -> HostMetrics:
        return HostMetrics(
            cpu=self.collect_cpu(),
            memory=self.collect_memory(),
            disks=self.collect_disks(),
            network=self.collect_network(timestamp_micros),
            load=self.collect_load()
        )

    def collect_cpu(self) -> Dict[str, Any]:
        # interval=None 返回距上次调用以来的占用率，首次调用为0
        cores = psutil.cpu_percent(interval=None, percpu=True)
        usage = sum(cores) / len(cores) if cores else 0.0
        return {
            'usage': _round1(usage),
            'cores': [_round1(core) for core in cores],
            'count': psutil.cpu_count(logical=True) or len(cores)
        }

    def collect_memory(self) -> Dict[str, Any]:
        memory = psutil.virtual_memory()
        used = memory.total - memory.available
        buffcache = getattr(memory, 'buffers', 0) + getattr(memory, 'cached', 0)
        return {
            'total': memory.total,
            'used': used,
            'free': memory.available,
            'buffcache': buffcache,
            'percent': _round1(used / memory.total * 100) if memory.total else 0.0
        }

    def collect_disks(self) -> List[Dict[str, Any]]:
        """已挂载分区，跳过 loop 设备、/boot 分区、小于100MB的分区和重复设备"""
        disks = []
        seen = set()
        for partition in psutil.disk_partitions(all=False):
            device = partition.device
            if 'loop' in device or partition.mountpoint.startswith('/boot') or device in seen:
                continue

            try:
                usage = psutil.disk_usage(partition.mountpoint)
            except OSError as e:
                self.logger.debug(f"无法读取分区 {partition.mountpoint}: {e}")
                continue

            if usage.total <= MIN_DISK_SIZE:
                continue

            seen.add(device)
            disks.append({
                'fs': device,
                'mount': partition.mountpoint,
                'size': usage.total,
                'used': usage.used,
                'available': usage.free,
                'percent': _round1(usage.percent)
            })
        return disks

    def collect_network(self, timestamp_micros: int) -> List[Dict[str, Any]]:
        stats = []
        counters = psutil.net_io_counters(pernic=True)
        for iface, counter in counters.items():
            if not is_reported_interface(iface):
                continue

            stats.append({
                'iface': iface,
                'rxBytes': counter.bytes_recv,
                'txBytes': counter.bytes_sent,
                'rxSec': self._rate(f'net-rx:{iface}', counter.bytes_recv, timestamp_micros),
                'txSec': self._rate(f'net-tx:{iface}', counter.bytes_sent, timestamp_micros)
            })
        return stats

    def _rate(self, source_id: str, value: int, timestamp_micros: int) -> int:
        previous = self.cache.record(source_id, value, timestamp_micros)
        rate = compute_rate(previous, value, timestamp_micros)
        return int(round(rate)) if rate is not None else 0

    def collect_load(self) -> Dict[str, Any]:
        load_avg = psutil.getloadavg()
        return {
            'avgLoad': load_avg[0],
            'loadAvg': [round(value, 2) for value in load_avg],
            'uptime': int(time.time() - psutil.boot_time())
        }
