"""容器资源占用采集

不依赖 docker stats 和 cgroup 内存控制器：
- 内存：容器主进程 /proc/<pid>/status 中的 VmRSS
- CPU：cgroup v2 的 cpu.stat 中累计的 usage_usec，经增量指标缓存换算为占用率
"""

import asyncio
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import psutil

from .docker_client import DockerClient
from ..models.telemetry import ContainerInfo, ContainerStats, ContainerRecord
from ..services.metric_cache import DeltaMetricCache, compute_rate, now_micros
from ..utils.exceptions import CollectorError, ErrorCode, TelemetryError
from ..utils.host_paths import DEFAULT_HOST_ROOT, resolve_host_path
from ..utils.log_manager import get_logger

_VMRSS = re.compile(r'VmRSS:\s+(\d+)')
_MEM_TOTAL = re.compile(r'MemTotal:\s+(\d+)')
_USAGE_USEC = re.compile(r'usage_usec\s+(\d+)')

CACHE_KEY_PREFIX = 'container-cpu:'


def read_mem_total_kb(meminfo_path: Path) -> int:
    """读取 MemTotal（KB）"""
    match = _MEM_TOTAL.search(meminfo_path.read_text(encoding='utf-8'))
    if not match:
        raise ValueError(f"{meminfo_path} 中没有 MemTotal")
    return int(match.group(1))


def read_vmrss_kb(status_path: Path) -> int:
    """读取进程常驻内存（KB），进程已退出或无权限时为0"""
    try:
        match = _VMRSS.search(status_path.read_text(encoding='utf-8'))
    except OSError:
        return 0
    return int(match.group(1)) if match else 0


def read_cpu_usage_usec(cpu_stat_path: Path) -> Optional[int]:
    """读取 cgroup 累计CPU时间（微秒），文件不可读时返回None"""
    try:
        match = _USAGE_USEC.search(cpu_stat_path.read_text(encoding='utf-8'))
    except OSError:
        return None
    return int(match.group(1)) if match else None


class ContainerStatsCollector:
    """容器资源占用采集器"""

    def __init__(self, cache: DeltaMetricCache,
                 docker_client: Optional[DockerClient] = None,
                 host_root: Optional[str] = DEFAULT_HOST_ROOT,
                 proc_root: Optional[str] = None,
                 cgroup_root: Optional[str] = None,
                 cpu_count: Optional[int] = None):
        """
        初始化容器资源占用采集器

        Args:
            cache: 增量指标缓存
            docker_client: Docker客户端，用于解析容器主进程PID
            host_root: 主机根目录挂载点
            proc_root: /proc 路径，默认按 host_root 解析
            cgroup_root: cgroup v2 根路径，默认按 host_root 解析
            cpu_count: CPU核心数，默认取逻辑核心数
        """
        self.cache = cache
        self.docker_client = docker_client or DockerClient()
        self.proc_root = Path(proc_root) if proc_root else resolve_host_path('/proc', host_root)
        self.cgroup_root = Path(cgroup_root) if cgroup_root else resolve_host_path('/sys/fs/cgroup', host_root)
        self.cpu_count = cpu_count or psutil.cpu_count(logical=True) or 1
        self.logger = get_logger('containers')

    def cpu_stat_path(self, container_id: str) -> Path:
        return self.cgroup_root / 'system.slice' / f'docker-{container_id}.scope' / 'cpu.stat'

    def cpu_percent(self, container_id: str, usage_usec: int,
                    timestamp_micros: int) -> float:
        """
        根据累计CPU时间计算占用率

        100 表示全部核心满载，首次采样为 0.0。

        Args:
            container_id: 容器ID
            usage_usec: 累计CPU时间（微秒）
            timestamp_micros: 采样时间（微秒）

        Returns:
            float: CPU占用率，保留一位小数
        """
        previous = self.cache.record(CACHE_KEY_PREFIX + container_id, usage_usec, timestamp_micros)
        rate = compute_rate(previous, usage_usec, timestamp_micros)
        if rate is None:
            return 0.0
        # rate 为每秒消耗的CPU微秒数
        return round(rate / 1_000_000 * 100 / self.cpu_count, 1)

    async def collect(self, inventory: Iterable[ContainerInfo],
                      timestamp_micros: Optional[int] = None) -> Dict[str, ContainerStats]:
        """
        采集容器资源占用

        Args:
            inventory: 容器清单
            timestamp_micros: 采样时间（微秒），默认取当前时间

        Returns:
            Dict[str, ContainerStats]: 完整容器ID -> 资源占用；
            cgroup 文件不可读或无法获取详情的容器不在结果中

        Raises:
            CollectorError: 无法读取主机内存总量
        """
        containers = list(inventory)
        if not containers:
            return {}

        if timestamp_micros is None:
            timestamp_micros = now_micros()

        meminfo_path = self.proc_root / 'meminfo'
        try:
            mem_total_kb = await asyncio.to_thread(read_mem_total_kb, meminfo_path)
        except (OSError, ValueError) as e:
            raise CollectorError(f"无法读取主机内存信息: {meminfo_path}",
                                 ErrorCode.SOURCE_UNREADABLE, source='containers', cause=e)

        results = await asyncio.gather(*(
            self._collect_one(container, mem_total_kb, timestamp_micros)
            for container in containers
        ))

        stats = {container.id: result
                 for container, result in zip(containers, results)
                 if result is not None}
        self.logger.debug(f"采集到 {len(stats)}/{len(containers)} 个容器的资源占用")
        return stats

    async def _collect_one(self, container: ContainerInfo, mem_total_kb: int,
                           timestamp_micros: int) -> Optional[ContainerStats]:
        try:
            pid = await self.docker_client.get_container_pid(container.id)
        except TelemetryError as e:
            self.logger.debug(f"无法获取容器 {container.name} 的详情: {e.format_error()}")
            return None

        mem_kb = 0
        if pid:
            mem_kb = await asyncio.to_thread(read_vmrss_kb, self.proc_root / str(pid) / 'status')

        usage_usec = await asyncio.to_thread(read_cpu_usage_usec, self.cpu_stat_path(container.id))
        if usage_usec is None:
            self.logger.debug(f"容器 {container.name} 的 cpu.stat 不可读，跳过")
            return None

        return ContainerStats(
            cpu_percent=self.cpu_percent(container.id, usage_usec, timestamp_micros),
            mem_percent=round(mem_kb / mem_total_kb * 100, 1) if mem_total_kb else 0.0,
            mem_usage_bytes=mem_kb * 1024,
            mem_limit_bytes=mem_total_kb * 1024
        )


def merge_container_records(inventory: Iterable[ContainerInfo],
                            stats: Dict[str, ContainerStats]) -> List[ContainerRecord]:
    """
    按完整容器ID合并容器清单和资源占用

    没有资源占用数据的容器各项指标为0。

    Args:
        inventory: 容器清单
        stats: 完整容器ID -> 资源占用

    Returns:
        List[ContainerRecord]: 合并结果，顺序与清单一致
    """
    records = []
    for container in inventory:
        container_stats = stats.get(container.id) or ContainerStats()
        records.append(ContainerRecord(
            id=container.id,
            name=container.name,
            image=container.image,
            state=container.state,
            cpu_percent=container_stats.cpu_percent,
            mem_percent=container_stats.mem_percent,
            mem_usage_bytes=container_stats.mem_usage_bytes,
            mem_limit_bytes=container_stats.mem_limit_bytes
        ))
    return records
