"""增量指标缓存

保存每个数据源最近一次累计计数器采样，用于计算 CPU 占用率和网络速率。
后台清理任务定期移除超过保留时间的条目，防止容器或网卡频繁增减时
缓存无限增长。
"""

import asyncio
import threading
import time
from typing import Dict, Optional

from ..models.telemetry import MetricSample
from ..utils.log_manager import get_logger

DEFAULT_RETENTION_MICROS = 120 * 1_000_000  # 2分钟
DEFAULT_SWEEP_INTERVAL = 60.0  # 秒


def now_micros() -> int:
    """当前时间（微秒）"""
    return time.time_ns() // 1000


def compute_rate(previous: Optional[MetricSample], value: float,
                 timestamp_micros: int) -> Optional[float]:
    """
    根据上一次采样计算每秒增量

    Args:
        previous: 上一次采样，首次采样时为None
        value: 当前累计值
        timestamp_micros: 当前采样时间（微秒）

    Returns:
        每秒增量；没有上一次采样、时间未严格递增或计数器回绕时返回None
    """
    if previous is None:
        return None

    delta_time = timestamp_micros - previous.timestamp_micros
    delta_value = value - previous.value
    if delta_time <= 0 or delta_value < 0:
        return None

    return delta_value / (delta_time / 1_000_000)


class DeltaMetricCache:
    """增量指标缓存

    每个 source_id 只保留一条最新采样。record() 与 sweep() 通过锁串行化，
    轮询路径与后台清理可以并发执行。
    """

    def __init__(self, retention_micros: int = DEFAULT_RETENTION_MICROS,
                 sweep_interval: float = DEFAULT_SWEEP_INTERVAL):
        """
        初始化增量指标缓存

        Args:
            retention_micros: 条目保留时间（微秒）
            sweep_interval: 后台清理间隔（秒）
        """
        self.retention_micros = retention_micros
        self.sweep_interval = sweep_interval
        self._samples: Dict[str, MetricSample] = {}
        self._lock = threading.Lock()
        self._sweep_task: Optional[asyncio.Task] = None
        self.logger = get_logger('metric_cache')

    def record(self, source_id: str, value: float,
               timestamp_micros: Optional[int] = None) -> Optional[MetricSample]:
        """
        记录一次采样并返回被覆盖的上一次采样

        Args:
            source_id: 数据源标识
            value: 累计值
            timestamp_micros: 采样时间（微秒），默认取当前时间

        Returns:
            上一次采样，首次记录时返回None
        """
        if timestamp_micros is None:
            timestamp_micros = now_micros()

        sample = MetricSample(source_id=source_id, value=value,
                              timestamp_micros=timestamp_micros)
        with self._lock:
            previous = self._samples.get(source_id)
            self._samples[source_id] = sample
        return previous

    def get(self, source_id: str) -> Optional[MetricSample]:
        """获取数据源的最新采样"""
        with self._lock:
            return self._samples.get(source_id)

    def sweep(self, timestamp_micros: Optional[int] = None) -> int:
        """
        移除超过保留时间的条目

        Args:
            timestamp_micros: 当前时间（微秒），默认取当前时间

        Returns:
            int: 移除的条目数量
        """
        if timestamp_micros is None:
            timestamp_micros = now_micros()

        threshold = timestamp_micros - self.retention_micros
        with self._lock:
            stale = [source_id for source_id, sample in self._samples.items()
                     if sample.timestamp_micros < threshold]
            for source_id in stale:
                del self._samples[source_id]

        if stale:
            self.logger.debug(f"清理过期指标缓存 {len(stale)} 条")
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def __contains__(self, source_id: str) -> bool:
        with self._lock:
            return source_id in self._samples

    @property
    def is_sweeping(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def start(self) -> None:
        """启动后台清理任务（需要在事件循环中调用）"""
        if self.is_sweeping:
            self.logger.warning("指标缓存清理任务已经在运行")
            return

        self._sweep_task = asyncio.create_task(self._sweep_loop())
        self.logger.info(f"启动指标缓存清理任务，间隔: {self.sweep_interval}秒")

    async def stop(self) -> None:
        """停止后台清理任务"""
        if self._sweep_task is None:
            return

        if not self._sweep_task.done():
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
        self._sweep_task = None
        self.logger.info("指标缓存清理任务已停止")

    async def _sweep_loop(self):
        """清理循环"""
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                self.sweep()
            except Exception as e:
                self.logger.error(f"清理指标缓存失败: {e}", exc_info=True)
