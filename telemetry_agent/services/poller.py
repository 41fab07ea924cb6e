"""遥测轮询器

按固定间隔驱动汇总器生成快照，只保留最新一份快照。
同时负责增量指标缓存后台清理任务的启动和停止。
"""

import asyncio
import time
from typing import Awaitable, Callable, List, Optional

from .aggregator import TelemetryAggregator
from .metric_cache import DeltaMetricCache
from ..models.telemetry import ServiceDescriptor, TelemetrySnapshot
from ..utils.log_manager import get_logger

DEFAULT_POLL_INTERVAL = 5  # 秒

SnapshotCallback = Callable[[TelemetrySnapshot], Awaitable[None]]
ServicesProvider = Callable[[], List[ServiceDescriptor]]


class TelemetryPoller:
    """遥测轮询器"""

    def __init__(self, aggregator: TelemetryAggregator, cache: DeltaMetricCache,
                 services_provider: ServicesProvider,
                 poll_interval: float = DEFAULT_POLL_INTERVAL):
        """
        初始化遥测轮询器

        Args:
            aggregator: 遥测汇总器
            cache: 增量指标缓存
            services_provider: 每轮调用一次，返回当前的服务描述列表
            poll_interval: 轮询间隔（秒）
        """
        if poll_interval <= 0:
            raise ValueError("轮询间隔必须是正数")

        self.aggregator = aggregator
        self.cache = cache
        self.services_provider = services_provider
        self.poll_interval = poll_interval
        self.is_running = False
        self.latest_snapshot: Optional[TelemetrySnapshot] = None
        self.poll_count = 0
        self._stop_event: Optional[asyncio.Event] = None
        self.logger = get_logger('poller')

        # 回调函数
        self.on_snapshot: Optional[SnapshotCallback] = None

    def set_snapshot_callback(self, callback: SnapshotCallback):
        """
        设置快照回调函数

        Args:
            callback: 每生成一份快照调用一次
        """
        self.on_snapshot = callback

    async def poll_once(self) -> TelemetrySnapshot:
        """
        立即执行一轮采集

        Returns:
            TelemetrySnapshot: 本轮快照
        """
        services = self.services_provider()
        started = time.perf_counter()

        snapshot = await self.aggregator.collect_snapshot(services)
        self.latest_snapshot = snapshot
        self.poll_count += 1

        elapsed = time.perf_counter() - started
        if snapshot.degraded:
            self.logger.warning(f"第 {self.poll_count} 轮采集部分失败 ({elapsed:.3f}s): "
                                f"{', '.join(snapshot.errors)}")
        else:
            self.logger.debug(f"第 {self.poll_count} 轮采集完成 ({elapsed:.3f}s)")

        if self.on_snapshot:
            try:
                await self.on_snapshot(snapshot)
            except Exception as e:
                self.logger.error(f"快照回调执行失败: {e}", exc_info=True)

        return snapshot

    async def start(self):
        """启动轮询，直到 stop() 被调用或任务被取消"""
        if self.is_running:
            self.logger.warning("轮询器已经在运行")
            return

        self.is_running = True
        self._stop_event = asyncio.Event()
        self.cache.start()
        self.logger.info(f"启动遥测轮询，间隔: {self.poll_interval}秒")

        try:
            await self._poll_loop()
        except asyncio.CancelledError:
            self.logger.info("遥测轮询被取消")
        finally:
            await self._shutdown()

    async def stop(self):
        """请求停止轮询"""
        if not self.is_running:
            return

        self.logger.info("正在停止遥测轮询...")
        if self._stop_event is not None:
            self._stop_event.set()

    async def _poll_loop(self):
        """轮询循环"""
        while not self._stop_event.is_set():
            try:
                await self.poll_once()
            except Exception as e:
                self.logger.error(f"轮询循环异常: {e}", exc_info=True)

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass

    async def _shutdown(self):
        self.is_running = False
        await self.cache.stop()
        self.logger.info("遥测轮询已停止")
