"""遥测汇总器

每轮轮询并发执行所有数据源：服务探测、容器资源、WireGuard、主机指标和服务发现。
任何一个数据源失败只影响快照中对应的部分，快照本身总能返回。
"""

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Dict, Iterable, List, Optional

from .metric_cache import DeltaMetricCache
from .service_discovery import ServiceDiscovery
from .wireguard_monitor import WireGuardMonitor
from ..checkers.dispatcher import ProbeDispatcher
from ..collectors.container_stats import ContainerStatsCollector, merge_container_records
from ..collectors.docker_client import DockerClient
from ..collectors.host_metrics import HostMetricsCollector
from ..models.telemetry import (
    ContainerRecord, DiscoveredService, HostMetrics,
    ServiceDescriptor, TelemetrySnapshot, VpnStatus
)
from ..utils.exceptions import CollectorError, TelemetryError
from ..utils.log_manager import get_logger


class TelemetryAggregator:
    """遥测汇总器"""

    def __init__(self, dispatcher: ProbeDispatcher,
                 host_collector: Optional[HostMetricsCollector] = None,
                 docker_client: Optional[DockerClient] = None,
                 container_collector: Optional[ContainerStatsCollector] = None,
                 wireguard_monitor: Optional[WireGuardMonitor] = None,
                 discovery: Optional[ServiceDiscovery] = None):
        """
        初始化遥测汇总器

        未提供的数据源不参与汇总，对应字段保持空值。

        Args:
            dispatcher: 探测分发器
            host_collector: 主机指标采集器
            docker_client: Docker客户端（提供容器清单）
            container_collector: 容器资源占用采集器
            wireguard_monitor: WireGuard监控
            discovery: 服务发现器
        """
        self.dispatcher = dispatcher
        self.host_collector = host_collector
        self.docker_client = docker_client
        self.container_collector = container_collector
        self.wireguard_monitor = wireguard_monitor
        self.discovery = discovery
        self.logger = get_logger('aggregator')

    @classmethod
    def from_config(cls, config_manager, cache: DeltaMetricCache) -> 'TelemetryAggregator':
        """
        根据配置创建汇总器

        Args:
            config_manager: 已加载配置的 ConfigManager
            cache: 增量指标缓存

        Returns:
            TelemetryAggregator: 汇总器
        """
        host_root = config_manager.get_host_root()
        probe_config = {}
        if host_root:
            probe_config['host_root'] = host_root

        dispatcher = ProbeDispatcher(timeout=config_manager.get_probe_timeout(),
                                     probe_config=probe_config)

        docker_client = None
        container_collector = None
        docker_config = config_manager.get_docker_config()
        if docker_config.get('enabled', True):
            docker_client = DockerClient(docker_config.get('socket', '/var/run/docker.sock'))
            container_collector = ContainerStatsCollector(cache, docker_client, host_root=host_root)

        discovery = None
        if config_manager.get_discovery_config().get('enabled', False):
            discovery = ServiceDiscovery()

        return cls(
            dispatcher=dispatcher,
            host_collector=HostMetricsCollector(cache),
            docker_client=docker_client,
            container_collector=container_collector,
            wireguard_monitor=WireGuardMonitor(config_manager.get_wireguard_config()),
            discovery=discovery
        )

    async def collect_snapshot(self, services: Iterable[ServiceDescriptor]) -> TelemetrySnapshot:
        """
        执行一轮采集并汇总为快照

        Args:
            services: 服务描述列表（未启用的服务会被跳过）

        Returns:
            TelemetrySnapshot: 快照，errors 记录失败的数据源
        """
        errors: Dict[str, str] = {}

        host, results, containers, vpn, discovered = await asyncio.gather(
            self._guard('host', self._collect_host(), HostMetrics(), errors),
            self._guard('services', self.dispatcher.probe_all(services), [], errors),
            self._guard('containers', self._collect_containers(errors), [], errors),
            self._guard('vpn', self._collect_vpn(), VpnStatus(enabled=False), errors),
            self._guard('discovery', self._collect_discovery(), [], errors)
        )

        if vpn.error and 'vpn' not in errors:
            errors['vpn'] = vpn.error

        snapshot = TelemetrySnapshot(
            timestamp=datetime.now(),
            host=host,
            services=results,
            containers=containers,
            vpn=vpn,
            discovered=discovered,
            errors=errors
        )

        online = sum(1 for result in results if result.is_online)
        self.logger.debug(f"采集完成: 服务 {online}/{len(results)} 在线, "
                          f"容器 {len(containers)} 个, 异常数据源: {list(errors) or '无'}")
        return snapshot

    async def _guard(self, source: str, awaitable: Awaitable[Any], default: Any,
                     errors: Dict[str, str]) -> Any:
        """执行单个数据源，失败时返回空值并记录原因"""
        try:
            return await awaitable
        except TelemetryError as e:
            self.logger.warning(f"数据源 {source} 采集失败: {e.format_error()}")
            errors[source] = e.message
        except Exception as e:
            self.logger.error(f"数据源 {source} 采集异常: {e}", exc_info=True)
            errors[source] = str(e) or type(e).__name__
        return default

    async def _collect_host(self) -> HostMetrics:
        if self.host_collector is None:
            return HostMetrics()
        return await self.host_collector.collect()

    async def _collect_containers(self, errors: Dict[str, str]) -> List[ContainerRecord]:
        if self.docker_client is None:
            return []

        inventory = await self.docker_client.list_containers()
        stats = {}
        if self.container_collector is not None:
            try:
                stats = await self.container_collector.collect(inventory)
            except CollectorError as e:
                # 资源占用不可用时仍然返回容器清单
                self.logger.warning(f"容器资源占用采集失败: {e.format_error()}")
                errors['containers'] = e.message
        return merge_container_records(inventory, stats)

    async def _collect_vpn(self) -> VpnStatus:
        if self.wireguard_monitor is None:
            return VpnStatus(enabled=False)
        return await self.wireguard_monitor.get_status()

    async def _collect_discovery(self) -> List[DiscoveredService]:
        if self.discovery is None:
            return []
        return await self.discovery.discover()

