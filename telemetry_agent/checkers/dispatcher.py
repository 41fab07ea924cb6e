"""探测分发器

按服务描述的探测类型选择探测器，每次探测都限定在固定时间预算内完成，
并且从不抛出异常。
"""

import asyncio
from typing import Dict, Any, List, Optional, Iterable

from . import dns_checker, http_checker, interface_checker, redis_checker, tcp_checker  # noqa: F401  注册探测器
from .base import DEFAULT_PROBE_TIMEOUT
from .factory import ServiceCheckerFactory, service_checker_factory
from ..models.telemetry import ServiceDescriptor, HealthResult, ServiceStatus
from ..utils.log_manager import get_logger


class ProbeDispatcher:
    """探测分发器"""

    def __init__(self, timeout: float = DEFAULT_PROBE_TIMEOUT,
                 probe_config: Optional[Dict[str, Any]] = None,
                 factory: Optional[ServiceCheckerFactory] = None):
        """
        初始化探测分发器

        Args:
            timeout: 单次探测的时间预算（秒）
            probe_config: 传给探测器的额外参数（sys_root、probe_domain 等）
            factory: 探测器工厂，默认使用全局工厂
        """
        self.timeout = timeout
        self.probe_config = dict(probe_config or {})
        self.probe_config['timeout'] = timeout
        self.factory = factory or service_checker_factory
        self.logger = get_logger('probe.dispatcher')

    async def probe(self, descriptor: ServiceDescriptor) -> HealthResult:
        """
        探测单个服务

        Args:
            descriptor: 服务描述

        Returns:
            HealthResult: 探测结果，超时为 offline
        """
        try:
            checker = self.factory.create_checker(descriptor, self.probe_config)
            # 外层预算兜底，探测器内部的清理逻辑在取消时执行
            result = await asyncio.wait_for(checker.check(), timeout=self.timeout)
        except asyncio.TimeoutError:
            self.logger.debug(f"服务 {descriptor.name} 探测超时 ({self.timeout}秒)")
            return HealthResult(descriptor, ServiceStatus.OFFLINE,
                                error_message=f"探测超时 ({self.timeout}秒)")
        except Exception as e:
            self.logger.error(f"服务 {descriptor.name} 探测异常: {e}", exc_info=True)
            return HealthResult(descriptor, ServiceStatus.OFFLINE,
                                error_message=f"探测异常: {e}")

        self.logger.debug(
            f"服务 {descriptor.name} ({descriptor.check_type.value}) 探测完成: "
            f"{result.status.value}, 延迟: {result.latency_ms}ms")
        return result

    async def probe_all(self, descriptors: Iterable[ServiceDescriptor]) -> List[HealthResult]:
        """
        并发探测多个服务，跳过未启用的服务

        Args:
            descriptors: 服务描述列表

        Returns:
            List[HealthResult]: 探测结果，顺序与输入一致
        """
        enabled = [descriptor for descriptor in descriptors if descriptor.enabled]
        if not enabled:
            return []

        return list(await asyncio.gather(*(self.probe(descriptor) for descriptor in enabled)))
