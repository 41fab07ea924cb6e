"""服务探测器基类"""

import time
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional

from ..models.telemetry import ServiceDescriptor, HealthResult, ServiceStatus
from ..utils.log_manager import get_logger

DEFAULT_PROBE_TIMEOUT = 3.0  # 秒


class BaseServiceChecker(ABC):
    """服务探测器抽象基类

    子类实现 check()，不抛出异常，所有失败都映射为 offline 或 error 结果。
    """

    check_type: str = 'base'

    def __init__(self, descriptor: ServiceDescriptor, config: Optional[Dict[str, Any]] = None):
        """
        初始化服务探测器

        Args:
            descriptor: 服务描述
            config: 探测参数（timeout、sys_root 等）
        """
        self.descriptor = descriptor
        self.config = config or {}
        self.logger = get_logger(f'probe.{self.check_type}')
        self._started_at: Optional[float] = None

    @abstractmethod
    async def check(self) -> HealthResult:
        """
        执行一次探测并返回结果

        Returns:
            HealthResult: 探测结果
        """
        pass

    def get_timeout(self) -> float:
        """
        获取超时时间配置

        Returns:
            float: 超时时间（秒）
        """
        return float(self.config.get('timeout', DEFAULT_PROBE_TIMEOUT))

    def start_timer(self) -> None:
        self._started_at = time.perf_counter()

    def elapsed_ms(self) -> int:
        """从 start_timer() 起经过的毫秒数"""
        if self._started_at is None:
            return 0
        return int(round((time.perf_counter() - self._started_at) * 1000))

    def online(self, status_code: Optional[int] = None) -> HealthResult:
        return HealthResult(self.descriptor, ServiceStatus.ONLINE,
                            latency_ms=self.elapsed_ms(), status_code=status_code)

    def offline(self, error_message: Optional[str] = None) -> HealthResult:
        return HealthResult(self.descriptor, ServiceStatus.OFFLINE,
                            error_message=error_message)

    def error(self, error_message: Optional[str] = None,
              status_code: Optional[int] = None) -> HealthResult:
        return HealthResult(self.descriptor, ServiceStatus.ERROR,
                            status_code=status_code, error_message=error_message)
