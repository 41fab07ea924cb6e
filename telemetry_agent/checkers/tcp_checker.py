"""TCP服务探测器"""

import asyncio

from .base import BaseServiceChecker
from .factory import register_checker
from ..models.telemetry import CheckType, HealthResult


@register_checker(CheckType.TCP)
class TcpServiceChecker(BaseServiceChecker):
    """TCP服务探测器，仅建立连接"""

    async def check(self) -> HealthResult:
        """
        执行TCP连接探测

        Returns:
            HealthResult: 探测结果
        """
        host, port = self.descriptor.host, self.descriptor.port
        self.start_timer()
        writer = None

        try:
            _, writer = await asyncio.wait_for(asyncio.open_connection(host, port),
                                               timeout=self.get_timeout())
            result = self.online()
        except asyncio.TimeoutError:
            return self.offline("TCP连接超时")
        except OSError as e:
            return self.offline(f"TCP连接失败: {e}")
        finally:
            if writer is not None:
                writer.close()
                try:
                    await writer.wait_closed()
                except OSError:
                    pass

        self.logger.debug(f"TCP探测成功: {host}:{port}")
        return result
