"""HTTP服务探测器"""

import asyncio

import aiohttp

from .base import BaseServiceChecker
from .factory import register_checker
from ..models.telemetry import CheckType, HealthResult


@register_checker(CheckType.HTTP)
class HttpServiceChecker(BaseServiceChecker):
    """HTTP服务探测器

    发送 HEAD 请求，状态码小于500视为在线，否则为 error；
    连接失败或超时视为离线。
    """

    def build_url(self) -> str:
        path = self.descriptor.path or '/'
        if not path.startswith('/'):
            path = '/' + path
        return f"http://{self.descriptor.host}:{self.descriptor.port}{path}"

    async def check(self) -> HealthResult:
        """
        执行HTTP探测

        Returns:
            HealthResult: 探测结果
        """
        url = self.build_url()
        timeout = aiohttp.ClientTimeout(total=self.get_timeout())
        self.start_timer()

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.head(url, allow_redirects=False) as response:
                    status_code = response.status
                    if status_code < 500:
                        result = self.online(status_code=status_code)
                    else:
                        result = self.error(f"HTTP状态码: {status_code}",
                                            status_code=status_code)
        except asyncio.TimeoutError:
            self.logger.debug(f"HTTP探测超时: {url}")
            return self.offline("HTTP请求超时")
        except (aiohttp.ClientError, OSError) as e:
            self.logger.debug(f"HTTP探测连接失败: {url}: {e}")
            return self.offline(f"HTTP连接错误: {e}")

        self.logger.debug(f"HTTP探测完成: {url} -> {status_code}")
        return result
