"""DNS服务探测器"""

import asyncio
import ipaddress
import socket

import dns.asyncresolver
import dns.exception

from .base import BaseServiceChecker
from .factory import register_checker
from ..models.telemetry import CheckType, HealthResult

PROBE_DOMAIN = 'google.com'
DEFAULT_DNS_PORT = 53


@register_checker(CheckType.DNS)
class DnsServiceChecker(BaseServiceChecker):
    """DNS服务探测器

    把目标主机作为唯一的名称服务器，解析固定域名的 A 记录。
    """

    async def _nameserver_address(self) -> str:
        """名称服务器必须是IP地址，主机名先在本地解析"""
        host = self.descriptor.host
        if host == 'localhost':
            return '127.0.0.1'
        try:
            return str(ipaddress.ip_address(host))
        except ValueError:
            pass

        loop = asyncio.get_running_loop()
        infos = await loop.getaddrinfo(host, None, family=socket.AF_INET,
                                       type=socket.SOCK_DGRAM)
        return infos[0][4][0]

    async def check(self) -> HealthResult:
        """
        执行DNS解析探测

        Returns:
            HealthResult: 探测结果
        """
        self.start_timer()
        domain = self.config.get('probe_domain', PROBE_DOMAIN)

        try:
            resolver = dns.asyncresolver.Resolver(configure=False)
            resolver.nameservers = [await self._nameserver_address()]
            resolver.port = self.descriptor.port or DEFAULT_DNS_PORT
            resolver.timeout = self.get_timeout()
            resolver.lifetime = self.get_timeout()
            await resolver.resolve(domain, 'A')
        except asyncio.TimeoutError:
            return self.offline("DNS解析超时")
        except (dns.exception.DNSException, OSError, ValueError) as e:
            self.logger.debug(f"DNS服务 {self.descriptor.host} 解析 {domain} 失败: {e}")
            return self.offline(f"DNS解析失败: {e}")

        return self.online()
