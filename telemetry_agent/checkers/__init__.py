"""服务探测器模块"""

from .base import BaseServiceChecker, DEFAULT_PROBE_TIMEOUT
from .dispatcher import ProbeDispatcher
from .dns_checker import DnsServiceChecker
from .factory import ServiceCheckerFactory, service_checker_factory, register_checker
from .http_checker import HttpServiceChecker
from .interface_checker import InterfaceServiceChecker
from .redis_checker import RedisServiceChecker
from .tcp_checker import TcpServiceChecker

__all__ = ['BaseServiceChecker', 'DEFAULT_PROBE_TIMEOUT', 'ProbeDispatcher',
           'ServiceCheckerFactory', 'service_checker_factory', 'register_checker',
           'HttpServiceChecker', 'TcpServiceChecker', 'RedisServiceChecker',
           'DnsServiceChecker', 'InterfaceServiceChecker']
