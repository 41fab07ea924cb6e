"""服务发现

扫描本机监听端口，给出可以加入监控列表的候选服务。
"""

from typing import List

from ..models.telemetry import DiscoveredService
from ..parsers.sockets import discover
from ..utils.command_runner import run_first_available, DEFAULT_COMMAND_TIMEOUT
from ..utils.exceptions import CommandError
from ..utils.log_manager import get_logger

TCP_SOCKET_COMMANDS = (['ss', '-tlnp'], ['netstat', '-tlnp'])
UDP_SOCKET_COMMANDS = (['ss', '-ulnp'], ['netstat', '-ulnp'])


class ServiceDiscovery:
    """服务发现器"""

    def __init__(self, timeout: float = DEFAULT_COMMAND_TIMEOUT):
        self.timeout = timeout
        self.logger = get_logger('discovery')

    async def discover(self) -> List[DiscoveredService]:
        """
        扫描监听端口并识别服务

        Returns:
            List[DiscoveredService]: 候选服务列表，扫描命令失败时为空列表
        """
        try:
            tcp_output = await run_first_available(*TCP_SOCKET_COMMANDS, timeout=self.timeout)
        except CommandError as e:
            self.logger.warning(f"服务发现失败: {e.format_error()}")
            return []

        # UDP 扫描是可选的
        try:
            udp_output = await run_first_available(*UDP_SOCKET_COMMANDS, timeout=self.timeout)
        except CommandError as e:
            self.logger.debug(f"UDP端口扫描失败: {e.format_error()}")
            udp_output = ''

        services = discover(tcp_output, udp_output)
        self.logger.debug(f"发现 {len(services)} 个候选服务")
        return services
