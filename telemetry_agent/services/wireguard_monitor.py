"""WireGuard 监控

执行 wg show 和 pivpn -l 获取对端状态。接口名称在执行任何命令之前
先经过校验，命令以参数列表方式执行。
"""

import asyncio
import time
from pathlib import Path
from typing import Dict, Any, Optional

from ..models.telemetry import VpnStatus
from ..parsers.wireguard import parse_wg_show, parse_client_list, parse_clients_file, correlate_peers
from ..utils.command_runner import run_first_available, run_command, DEFAULT_COMMAND_TIMEOUT
from ..utils.config_validator import validate_interface_name
from ..utils.exceptions import CommandError, InvalidInterfaceError
from ..utils.log_manager import get_logger

DEFAULT_INTERFACE = 'wg0'
DEFAULT_CLIENTS_FILE = '/etc/wireguard/configs/clients.txt'


class WireGuardMonitor:
    """WireGuard 对端状态监控"""

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 timeout: float = DEFAULT_COMMAND_TIMEOUT):
        """
        初始化WireGuard监控

        Args:
            config: wireguard 配置段（enabled、interface、clients_file）
            timeout: 命令超时时间（秒）
        """
        config = config or {}
        self.enabled = bool(config.get('enabled', False))
        self.interface_name = config.get('interface', DEFAULT_INTERFACE)
        self.clients_file = config.get('clients_file', DEFAULT_CLIENTS_FILE)
        self.timeout = timeout
        self.logger = get_logger('wireguard')

    async def get_status(self) -> VpnStatus:
        """
        获取WireGuard状态

        Returns:
            VpnStatus: 未启用时 enabled=False；失败时 error 字段说明原因
        """
        if not self.enabled:
            return VpnStatus(enabled=False)

        try:
            iface = validate_interface_name(self.interface_name)
        except InvalidInterfaceError as e:
            self.logger.error(e.format_error())
            return VpnStatus(enabled=True, error=e.message)

        try:
            raw_status = await run_first_available(
                ['wg', 'show', iface],
                ['sudo', '-n', 'wg', 'show', iface],
                timeout=self.timeout
            )
        except CommandError as e:
            self.logger.warning(f"获取WireGuard状态失败: {e.format_error()}")
            return VpnStatus(enabled=True, error=f"无法获取WireGuard状态: {e.message}")

        status = parse_wg_show(raw_status, iface, now=time.time())
        client_names = await self.load_client_names()
        peers = correlate_peers(status, client_names)

        online = sum(1 for peer in peers if peer.online)
        self.logger.debug(f"WireGuard {iface}: {online}/{len(peers)} 个对端在线")
        return VpnStatus(enabled=True, interface=status.interface, peers=peers)

    async def load_client_names(self) -> Dict[str, str]:
        """
        读取客户端名称映射，pivpn 不可用时退回 clients.txt

        Returns:
            Dict[str, str]: 公钥 -> 客户端名称，全部失败时为空
        """
        try:
            output = await run_command(['pivpn', '-l'], timeout=self.timeout)
            names = parse_client_list(output)
            if names:
                return names
        except CommandError as e:
            self.logger.debug(f"pivpn -l 不可用: {e.format_error()}")

        if not self.clients_file:
            return {}

        try:
            content = await asyncio.to_thread(Path(self.clients_file).read_text, encoding='utf-8')
        except OSError as e:
            self.logger.debug(f"无法读取客户端列表文件 {self.clients_file}: {e}")
            return {}

        return parse_clients_file(content)
