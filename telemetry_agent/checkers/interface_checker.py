"""网络接口探测器（用于WireGuard、OpenVPN等隧道）"""

from pathlib import Path

from .base import BaseServiceChecker
from .factory import register_checker
from ..models.telemetry import CheckType, HealthResult
from ..utils.config_validator import is_valid_interface_name
from ..utils.host_paths import resolve_host_path

DEFAULT_INTERFACE = 'wg0'


@register_checker(CheckType.INTERFACE)
class InterfaceServiceChecker(BaseServiceChecker):
    """网络接口探测器

    只检查接口是否存在于 /sys/class/net，不关心流量。
    """

    def interface_name(self) -> str:
        descriptor = self.descriptor
        if descriptor.interface_name:
            return descriptor.interface_name
        path = (descriptor.path or '').strip('/')
        return path or DEFAULT_INTERFACE

    def sys_root(self) -> Path:
        """显式配置的 sys_root 优先，否则按 host_root 解析 /sys"""
        if self.config.get('sys_root'):
            return Path(self.config['sys_root'])
        return resolve_host_path('/sys', self.config.get('host_root'))

    async def check(self) -> HealthResult:
        """
        检查网络接口是否存在

        Returns:
            HealthResult: 探测结果
        """
        self.start_timer()
        iface = self.interface_name()

        if not is_valid_interface_name(iface):
            return self.offline(f"网络接口名称不合法: {iface!r}")

        sys_root = self.sys_root()
        if (sys_root / 'class' / 'net' / iface).exists():
            return self.online()

        return self.offline(f"网络接口不存在: {iface}")
