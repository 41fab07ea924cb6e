"""配置验证工具"""

import re
from typing import Dict, Any

from .exceptions import ConfigError, InvalidInterfaceError

# 网络接口名称：字母、数字、下划线、连字符，最长15个字符
INTERFACE_NAME_PATTERN = re.compile(r'^[a-zA-Z0-9_-]{1,15}$')

VALID_CHECK_TYPES = ['http', 'tcp', 'redis', 'dns', 'interface']
VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def is_valid_interface_name(name: Any) -> bool:
    """判断网络接口名称是否可以安全地传给外部命令"""
    return isinstance(name, str) and INTERFACE_NAME_PATTERN.fullmatch(name) is not None


def validate_interface_name(name: Any) -> str:
    """
    验证网络接口名称

    Args:
        name: 接口名称

    Returns:
        str: 验证通过的接口名称

    Raises:
        InvalidInterfaceError: 名称不合法
    """
    if not is_valid_interface_name(name):
        raise InvalidInterfaceError(str(name))
    return name


def validate_port(port: Any) -> bool:
    """端口必须是1-65535之间的整数（允许数字字符串）"""
    if isinstance(port, bool):
        return False
    try:
        value = int(port)
    except (TypeError, ValueError):
        return False
    return 1 <= value <= 65535


class ConfigValidator:
    """配置验证器"""

    @staticmethod
    def validate_service_config(index: int, config: Dict[str, Any]) -> None:
        """
        验证服务配置

        Args:
            index: 服务在列表中的位置
            config: 服务配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(config, dict):
            raise ConfigError(f"第 {index + 1} 个服务的配置必须是字典类型")

        name = config.get('name')
        if not name or not isinstance(name, str):
            raise ConfigError(f"第 {index + 1} 个服务缺少名称")

        if not validate_port(config.get('port')):
            raise ConfigError(f"服务 '{name}' 的端口必须是1-65535之间的整数")

        for field in ('host', 'path'):
            if field in config and config[field] is not None and not isinstance(config[field], str):
                raise ConfigError(f"服务 '{name}' 的 {field} 必须是字符串")

        if not isinstance(config.get('enabled', True), bool):
            raise ConfigError(f"服务 '{name}' 的 enabled 必须是布尔值")

        check_type = config.get('checkType', config.get('check_type'))
        if check_type is not None and check_type not in VALID_CHECK_TYPES:
            raise ConfigError(
                f"服务 '{name}' 的探测类型 '{check_type}' 不受支持。支持的类型: {VALID_CHECK_TYPES}")

        interface_name = config.get('interfaceName', config.get('interface_name'))
        if interface_name is not None and not is_valid_interface_name(interface_name):
            raise ConfigError(f"服务 '{name}' 的网络接口名称不合法: {interface_name!r}")

    @staticmethod
    def validate_wireguard_config(wireguard_config: Dict[str, Any]) -> None:
        """
        验证WireGuard配置

        Args:
            wireguard_config: WireGuard配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(wireguard_config, dict):
            raise ConfigError("wireguard配置必须是字典类型")

        enabled = wireguard_config.get('enabled', False)
        if not isinstance(enabled, bool):
            raise ConfigError("wireguard.enabled 必须是布尔值")

        clients_file = wireguard_config.get('clients_file')
        if clients_file is not None and not isinstance(clients_file, str):
            raise ConfigError("wireguard.clients_file 必须是字符串")

    @staticmethod
    def validate_global_config(global_config: Dict[str, Any]) -> None:
        """
        验证全局配置

        Args:
            global_config: 全局配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(global_config, dict):
            raise ConfigError("全局配置必须是字典类型")

        poll_interval = global_config.get('poll_interval')
        if poll_interval is not None:
            if isinstance(poll_interval, bool) or not isinstance(poll_interval, int) or poll_interval <= 0:
                raise ConfigError("poll_interval 必须是正整数")

        probe_timeout = global_config.get('probe_timeout')
        if probe_timeout is not None:
            if isinstance(probe_timeout, bool) or not isinstance(probe_timeout, (int, float)) \
                    or probe_timeout <= 0:
                raise ConfigError("probe_timeout 必须是正数")

        log_level = global_config.get('log_level')
        if log_level is not None and log_level not in VALID_LOG_LEVELS:
            raise ConfigError(f"log_level 必须是以下值之一: {VALID_LOG_LEVELS}")

    @staticmethod
    def validate_docker_config(docker_config: Dict[str, Any]) -> None:
        """
        验证Docker配置

        Args:
            docker_config: Docker配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(docker_config, dict):
            raise ConfigError("docker配置必须是字典类型")

        if not isinstance(docker_config.get('enabled', True), bool):
            raise ConfigError("docker.enabled 必须是布尔值")

        socket_path = docker_config.get('socket')
        if socket_path is not None and (not isinstance(socket_path, str) or not socket_path):
            raise ConfigError("docker.socket 必须是非空字符串")

    @staticmethod
    def validate_discovery_config(discovery_config: Dict[str, Any]) -> None:
        """验证服务发现配置"""
        if not isinstance(discovery_config, dict):
            raise ConfigError("discovery配置必须是字典类型")

        if not isinstance(discovery_config.get('enabled', False), bool):
            raise ConfigError("discovery.enabled 必须是布尔值")
