"""配置管理器"""

import os
import yaml
from typing import Dict, Any, List, Optional

from .known_services import infer_check_type, infer_icon
from ..checkers.base import DEFAULT_PROBE_TIMEOUT
from ..models.telemetry import ServiceDescriptor
from ..utils.exceptions import ConfigError, ErrorCode
from ..utils.config_validator import ConfigValidator
from ..utils.log_manager import get_logger

DEFAULT_POLL_INTERVAL = 5


class ConfigManager:
    """配置管理器，负责YAML配置文件的加载、解析和验证"""

    def __init__(self, config_path: str):
        """
        初始化配置管理器

        Args:
            config_path: 配置文件路径
        """
        self.config_path = config_path
        self.config: Dict[str, Any] = {}
        self.last_modified: Optional[float] = None
        self.logger = get_logger('config_manager')

    def load_config(self) -> Dict[str, Any]:
        """
        加载YAML配置文件

        Returns:
            Dict[str, Any]: 配置字典

        Raises:
            ConfigError: 配置加载或验证失败
        """
        self.logger.info(f"开始加载配置文件: {self.config_path}")

        try:
            if not os.path.exists(self.config_path):
                self.logger.error(f"配置文件不存在: {self.config_path}")
                raise ConfigError(f"配置文件不存在: {self.config_path}",
                                  ErrorCode.CONFIG_FILE_NOT_FOUND, config_path=self.config_path)

            with open(self.config_path, 'r', encoding='utf-8') as file:
                config = yaml.safe_load(file)

            if config is None:
                self.logger.error("配置文件为空")
                raise ConfigError("配置文件为空", config_path=self.config_path)

            self.logger.debug("开始验证配置文件内容")
            self._validate_config(config)

            services_count = len(config.get('services') or [])
            self.logger.info(f"配置验证成功，包含 {services_count} 个服务")

            old_config = self.config.copy() if self.config else {}
            self.config = config
            self.last_modified = os.path.getmtime(self.config_path)

            if old_config:
                self._log_config_changes(old_config, config)
            else:
                self.logger.info("首次加载配置文件")

            return self.config

        except ConfigError:
            raise
        except yaml.YAMLError as e:
            self.logger.error(f"YAML格式错误: {e}")
            raise ConfigError(f"YAML格式错误: {e}", ErrorCode.CONFIG_PARSE_ERROR,
                              config_path=self.config_path, cause=e)
        except PermissionError as e:
            self.logger.error(f"没有权限读取配置文件: {self.config_path}")
            raise ConfigError(f"没有权限读取配置文件: {self.config_path}",
                              config_path=self.config_path, cause=e)
        except OSError as e:
            self.logger.error(f"加载配置文件失败: {e}", exc_info=True)
            raise ConfigError(f"加载配置文件失败: {e}", config_path=self.config_path, cause=e)

    def _validate_config(self, config: Dict[str, Any]) -> None:
        """
        验证配置文件内容

        Args:
            config: 配置字典

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(config, dict):
            raise ConfigError("配置文件根节点必须是字典类型")

        if 'global' in config:
            ConfigValidator.validate_global_config(config['global'])

        services = config.get('services')
        if services is not None:
            if not isinstance(services, list):
                raise ConfigError("services配置必须是列表类型")

            names = set()
            for index, service_config in enumerate(services):
                ConfigValidator.validate_service_config(index, service_config)
                name = service_config['name']
                if name in names:
                    raise ConfigError(f"服务名称重复: {name}")
                names.add(name)

        if 'wireguard' in config:
            ConfigValidator.validate_wireguard_config(config['wireguard'])
            interface_name = config['wireguard'].get('interface')
            if interface_name is not None and not isinstance(interface_name, str):
                raise ConfigError("wireguard.interface 必须是字符串")

        if 'docker' in config:
            ConfigValidator.validate_docker_config(config['docker'])

        if 'discovery' in config:
            ConfigValidator.validate_discovery_config(config['discovery'])

    def get_global_config(self) -> Dict[str, Any]:
        """获取全局配置"""
        return self.config.get('global') or {}

    def get_services_config(self) -> List[Dict[str, Any]]:
        """获取服务配置列表"""
        return self.config.get('services') or []

    def get_service_config(self, service_name: str) -> Optional[Dict[str, Any]]:
        """
        获取指定服务的配置

        Args:
            service_name: 服务名称

        Returns:
            Optional[Dict[str, Any]]: 服务配置，如果不存在返回None
        """
        for service_config in self.get_services_config():
            if service_config.get('name') == service_name:
                return service_config
        return None

    def get_service_descriptors(self) -> List[ServiceDescriptor]:
        """
        把服务配置转换为服务描述

        未显式指定的探测类型和图标按端口推断。

        Returns:
            List[ServiceDescriptor]: 服务描述列表，顺序与配置一致
        """
        descriptors = []
        for service_config in self.get_services_config():
            port = service_config.get('port')
            data = dict(service_config)
            data['checkType'] = infer_check_type(
                port, service_config.get('checkType', service_config.get('check_type'))).value
            data['icon'] = infer_icon(port, service_config.get('icon'))
            descriptors.append(ServiceDescriptor.from_dict(data))
        return descriptors

    def get_wireguard_config(self) -> Dict[str, Any]:
        """获取WireGuard配置"""
        return self.config.get('wireguard') or {}

    def get_docker_config(self) -> Dict[str, Any]:
        """获取Docker配置"""
        return self.config.get('docker') or {}

    def get_discovery_config(self) -> Dict[str, Any]:
        """获取服务发现配置"""
        return self.config.get('discovery') or {}

    def get_poll_interval(self) -> int:
        return self.get_global_config().get('poll_interval', DEFAULT_POLL_INTERVAL)

    def get_probe_timeout(self) -> float:
        return self.get_global_config().get('probe_timeout', DEFAULT_PROBE_TIMEOUT)

    def get_host_root(self) -> Optional[str]:
        return self.get_global_config().get('host_root', '/host')

    def is_config_changed(self) -> bool:
        """
        检查配置文件是否已修改

        Returns:
            bool: 配置文件是否已修改
        """
        try:
            if not os.path.exists(self.config_path):
                return False

            current_modified = os.path.getmtime(self.config_path)
            return self.last_modified is None or current_modified > self.last_modified

        except OSError:
            return False

    def reload_config(self) -> Dict[str, Any]:
        """
        重新加载配置文件

        Raises:
            ConfigError: 配置重新加载失败
        """
        self.logger.info("重新加载配置文件")
        return self.load_config()

    def _log_config_changes(self, old_config: Dict[str, Any], new_config: Dict[str, Any]) -> None:
        """
        记录配置变更

        Args:
            old_config: 旧配置
            new_config: 新配置
        """
        old_services = {service['name']: service for service in old_config.get('services') or []}
        new_services = {service['name']: service for service in new_config.get('services') or []}

        added_services = set(new_services) - set(old_services)
        if added_services:
            self.logger.info(f"新增服务: {', '.join(sorted(added_services))}")

        removed_services = set(old_services) - set(new_services)
        if removed_services:
            self.logger.info(f"删除服务: {', '.join(sorted(removed_services))}")

        for service_name in set(old_services) & set(new_services):
            if old_services[service_name] != new_services[service_name]:
                self.logger.info(f"服务配置已修改: {service_name}")

        for section in ('global', 'wireguard', 'docker', 'discovery'):
            if old_config.get(section) != new_config.get(section):
                self.logger.info(f"{section} 配置已修改")
                self.logger.debug(f"旧配置: {old_config.get(section)}, 新配置: {new_config.get(section)}")
