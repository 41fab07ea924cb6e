"""配置文件监控器"""

import asyncio
import os
from typing import Callable, Dict, Any, List, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .config_manager import ConfigManager
from ..utils.exceptions import ConfigError
from ..utils.log_manager import get_logger

ChangeCallback = Callable[[Dict[str, Any], Dict[str, Any]], None]


class ConfigFileHandler(FileSystemEventHandler):
    """配置文件变更事件处理器（在 watchdog 线程中运行）"""

    def __init__(self, config_path: str, callback: Callable[[], None]):
        """
        初始化事件处理器

        Args:
            config_path: 配置文件绝对路径
            callback: 配置文件变更时调用
        """
        self.config_path = config_path
        self.callback = callback

    def _matches(self, event) -> bool:
        if event.is_directory:
            return False
        # 编辑器保存时常先写临时文件再重命名
        paths = {os.fsdecode(event.src_path)}
        dest_path = getattr(event, 'dest_path', None)
        if dest_path:
            paths.add(os.fsdecode(dest_path))
        return self.config_path in paths

    def on_modified(self, event):
        if self._matches(event):
            self.callback()

    def on_created(self, event):
        if self._matches(event):
            self.callback()

    def on_moved(self, event):
        if self._matches(event):
            self.callback()


class ConfigWatcher:
    """配置文件监控器，文件变更后在事件循环中重新加载配置"""

    def __init__(self, config_manager: ConfigManager):
        """
        初始化配置监控器

        Args:
            config_manager: 配置管理器实例
        """
        self.config_manager = config_manager
        self.observer: Optional[Observer] = None
        self.change_callbacks: List[ChangeCallback] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._reload_pending = False
        self.logger = get_logger('config_watcher')

    def add_change_callback(self, callback: ChangeCallback):
        """
        添加配置变更回调函数

        Args:
            callback: 回调函数，参数为旧配置和新配置
        """
        self.change_callbacks.append(callback)

    def is_running(self) -> bool:
        return self.observer is not None

    def start_watching(self):
        """
        开始监控配置文件（需要在事件循环中调用）

        Raises:
            ConfigError: 无法启动文件系统监控
        """
        if self.is_running():
            self.logger.warning("配置监控器已经在运行")
            return

        config_path = os.path.abspath(self.config_manager.config_path)
        self._loop = asyncio.get_running_loop()

        try:
            observer = Observer()
            observer.schedule(ConfigFileHandler(config_path, self._on_file_event),
                              os.path.dirname(config_path), recursive=False)
            observer.start()
        except OSError as e:
            self.logger.error(f"启动配置监控失败: {e}")
            raise ConfigError(f"启动配置监控失败: {e}", config_path=config_path, cause=e)

        self.observer = observer
        self.logger.info(f"开始监控配置文件: {config_path}")

    def stop_watching(self):
        """停止监控配置文件"""
        if self.observer is None:
            return

        self.observer.stop()
        self.observer.join(timeout=5)
        self.observer = None
        self._loop = None
        self.logger.info("配置文件监控已停止")

    def _on_file_event(self):
        """watchdog 线程回调，把重新加载交给事件循环"""
        loop = self._loop
        if loop is None or loop.is_closed() or self._reload_pending:
            return
        self._reload_pending = True
        loop.call_soon_threadsafe(self.reload_if_changed)

    def reload_if_changed(self) -> bool:
        """
        配置文件有变化时重新加载并通知回调

        Returns:
            bool: 是否加载了新配置
        """
        self._reload_pending = False
        if not self.config_manager.is_config_changed():
            return False

        old_config = self.config_manager.config.copy()
        try:
            new_config = self.config_manager.reload_config()
        except ConfigError as e:
            self.logger.error(f"配置重新加载失败，继续使用旧配置: {e.format_error()}")
            return False

        self.logger.info("配置文件已重新加载")
        for callback in self.change_callbacks:
            try:
                callback(old_config, new_config)
            except Exception as e:
                self.logger.error(f"配置变更回调执行失败: {e}", exc_info=True)
        return True
