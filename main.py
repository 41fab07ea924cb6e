#!/usr/bin/env python3
"""
家庭服务器遥测代理主程序入口

加载配置、组装采集组件并按固定间隔生成遥测快照，
处理信号实现优雅关闭。
"""

import argparse
import asyncio
import json
import locale
import logging
import os
import signal
import sys
from typing import Optional, Dict, Any, List

from telemetry_agent.models.telemetry import ServiceDescriptor, TelemetrySnapshot
from telemetry_agent.services.aggregator import TelemetryAggregator
from telemetry_agent.services.config_manager import ConfigManager
from telemetry_agent.services.config_watcher import ConfigWatcher
from telemetry_agent.services.metric_cache import DeltaMetricCache
from telemetry_agent.services.poller import TelemetryPoller
from telemetry_agent.utils.exceptions import TelemetryError, ConfigError
from telemetry_agent.utils.log_manager import log_manager, get_logger

SOURCE_SECTIONS = ('global', 'wireguard', 'docker', 'discovery')

# 版本信息
__version__ = "1.0.0"


class TelemetryAgentApp:
    """遥测代理主应用程序类"""

    def __init__(self, config_path: str, log_overrides: Optional[Dict[str, Any]] = None):
        """初始化应用程序

        Args:
            config_path: 配置文件路径
            log_overrides: 命令行指定的日志配置，覆盖配置文件
        """
        self.config_path = config_path
        self.log_overrides = log_overrides or {}
        self.logger: Optional[logging.Logger] = None
        self.is_running = False
        self.shutdown_event = asyncio.Event()

        # 核心组件
        self.config_manager: Optional[ConfigManager] = None
        self.config_watcher: Optional[ConfigWatcher] = None
        self.cache: Optional[DeltaMetricCache] = None
        self.aggregator: Optional[TelemetryAggregator] = None
        self.poller: Optional[TelemetryPoller] = None

        self.poller_task: Optional[asyncio.Task] = None

    def initialize(self):
        """初始化应用程序组件

        Raises:
            ConfigError: 配置加载或验证失败
        """
        self.config_manager = ConfigManager(self.config_path)
        self.config_manager.load_config()
        self.config_watcher = ConfigWatcher(self.config_manager)
        self.config_watcher.add_change_callback(self._on_config_changed)

        self._configure_logging(self.config_manager.get_global_config())
        self.logger = get_logger('main')
        self.logger.info("开始初始化遥测代理")

        self.cache = DeltaMetricCache()
        self.aggregator = TelemetryAggregator.from_config(self.config_manager, self.cache)
        self.poller = TelemetryPoller(
            self.aggregator,
            self.cache,
            services_provider=self._current_services,
            poll_interval=self.config_manager.get_poll_interval()
        )
        self.poller.set_snapshot_callback(self._on_snapshot)

        self.logger.info(f"应用程序组件初始化完成，监控 {len(self.config_manager.get_services_config())} 个服务")

    def _configure_logging(self, global_config: Dict[str, Any]):
        """配置日志系统

        Args:
            global_config: 全局配置
        """
        log_config = {
            'log_level': global_config.get('log_level', 'INFO'),
            'enable_console': True
        }

        if global_config.get('log_file'):
            log_config['log_file'] = global_config['log_file']
            log_config['max_file_size'] = global_config.get('max_log_size', 10 * 1024 * 1024)
            log_config['backup_count'] = global_config.get('log_backup_count', 5)

        log_config.update(self.log_overrides)
        log_manager.configure(log_config)

    def _current_services(self) -> List[ServiceDescriptor]:
        """返回当前服务列表，配置文件变更时先重新加载"""
        self.config_watcher.reload_if_changed()
        return self.config_manager.get_service_descriptors()

    def _on_config_changed(self, old_config: Dict[str, Any], new_config: Dict[str, Any]):
        """配置变更回调，新配置在下一轮采集生效"""
        global_config = new_config.get('global') or {}
        if global_config != (old_config.get('global') or {}):
            self._configure_logging(global_config)
        self.poller.poll_interval = self.config_manager.get_poll_interval()

        # 超时、host_root 和各数据源的开关都在构造汇总器时读取
        if any(old_config.get(section) != new_config.get(section)
               for section in SOURCE_SECTIONS):
            self.aggregator = TelemetryAggregator.from_config(self.config_manager, self.cache)
            self.poller.aggregator = self.aggregator
            self.logger.info("数据源配置已更新，汇总器已重建")

    async def _on_snapshot(self, snapshot: TelemetrySnapshot):
        """快照回调"""
        offline = [result.descriptor.name for result in snapshot.services if not result.is_online]
        if offline:
            self.logger.info(f"离线服务: {', '.join(offline)}")

    async def start(self):
        """启动应用程序"""
        if self.is_running:
            self.logger.warning("应用程序已经在运行")
            return

        try:
            self.is_running = True
            self.logger.info("启动遥测代理")

            try:
                self.config_watcher.start_watching()
            except ConfigError as e:
                self.logger.warning(f"配置文件监控不可用，改为每轮检查修改时间: {e.format_error()}")

            self.poller_task = asyncio.create_task(self.poller.start())

            # 等待关闭信号
            await self.shutdown_event.wait()

        except Exception as e:
            self.logger.error(f"应用程序运行异常: {e}", exc_info=True)
            raise
        finally:
            await self.stop()

    async def stop(self):
        """停止应用程序"""
        if not self.is_running:
            return

        self.logger.info("正在停止遥测代理...")
        self.is_running = False

        if self.config_watcher:
            self.config_watcher.stop_watching()

        if self.poller:
            await self.poller.stop()

        if self.poller_task and not self.poller_task.done():
            try:
                await asyncio.wait_for(self.poller_task, timeout=10)
            except asyncio.TimeoutError:
                self.logger.warning("轮询任务未能按时结束，强制取消")
                self.poller_task.cancel()
                await asyncio.gather(self.poller_task, return_exceptions=True)

        self.logger.info("遥测代理已停止")
        log_manager.cleanup()

    def shutdown(self):
        """触发应用程序关闭"""
        if self.logger:
            self.logger.info("收到关闭信号")
        self.shutdown_event.set()

    def get_status(self) -> Dict[str, Any]:
        """获取应用程序状态

        Returns:
            应用程序状态信息
        """
        status = {
            'is_running': self.is_running,
            'config_path': self.config_path
        }

        if self.poller:
            status['poll_count'] = self.poller.poll_count
            status['poll_interval'] = self.poller.poll_interval
            if self.poller.latest_snapshot is not None:
                status['latest_snapshot'] = self.poller.latest_snapshot.to_dict()

        if self.cache:
            status['cached_samples'] = len(self.cache)

        return status


# 全局应用程序实例
app: Optional[TelemetryAgentApp] = None


def signal_handler(signum, frame):
    """信号处理器"""
    signal_name = signal.Signals(signum).name
    print(f"\n收到信号 {signal_name} ({signum})")

    if app:
        app.shutdown()
    else:
        print("应用程序未初始化，直接退出")
        sys.exit(0)


def create_argument_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog='telemetry-agent',
        description='家庭服务器遥测代理 - 采集服务健康状态、容器资源占用和VPN对端状态',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例用法:
  %(prog)s config.yaml                    # 使用指定配置文件启动
  %(prog)s --validate config.yaml        # 验证配置文件格式
  %(prog)s --once config.yaml            # 采集一次并以JSON输出快照
  %(prog)s --version                      # 显示版本信息

支持的探测类型:
  - http       HEAD 请求，状态码小于500视为在线
  - tcp        TCP 连接
  - redis      PING
  - dns        向目标服务器解析 A 记录
  - interface  网络接口是否存在（WireGuard、OpenVPN等）

配置文件格式请参考 config/example.yaml
        """
    )

    parser.add_argument(
        'config_file',
        nargs='?',
        help='YAML配置文件路径'
    )

    parser.add_argument(
        '--version', '-v',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--validate',
        action='store_true',
        help='验证配置文件格式并退出'
    )

    parser.add_argument(
        '--once',
        action='store_true',
        help='采集一次快照并以JSON输出后退出'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='设置日志级别（覆盖配置文件设置）'
    )

    parser.add_argument(
        '--log-file',
        help='日志文件路径（覆盖配置文件设置）'
    )

    return parser


def validate_config_file(config_path: str) -> bool:
    """验证配置文件

    Args:
        config_path: 配置文件路径

    Returns:
        验证是否成功
    """
    print(f"正在验证配置文件: {config_path}")

    if not os.path.exists(config_path):
        print(f"❌ 配置文件不存在: {config_path}")
        return False

    try:
        config_manager = ConfigManager(config_path)
        config_manager.load_config()
        descriptors = config_manager.get_service_descriptors()
    except ConfigError as e:
        print(f"❌ 配置文件验证失败: {e.format_error()}")
        return False

    print("✅ 配置文件验证成功!")
    print(f"   - 服务数量: {len(descriptors)}")
    for descriptor in descriptors:
        state = '' if descriptor.enabled else ' [已禁用]'
        print(f"     * {descriptor.name} ({descriptor.check_type.value} "
              f"{descriptor.host}:{descriptor.port}){state}")

    wireguard = config_manager.get_wireguard_config()
    if wireguard.get('enabled'):
        print(f"   - WireGuard 接口: {wireguard.get('interface', 'wg0')}")

    return True


async def collect_once(config_path: str, log_overrides: Dict[str, Any]) -> bool:
    """采集一次快照并输出

    Args:
        config_path: 配置文件路径
        log_overrides: 命令行日志配置

    Returns:
        是否所有数据源都采集成功
    """
    once_app = TelemetryAgentApp(config_path, log_overrides)
    try:
        once_app.initialize()
        snapshot = await once_app.poller.poll_once()
    except TelemetryError as e:
        print(f"❌ 采集失败: {e.format_error()}", file=sys.stderr)
        return False

    print(json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=2))
    return not snapshot.degraded


async def main():
    """主函数"""
    global app

    parser = create_argument_parser()
    args = parser.parse_args()

    if not args.config_file:
        parser.print_help()
        sys.exit(1)

    config_path = args.config_file

    if not os.path.exists(config_path):
        print(f"配置文件不存在: {config_path}", file=sys.stderr)
        sys.exit(1)

    if args.validate:
        success = validate_config_file(config_path)
        sys.exit(0 if success else 1)

    log_overrides = {}
    if args.log_level:
        log_overrides['log_level'] = args.log_level
    if args.log_file:
        log_overrides['log_file'] = args.log_file

    if args.once:
        success = await collect_once(config_path, log_overrides)
        sys.exit(0 if success else 1)

    try:
        app = TelemetryAgentApp(config_path, log_overrides)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        app.initialize()

        print(f"遥测代理 v{__version__} 已启动")
        print(f"配置文件: {config_path}")
        print("按 Ctrl+C 停止程序")

        await app.start()

    except KeyboardInterrupt:
        print("\n用户中断程序")
    except ConfigError as e:
        print(f"配置错误: {e.format_error()}", file=sys.stderr)
        sys.exit(1)
    except TelemetryError as e:
        print(f"遥测代理错误: {e.format_error()}", file=sys.stderr)
        sys.exit(1)
    finally:
        if app:
            await app.stop()


def setup_collation_locale() -> bool:
    """
    使用环境变量中的排序规则，对端名称排序依赖它

    Returns:
        bool: 是否设置成功；失败时保持 C locale
    """
    try:
        locale.setlocale(locale.LC_COLLATE, '')
    except locale.Error as e:
        print(f"无法设置排序 locale，使用默认排序: {e}", file=sys.stderr)
        return False
    return True


def run():
    """命令行入口"""
    setup_collation_locale()
    asyncio.run(main())


if __name__ == "__main__":
    run()
