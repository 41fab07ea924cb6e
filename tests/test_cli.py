"""CLI接口功能测试"""

import json
import locale
import sys

import pytest
from unittest.mock import patch, AsyncMock

from main import (
    create_argument_parser,
    setup_collation_locale,
    validate_config_file,
    collect_once,
    main,
    __version__
)
from telemetry_agent.models.telemetry import TelemetrySnapshot

VALID_CONFIG = """
global:
  poll_interval: 5
  log_level: WARNING
services:
  - name: SSH
    port: 22
  - name: Grafana
    port: 3000
    enabled: false
wireguard:
  enabled: true
  interface: wg0
docker:
  enabled: false
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / 'config.yaml'
    path.write_text(VALID_CONFIG, encoding='utf-8')
    return str(path)


class TestArgumentParser:
    """命令行参数解析器测试"""

    def test_create_argument_parser(self):
        """测试创建参数解析器"""
        parser = create_argument_parser()

        assert parser.prog == 'telemetry-agent'
        assert '遥测代理' in parser.description

    def test_parse_basic_args(self):
        """测试解析基本参数"""
        args = create_argument_parser().parse_args(['config.yaml'])

        assert args.config_file == 'config.yaml'
        assert not args.validate
        assert not args.once
        assert args.log_level is None
        assert args.log_file is None

    def test_parse_flags(self):
        """测试各个标志"""
        args = create_argument_parser().parse_args(
            ['--once', '--log-level', 'DEBUG', '--log-file', '/tmp/a.log', 'config.yaml'])

        assert args.once
        assert args.log_level == 'DEBUG'
        assert args.log_file == '/tmp/a.log'

    def test_invalid_log_level(self):
        """测试无效的日志级别"""
        with pytest.raises(SystemExit):
            create_argument_parser().parse_args(['--log-level', 'VERBOSE', 'config.yaml'])

    def test_version(self, capsys):
        """测试版本信息"""
        with pytest.raises(SystemExit) as exc_info:
            create_argument_parser().parse_args(['--version'])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestValidateConfigFile:
    """配置文件验证测试"""

    def test_valid_config(self, config_file, capsys):
        """测试有效配置"""
        assert validate_config_file(config_file)

        output = capsys.readouterr().out
        assert "配置文件验证成功" in output
        assert "服务数量: 2" in output
        assert "[已禁用]" in output
        assert "WireGuard 接口: wg0" in output

    def test_missing_config(self, tmp_path, capsys):
        """测试配置文件不存在"""
        assert not validate_config_file(str(tmp_path / 'missing.yaml'))
        assert "配置文件不存在" in capsys.readouterr().out

    def test_invalid_config(self, tmp_path, capsys):
        """测试无效配置"""
        path = tmp_path / 'bad.yaml'
        path.write_text("services:\n  - name: x\n    port: 0\n", encoding='utf-8')

        assert not validate_config_file(str(path))
        assert "配置文件验证失败" in capsys.readouterr().out


class TestCollectOnce:
    """单次采集测试"""

    @pytest.mark.asyncio
    async def test_collect_once_prints_json(self, config_file, capsys):
        """测试输出JSON快照"""
        snapshot = TelemetrySnapshot()

        with patch('telemetry_agent.services.poller.TelemetryPoller.poll_once',
                   AsyncMock(return_value=snapshot)):
            success = await collect_once(config_file, {'log_level': 'ERROR'})

        assert success is True
        data = json.loads(capsys.readouterr().out)
        assert data['services'] == []
        assert data['errors'] == {}

    @pytest.mark.asyncio
    async def test_collect_once_degraded(self, config_file, capsys):
        """测试有数据源失败时返回False"""
        snapshot = TelemetrySnapshot(errors={'vpn': 'wg 不可用'})

        with patch('telemetry_agent.services.poller.TelemetryPoller.poll_once',
                   AsyncMock(return_value=snapshot)):
            success = await collect_once(config_file, {'log_level': 'ERROR'})

        assert success is False

    @pytest.mark.asyncio
    async def test_collect_once_config_error(self, tmp_path, capsys):
        """测试配置错误"""
        path = tmp_path / 'bad.yaml'
        path.write_text("services: nope\n", encoding='utf-8')

        assert await collect_once(str(path), {}) is False
        assert "采集失败" in capsys.readouterr().err


class TestMain:
    """主函数测试"""

    @pytest.mark.asyncio
    async def test_no_config_file(self):
        """测试未指定配置文件"""
        with patch.object(sys, 'argv', ['telemetry-agent']):
            with pytest.raises(SystemExit) as exc_info:
                await main()

        assert exc_info.value.code == 1

    @pytest.mark.asyncio
    async def test_missing_config_file(self, tmp_path):
        """测试配置文件不存在"""
        with patch.object(sys, 'argv', ['telemetry-agent', str(tmp_path / 'missing.yaml')]):
            with pytest.raises(SystemExit) as exc_info:
                await main()

        assert exc_info.value.code == 1

    @pytest.mark.asyncio
    async def test_validate_mode(self, config_file):
        """测试验证模式"""
        with patch.object(sys, 'argv', ['telemetry-agent', '--validate', config_file]):
            with pytest.raises(SystemExit) as exc_info:
                await main()

        assert exc_info.value.code == 0

    @pytest.mark.asyncio
    async def test_once_mode(self, config_file):
        """测试单次采集模式传递日志参数"""
        with patch.object(sys, 'argv', ['telemetry-agent', '--once', '--log-level', 'ERROR', config_file]), \
                patch('main.collect_once', AsyncMock(return_value=True)) as collect:
            with pytest.raises(SystemExit) as exc_info:
                await main()

        assert exc_info.value.code == 0
        collect.assert_awaited_once_with(config_file, {'log_level': 'ERROR'})


class TestCollationLocale:
    """排序locale设置测试"""

    def test_uses_environment_locale(self):
        """测试按环境变量设置排序规则"""
        with patch('main.locale.setlocale') as setlocale:
            assert setup_collation_locale() is True

        setlocale.assert_called_once_with(locale.LC_COLLATE, '')

    def test_unsupported_locale(self, capsys):
        """测试locale不可用时保持默认排序"""
        with patch('main.locale.setlocale', side_effect=locale.Error("unsupported locale setting")):
            assert setup_collation_locale() is False

        assert "unsupported locale setting" in capsys.readouterr().err
