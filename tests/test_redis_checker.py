"""测试Redis服务探测器"""

import pytest
from unittest.mock import AsyncMock, patch

import redis.asyncio as redis

from telemetry_agent.checkers.redis_checker import RedisServiceChecker
from telemetry_agent.models.telemetry import CheckType, ServiceDescriptor, ServiceStatus

DESCRIPTOR = ServiceDescriptor('redis', 6379, check_type=CheckType.REDIS)


def mock_client(**ping_kwargs):
    client = AsyncMock()
    client.ping = AsyncMock(**ping_kwargs)
    client.aclose = AsyncMock()
    return client


class TestRedisServiceChecker:
    """测试RedisServiceChecker类"""

    @pytest.mark.asyncio
    async def test_pong_online(self):
        """测试收到PONG视为在线"""
        client = mock_client(return_value=True)

        with patch('telemetry_agent.checkers.redis_checker.redis.Redis', return_value=client) as factory:
            result = await RedisServiceChecker(DESCRIPTOR, {'timeout': 3}).check()

        assert result.status == ServiceStatus.ONLINE
        assert result.latency_ms is not None
        client.ping.assert_awaited_once()
        client.aclose.assert_awaited_once()
        kwargs = factory.call_args.kwargs
        assert kwargs['host'] == 'localhost'
        assert kwargs['port'] == 6379
        assert kwargs['socket_connect_timeout'] == 3

    @pytest.mark.asyncio
    async def test_false_ping_is_error(self):
        """测试PING返回False视为error"""
        client = mock_client(return_value=False)

        with patch('telemetry_agent.checkers.redis_checker.redis.Redis', return_value=client):
            result = await RedisServiceChecker(DESCRIPTOR).check()

        assert result.status == ServiceStatus.ERROR
        client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_authentication_error(self):
        """测试认证失败视为error"""
        client = mock_client(side_effect=redis.AuthenticationError("NOAUTH"))

        with patch('telemetry_agent.checkers.redis_checker.redis.Redis', return_value=client):
            result = await RedisServiceChecker(DESCRIPTOR).check()

        assert result.status == ServiceStatus.ERROR
        assert "认证失败" in result.error_message
        client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_response_error(self):
        """测试协议错误视为error"""
        client = mock_client(side_effect=redis.ResponseError("unknown command"))

        with patch('telemetry_agent.checkers.redis_checker.redis.Redis', return_value=client):
            result = await RedisServiceChecker(DESCRIPTOR).check()

        assert result.status == ServiceStatus.ERROR

    @pytest.mark.asyncio
    @pytest.mark.parametrize('error', [
        redis.ConnectionError("Connection refused"),
        redis.TimeoutError("Timeout"),
        OSError("network unreachable"),
    ])
    async def test_connection_failures_offline(self, error):
        """测试连接失败和超时视为离线"""
        client = mock_client(side_effect=error)

        with patch('telemetry_agent.checkers.redis_checker.redis.Redis', return_value=client):
            result = await RedisServiceChecker(DESCRIPTOR).check()

        assert result.status == ServiceStatus.OFFLINE
        assert result.latency_ms is None
        client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_error_does_not_change_result(self):
        """测试关闭连接失败不影响结果"""
        client = mock_client(return_value=True)
        client.aclose = AsyncMock(side_effect=RuntimeError("already closed"))

        with patch('telemetry_agent.checkers.redis_checker.redis.Redis', return_value=client):
            result = await RedisServiceChecker(DESCRIPTOR).check()

        assert result.status == ServiceStatus.ONLINE
