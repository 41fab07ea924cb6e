"""Redis服务探测器"""

import asyncio

import redis.asyncio as redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff

from .base import BaseServiceChecker
from .factory import register_checker
from ..models.telemetry import CheckType, HealthResult


@register_checker(CheckType.REDIS)
class RedisServiceChecker(BaseServiceChecker):
    """Redis服务探测器

    发送 PING，收到 PONG 视为在线；服务有响应但不是 PONG（认证失败、
    协议错误等）视为 error；无法连接视为离线。
    """

    def _create_client(self) -> redis.Redis:
        """
        创建单次使用的Redis客户端

        Returns:
            redis.Redis: Redis客户端
        """
        return redis.Redis(
            host=self.descriptor.host,
            port=self.descriptor.port,
            password=self.config.get('password'),
            socket_timeout=self.get_timeout(),
            socket_connect_timeout=self.get_timeout(),
            retry=Retry(NoBackoff(), 0)
        )

    async def check(self) -> HealthResult:
        """
        执行Redis PING探测

        Returns:
            HealthResult: 探测结果
        """
        name = self.descriptor.name
        self.start_timer()
        client = None

        try:
            client = self._create_client()
            pong = await client.ping()
            if pong:
                result = self.online()
            else:
                result = self.error("PING未返回PONG")
        except redis.AuthenticationError as e:
            # AuthenticationError 是 ConnectionError 的子类，需先处理
            self.logger.debug(f"Redis服务 {name} 认证失败: {e}")
            return self.error(f"Redis认证失败: {e}")
        except (redis.ConnectionError, redis.TimeoutError, asyncio.TimeoutError, OSError) as e:
            self.logger.debug(f"Redis服务 {name} 连接失败: {e}")
            return self.offline(f"Redis连接错误: {e}")
        except redis.RedisError as e:
            self.logger.debug(f"Redis服务 {name} 响应异常: {e}")
            return self.error(f"Redis响应错误: {e}")
        finally:
            if client is not None:
                try:
                    await client.aclose()
                except Exception as e:
                    self.logger.warning(f"关闭Redis客户端连接时出错: {e}")

        return result
