"""Docker Engine API 客户端

通过 unix socket 访问 Docker Engine API，只用到容器列表和容器详情两个只读接口。
"""

import asyncio
from typing import Dict, Any, List, Optional

import aiohttp

from ..models.telemetry import ContainerInfo
from ..utils.exceptions import CollectorError, ErrorCode
from ..utils.log_manager import get_logger

DEFAULT_DOCKER_SOCKET = '/var/run/docker.sock'
DEFAULT_DOCKER_TIMEOUT = 5.0
# 使用 unix socket 时主机名不参与路由
DOCKER_API_BASE = 'http://localhost'


class DockerClient:
    """Docker Engine API 客户端"""

    def __init__(self, socket_path: str = DEFAULT_DOCKER_SOCKET,
                 timeout: float = DEFAULT_DOCKER_TIMEOUT):
        """
        初始化Docker客户端

        Args:
            socket_path: Docker socket 路径
            timeout: 请求超时时间（秒）
        """
        self.socket_path = socket_path
        self.timeout = timeout
        self.logger = get_logger('docker')

    async def get_json(self, path: str) -> Any:
        """
        发送GET请求并解析JSON响应

        Args:
            path: API路径，例如 /containers/json

        Returns:
            解析后的JSON数据

        Raises:
            CollectorError: socket 不可达、超时、非2xx状态或响应不是JSON
        """
        connector = aiohttp.UnixConnector(path=self.socket_path)
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            async with aiohttp.ClientSession(connector=connector, timeout=timeout) as session:
                async with session.get(f"{DOCKER_API_BASE}{path}") as response:
                    if response.status >= 400:
                        text = await response.text()
                        raise CollectorError(
                            f"Docker API 返回错误状态 {response.status}: {text.strip()}",
                            ErrorCode.DOCKER_API_ERROR,
                            source='docker',
                            details={'path': path, 'status': response.status}
                        )
                    return await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise CollectorError(f"Docker API 请求超时: {path}", ErrorCode.DOCKER_API_ERROR,
                                 source='docker', cause=e)
        except (aiohttp.ClientError, OSError, ValueError) as e:
            raise CollectorError(f"Docker API 请求失败: {path}", ErrorCode.DOCKER_API_ERROR,
                                 source='docker', cause=e)

    async def list_containers(self) -> List[ContainerInfo]:
        """
        获取运行中的容器列表

        Returns:
            List[ContainerInfo]: 容器清单
        """
        data = await self.get_json('/containers/json')
        if not isinstance(data, list):
            raise CollectorError("Docker API 容器列表格式不正确", ErrorCode.DOCKER_API_ERROR,
                                 source='docker')

        containers = [self._to_container_info(item) for item in data if item.get('Id')]
        self.logger.debug(f"获取到 {len(containers)} 个容器")
        return containers

    async def inspect_container(self, container_id: str) -> Dict[str, Any]:
        """获取容器详情"""
        data = await self.get_json(f'/containers/{container_id}/json')
        if not isinstance(data, dict):
            raise CollectorError(f"容器 {container_id[:12]} 详情格式不正确",
                                 ErrorCode.DOCKER_API_ERROR, source='docker')
        return data

    async def get_container_pid(self, container_id: str) -> Optional[int]:
        """
        获取容器主进程PID

        Args:
            container_id: 容器ID

        Returns:
            主进程PID，容器未运行时返回None
        """
        info = await self.inspect_container(container_id)
        pid = (info.get('State') or {}).get('Pid')
        if isinstance(pid, int) and pid > 0:
            return pid
        return None

    @staticmethod
    def _to_container_info(item: Dict[str, Any]) -> ContainerInfo:
        names = item.get('Names') or []
        name = names[0].lstrip('/') if names else item['Id'][:12]
        return ContainerInfo(
            id=item['Id'],
            name=name,
            image=item.get('Image', ''),
            state=item.get('State', ''),
            status=item.get('Status', '')
        )
