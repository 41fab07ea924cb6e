"""测试Docker Engine API客户端"""

import sys
import tempfile
from pathlib import Path

import pytest
import pytest_asyncio
from aiohttp import web

from telemetry_agent.collectors.docker_client import DockerClient
from telemetry_agent.utils.exceptions import CollectorError, ErrorCode

pytestmark = pytest.mark.skipif(sys.platform == 'win32', reason="需要unix socket")

CONTAINER_ID = 'f' * 64

CONTAINERS = [
    {'Id': CONTAINER_ID, 'Names': ['/jellyfin'], 'Image': 'jellyfin/jellyfin',
     'State': 'running', 'Status': 'Up 2 hours'},
    {'Id': 'e' * 64, 'Names': [], 'Image': 'redis', 'State': 'running', 'Status': 'Up'},
]


async def list_containers(request):
    return web.json_response(CONTAINERS)


async def inspect_container(request):
    container_id = request.match_info['container_id']
    if container_id == CONTAINER_ID:
        return web.json_response({'Id': container_id, 'State': {'Running': True, 'Pid': 4242}})
    if container_id == 'stopped':
        return web.json_response({'Id': container_id, 'State': {'Running': False, 'Pid': 0}})
    return web.json_response({'message': f'No such container: {container_id}'}, status=404)


@pytest_asyncio.fixture
async def docker_socket():
    """在unix socket上启动模拟的Docker API"""
    app = web.Application()
    app.router.add_get('/containers/json', list_containers)
    app.router.add_get('/containers/{container_id}/json', inspect_container)

    runner = web.AppRunner(app)
    await runner.setup()
    # unix socket 路径长度有限，不使用 tmp_path
    with tempfile.TemporaryDirectory() as directory:
        socket_path = str(Path(directory) / 'docker.sock')
        site = web.UnixSite(runner, socket_path)
        await site.start()
        try:
            yield socket_path
        finally:
            await runner.cleanup()


class TestDockerClient:
    """测试DockerClient类"""

    @pytest.mark.asyncio
    async def test_list_containers(self, docker_socket):
        """测试获取容器列表"""
        containers = await DockerClient(docker_socket).list_containers()

        assert [container.name for container in containers] == ['jellyfin', 'e' * 12]
        assert containers[0].id == CONTAINER_ID
        assert containers[0].image == 'jellyfin/jellyfin'
        assert containers[0].state == 'running'

    @pytest.mark.asyncio
    async def test_get_container_pid(self, docker_socket):
        """测试获取容器主进程PID"""
        client = DockerClient(docker_socket)

        assert await client.get_container_pid(CONTAINER_ID) == 4242
        assert await client.get_container_pid('stopped') is None

    @pytest.mark.asyncio
    async def test_error_status(self, docker_socket):
        """测试API返回错误状态"""
        with pytest.raises(CollectorError) as exc_info:
            await DockerClient(docker_socket).inspect_container('missing')

        assert exc_info.value.error_code == ErrorCode.DOCKER_API_ERROR
        assert exc_info.value.details['status'] == 404

    @pytest.mark.asyncio
    async def test_socket_unreachable(self, tmp_path):
        """测试socket不存在"""
        with pytest.raises(CollectorError) as exc_info:
            await DockerClient(str(tmp_path / 'nope.sock'), timeout=1).list_containers()

        assert exc_info.value.error_code == ErrorCode.DOCKER_API_ERROR
