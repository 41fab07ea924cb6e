"""测试遥测轮询器"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from telemetry_agent.models.telemetry import ServiceDescriptor, TelemetrySnapshot
from telemetry_agent.services.metric_cache import DeltaMetricCache
from telemetry_agent.services.poller import TelemetryPoller

SERVICES = [ServiceDescriptor('ssh', 22)]


@pytest.fixture
def aggregator():
    aggregator = MagicMock()
    aggregator.collect_snapshot = AsyncMock(side_effect=lambda services: TelemetrySnapshot())
    return aggregator


class TestTelemetryPoller:
    """测试TelemetryPoller类"""

    def test_invalid_interval(self, aggregator):
        """测试轮询间隔必须为正数"""
        with pytest.raises(ValueError):
            TelemetryPoller(aggregator, DeltaMetricCache(), lambda: SERVICES, poll_interval=0)

    @pytest.mark.asyncio
    async def test_poll_once(self, aggregator):
        """测试单轮采集保存最新快照并调用回调"""
        callback = AsyncMock()
        poller = TelemetryPoller(aggregator, DeltaMetricCache(), lambda: SERVICES)
        poller.set_snapshot_callback(callback)

        snapshot = await poller.poll_once()

        aggregator.collect_snapshot.assert_awaited_once_with(SERVICES)
        assert poller.latest_snapshot is snapshot
        assert poller.poll_count == 1
        callback.assert_awaited_once_with(snapshot)

    @pytest.mark.asyncio
    async def test_callback_error_does_not_propagate(self, aggregator):
        """测试回调异常不影响轮询"""
        poller = TelemetryPoller(aggregator, DeltaMetricCache(), lambda: SERVICES)
        poller.set_snapshot_callback(AsyncMock(side_effect=RuntimeError("sink closed")))

        snapshot = await poller.poll_once()

        assert poller.latest_snapshot is snapshot

    @pytest.mark.asyncio
    async def test_degraded_snapshot_kept(self, aggregator):
        """测试部分失败的快照同样被保存"""
        aggregator.collect_snapshot = AsyncMock(
            return_value=TelemetrySnapshot(errors={'containers': 'docker down'}))
        poller = TelemetryPoller(aggregator, DeltaMetricCache(), lambda: SERVICES)

        snapshot = await poller.poll_once()

        assert snapshot.degraded
        assert poller.latest_snapshot is snapshot

    @pytest.mark.asyncio
    async def test_services_provider_called_each_round(self, aggregator):
        """测试每轮重新获取服务列表"""
        provider = MagicMock(side_effect=[SERVICES, []])
        poller = TelemetryPoller(aggregator, DeltaMetricCache(), provider)

        await poller.poll_once()
        await poller.poll_once()

        assert provider.call_count == 2
        assert aggregator.collect_snapshot.await_args_list[1].args == ([],)

    @pytest.mark.asyncio
    async def test_start_and_stop(self, aggregator):
        """测试启动后持续轮询，停止后清理任务结束"""
        cache = DeltaMetricCache(sweep_interval=60)
        poller = TelemetryPoller(aggregator, cache, lambda: SERVICES, poll_interval=0.01)

        task = asyncio.create_task(poller.start())
        for _ in range(100):
            if poller.poll_count >= 2:
                break
            await asyncio.sleep(0.01)

        assert poller.is_running
        assert cache.is_sweeping

        await poller.stop()
        await asyncio.wait_for(task, timeout=1)

        assert poller.poll_count >= 2
        assert not poller.is_running
        assert not cache.is_sweeping

    @pytest.mark.asyncio
    async def test_loop_survives_aggregator_error(self, aggregator):
        """测试单轮异常后继续轮询"""
        calls = []

        def collect(services):
            calls.append(services)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return TelemetrySnapshot()

        aggregator.collect_snapshot = AsyncMock(side_effect=collect)
        poller = TelemetryPoller(aggregator, DeltaMetricCache(), lambda: SERVICES, poll_interval=0.01)

        task = asyncio.create_task(poller.start())
        for _ in range(100):
            if poller.poll_count >= 1:
                break
            await asyncio.sleep(0.01)
        await poller.stop()
        await asyncio.wait_for(task, timeout=1)

        assert poller.poll_count == len(calls) - 1
        assert poller.latest_snapshot is not None

    @pytest.mark.asyncio
    async def test_stop_when_not_running(self, aggregator):
        """测试未启动时停止不做任何事"""
        poller = TelemetryPoller(aggregator, DeltaMetricCache(), lambda: SERVICES)

        await poller.stop()

        assert not poller.is_running
