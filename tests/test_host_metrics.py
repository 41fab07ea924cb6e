"""测试主机指标采集"""

from collections import namedtuple

import pytest
from unittest.mock import patch

from telemetry_agent.collectors.host_metrics import HostMetricsCollector, is_reported_interface
from telemetry_agent.services.metric_cache import DeltaMetricCache

PSUTIL = 'telemetry_agent.collectors.host_metrics.psutil'

Partition = namedtuple('Partition', 'device mountpoint fstype opts')
DiskUsage = namedtuple('DiskUsage', 'total used free percent')
NetCounter = namedtuple('NetCounter', 'bytes_sent bytes_recv')
VirtualMemory = namedtuple('VirtualMemory', 'total available buffers cached')

GIB = 1024 ** 3


class TestHostMetricsCollector:
    """测试HostMetricsCollector类"""

    def test_cpu(self):
        """测试CPU总占用为各核心平均值"""
        with patch(PSUTIL) as psutil:
            psutil.cpu_percent.return_value = [10.0, 20.0, 30.0, 45.0]
            psutil.cpu_count.return_value = 4

            cpu = HostMetricsCollector(DeltaMetricCache()).collect_cpu()

        assert cpu == {'usage': 26.2, 'cores': [10.0, 20.0, 30.0, 45.0], 'count': 4}

    def test_memory(self):
        """测试内存占用按 total - available 计算"""
        with patch(PSUTIL) as psutil:
            psutil.virtual_memory.return_value = VirtualMemory(8 * GIB, 6 * GIB, GIB // 2, GIB // 2)

            memory = HostMetricsCollector(DeltaMetricCache()).collect_memory()

        assert memory['used'] == 2 * GIB
        assert memory['free'] == 6 * GIB
        assert memory['buffcache'] == GIB
        assert memory['percent'] == 25.0

    def test_disks_filtered(self):
        """测试跳过loop设备、/boot分区、小分区和重复设备"""
        partitions = [
            Partition('/dev/sda2', '/', 'ext4', 'rw'),
            Partition('/dev/sda1', '/boot/firmware', 'vfat', 'rw'),
            Partition('/dev/loop0', '/snap/core', 'squashfs', 'ro'),
            Partition('/dev/sdb1', '/mnt/tiny', 'ext4', 'rw'),
            Partition('/dev/sda2', '/var/lib/docker', 'ext4', 'rw'),
        ]
        usages = {
            '/': DiskUsage(100 * GIB, 40 * GIB, 60 * GIB, 40.0),
            '/mnt/tiny': DiskUsage(50 * 1024 * 1024, 1, 1, 1.0),
            '/var/lib/docker': DiskUsage(100 * GIB, 40 * GIB, 60 * GIB, 40.0),
        }

        with patch(PSUTIL) as psutil:
            psutil.disk_partitions.return_value = partitions
            psutil.disk_usage.side_effect = lambda mount: usages[mount]

            disks = HostMetricsCollector(DeltaMetricCache()).collect_disks()

        assert disks == [{
            'fs': '/dev/sda2', 'mount': '/', 'size': 100 * GIB, 'used': 40 * GIB,
            'available': 60 * GIB, 'percent': 40.0
        }]

    def test_network_rates(self):
        """测试网卡速率在第二次采样时按缓存计算"""
        collector = HostMetricsCollector(DeltaMetricCache())

        with patch(PSUTIL) as psutil:
            psutil.net_io_counters.return_value = {
                'eth0': NetCounter(bytes_sent=1000, bytes_recv=5000),
                'lo': NetCounter(bytes_sent=1, bytes_recv=1),
                'veth12ab': NetCounter(bytes_sent=1, bytes_recv=1),
            }
            first = collector.collect_network(1_000_000)

            psutil.net_io_counters.return_value = {
                'eth0': NetCounter(bytes_sent=3000, bytes_recv=9000),
            }
            second = collector.collect_network(3_000_000)

        assert [item['iface'] for item in first] == ['eth0']
        assert first[0]['rxSec'] == 0 and first[0]['txSec'] == 0
        assert second[0] == {'iface': 'eth0', 'rxBytes': 9000, 'txBytes': 3000,
                             'rxSec': 2000, 'txSec': 1000}
        assert 'net-rx:eth0' in collector.cache

    def test_load(self):
        """测试负载和运行时间"""
        with patch(PSUTIL) as psutil, \
                patch('telemetry_agent.collectors.host_metrics.time.time', return_value=10_000):
            psutil.getloadavg.return_value = (0.5, 0.256, 0.1)
            psutil.boot_time.return_value = 4_000

            load = HostMetricsCollector(DeltaMetricCache()).collect_load()

        assert load == {'avgLoad': 0.5, 'loadAvg': [0.5, 0.26, 0.1], 'uptime': 6000}

    @pytest.mark.asyncio
    async def test_collect_real_host(self):
        """测试在真实主机上采集不抛出异常"""
        metrics = await HostMetricsCollector(DeltaMetricCache()).collect()

        assert metrics.cpu['count'] >= 1
        assert metrics.memory['total'] > 0
        assert 'uptime' in metrics.load


@pytest.mark.parametrize('name,reported', [
    ('eth0', True), ('wlan0', True), ('wg0', True),
    ('lo', False), ('docker0', False), ('veth9f2c', False), ('br-1a2b3c', False),
])
def test_is_reported_interface(name, reported):
    """测试网卡过滤"""
    assert is_reported_interface(name) is reported
