"""数据采集模块"""

from .container_stats import ContainerStatsCollector, merge_container_records
from .docker_client import DockerClient
from .host_metrics import HostMetricsCollector

__all__ = ['ContainerStatsCollector', 'merge_container_records', 'DockerClient',
           'HostMetricsCollector']
