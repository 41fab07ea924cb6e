"""数据模型模块"""

from .telemetry import (
    CheckType, ServiceStatus, ServiceDescriptor, HealthResult, MetricSample,
    ContainerInfo, ContainerStats, ContainerRecord, WireGuardPeer,
    WireGuardInterface, WireGuardStatus, VpnStatus, DiscoveredService,
    HostMetrics, TelemetrySnapshot
)

__all__ = ['CheckType', 'ServiceStatus', 'ServiceDescriptor', 'HealthResult',
           'MetricSample', 'ContainerInfo', 'ContainerStats', 'ContainerRecord',
           'WireGuardPeer', 'WireGuardInterface', 'WireGuardStatus', 'VpnStatus',
           'DiscoveredService', 'HostMetrics', 'TelemetrySnapshot']
