"""遥测相关的数据模型"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Dict, Any, List, Optional

_FALSE_STRINGS = {'false', 'no', 'off', '0', ''}


def _parse_enabled(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    if value is None:
        return True
    return bool(value)


class CheckType(Enum):
    """服务探测类型"""
    HTTP = 'http'
    TCP = 'tcp'
    REDIS = 'redis'
    DNS = 'dns'
    INTERFACE = 'interface'

    @classmethod
    def from_value(cls, value: Any) -> Optional['CheckType']:
        """将字符串转换为探测类型，无法识别时返回None"""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class ServiceStatus(Enum):
    """探测结果状态"""
    ONLINE = 'online'
    OFFLINE = 'offline'
    ERROR = 'error'


@dataclass(frozen=True)
class ServiceDescriptor:
    """服务描述（由外部配置提供，每轮轮询内不可变）"""
    name: str
    port: int
    host: str = 'localhost'
    path: str = '/'
    check_type: CheckType = CheckType.TCP
    interface_name: Optional[str] = None
    icon: str = 'server'
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ServiceDescriptor':
        """
        从外部服务记录创建描述对象

        同时接受 camelCase（checkType、interfaceName）和 snake_case 键。
        无法识别的探测类型按 tcp 处理。

        Args:
            data: 服务记录字典

        Returns:
            ServiceDescriptor: 服务描述
        """
        raw_type = data.get('checkType', data.get('check_type'))
        check_type = CheckType.from_value(raw_type) or CheckType.TCP
        interface_name = data.get('interfaceName', data.get('interface_name',
                                                            data.get('interface')))
        return cls(
            name=str(data.get('name', '')),
            port=int(data.get('port', 0)),
            host=data.get('host') or 'localhost',
            path=data.get('path') or '/',
            check_type=check_type,
            interface_name=interface_name or None,
            icon=data.get('icon') or 'server',
            enabled=_parse_enabled(data.get('enabled', True))
        )

    def to_dict(self) -> Dict[str, Any]:
        """转换为外部记录格式"""
        return {
            'name': self.name,
            'host': self.host,
            'port': self.port,
            'path': self.path,
            'checkType': self.check_type.value,
            'interfaceName': self.interface_name,
            'icon': self.icon,
            'enabled': self.enabled
        }


@dataclass
class HealthResult:
    """单次服务探测结果，每轮轮询重新生成，不缓存"""
    descriptor: ServiceDescriptor
    status: ServiceStatus
    latency_ms: Optional[int] = None
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        # 只有在线状态才有延迟
        if self.status is not ServiceStatus.ONLINE:
            self.latency_ms = None

    @property
    def is_online(self) -> bool:
        return self.status is ServiceStatus.ONLINE

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        data = self.descriptor.to_dict()
        data['status'] = self.status.value
        data['latency'] = self.latency_ms
        if self.status_code is not None:
            data['statusCode'] = self.status_code
        return data


@dataclass(frozen=True)
class MetricSample:
    """累计计数器的一次采样"""
    source_id: str
    value: float
    timestamp_micros: int


@dataclass
class ContainerInfo:
    """容器清单条目（来自容器运行时API）"""
    id: str
    name: str
    image: str = ''
    state: str = ''
    status: str = ''

    @property
    def short_id(self) -> str:
        return self.id[:12]


@dataclass
class ContainerStats:
    """容器实时资源占用"""
    cpu_percent: float = 0.0
    mem_percent: float = 0.0
    mem_usage_bytes: int = 0
    mem_limit_bytes: int = 0


@dataclass
class ContainerRecord:
    """容器清单与实时资源占用的合并结果

    cpu_percent 已按核心数归一化，100 表示全部核心满载。
    """
    id: str
    name: str
    image: str
    state: str
    cpu_percent: float = 0.0
    mem_percent: float = 0.0
    mem_usage_bytes: int = 0
    mem_limit_bytes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'image': self.image,
            'state': self.state,
            'cpuPercent': self.cpu_percent,
            'memPercent': self.mem_percent,
            'memUsage': self.mem_usage_bytes,
            'memLimit': self.mem_limit_bytes
        }


@dataclass
class WireGuardPeer:
    """WireGuard 对端状态"""
    public_key: str
    name: str = 'unknown'
    online: bool = False
    endpoint: Optional[str] = None
    last_handshake_epoch_seconds: Optional[int] = None
    last_handshake_seconds: Optional[int] = None
    last_handshake_ago: str = 'never'
    transfer_received_bytes: int = 0
    transfer_sent_bytes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'publicKey': self.public_key,
            'online': self.online,
            'endpoint': self.endpoint,
            'lastHandshake': self.last_handshake_epoch_seconds,
            'lastHandshakeAgo': self.last_handshake_ago,
            'transfer': {
                'received': self.transfer_received_bytes,
                'sent': self.transfer_sent_bytes
            }
        }


@dataclass
class WireGuardInterface:
    """WireGuard 接口信息"""
    name: str
    public_key: Optional[str] = None
    listen_port: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'publicKey': self.public_key,
            'listenPort': self.listen_port
        }


@dataclass
class WireGuardStatus:
    """wg show 输出的解析结果"""
    interface: WireGuardInterface
    peers: List[WireGuardPeer] = field(default_factory=list)


@dataclass
class VpnStatus:
    """VPN 监控结果"""
    enabled: bool
    interface: Optional[WireGuardInterface] = None
    peers: List[WireGuardPeer] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'enabled': self.enabled}
        if self.error:
            data['error'] = self.error
        if self.interface is not None:
            data['interface'] = self.interface.to_dict()
            data['clients'] = [peer.to_dict() for peer in self.peers]
        return data


@dataclass
class DiscoveredService:
    """扫描监听端口得到的候选服务"""
    name: str
    port: int
    path: str = '/'
    host: str = 'localhost'
    icon: str = 'server'
    check_type: CheckType = CheckType.TCP
    protocol: str = 'tcp'
    process_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'port': self.port,
            'path': self.path,
            'host': self.host,
            'icon': self.icon,
            'checkType': self.check_type.value,
            'protocol': self.protocol,
            'process': self.process_name,
            'enabled': True,
            'discovered': True
        }


@dataclass
class HostMetrics:
    """主机级别指标"""
    cpu: Dict[str, Any] = field(default_factory=dict)
    memory: Dict[str, Any] = field(default_factory=dict)
    disks: List[Dict[str, Any]] = field(default_factory=list)
    network: List[Dict[str, Any]] = field(default_factory=list)
    load: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TelemetrySnapshot:
    """一轮轮询的汇总快照

    任意数据源失败时对应字段保持空值，errors 记录失败原因。
    """
    timestamp: datetime = field(default_factory=datetime.now)
    host: HostMetrics = field(default_factory=HostMetrics)
    services: List[HealthResult] = field(default_factory=list)
    containers: List[ContainerRecord] = field(default_factory=list)
    vpn: VpnStatus = field(default_factory=lambda: VpnStatus(enabled=False))
    discovered: List[DiscoveredService] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def degraded(self) -> bool:
        return bool(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式，供API层使用"""
        return {
            'timestamp': int(self.timestamp.timestamp() * 1000),
            'cpu': self.host.cpu,
            'memory': self.host.memory,
            'disks': self.host.disks,
            'network': self.host.network,
            'load': self.host.load,
            'services': [result.to_dict() for result in self.services],
            'containers': [container.to_dict() for container in self.containers],
            'wireguard': self.vpn.to_dict(),
            'discovered': [service.to_dict() for service in self.discovered],
            'errors': dict(self.errors)
        }
