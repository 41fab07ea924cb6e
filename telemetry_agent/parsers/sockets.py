"""监听套接字表解析

解析 ``ss -tlnp`` / ``netstat -tlnp``（以及对应的UDP命令）的输出，
按进程名和端口识别候选服务。
"""

import re
from typing import List, Optional, Set

from ..models.telemetry import CheckType, DiscoveredService
from ..services.known_services import KNOWN_PROCESSES, KNOWN_SERVICES, KNOWN_UDP_SERVICES

MAX_DISCOVERY_PORT = 32767
GENERIC_PORT_LIMIT = 10000

_TCP_ADDRESS = re.compile(r'(?:0\.0\.0\.0|127\.0\.0\.1|\*|\[?::\]?):(\d+)')
_UDP_ADDRESS = re.compile(r'(?:0\.0\.0\.0|\*|\[?::\]?):(\d+)')
_PROCESS = re.compile(r'users:\(\("([^"]+)"')


def _service_from_table(entry: dict, port: int, process_name: Optional[str],
                        protocol: str = 'tcp', path: Optional[str] = None) -> DiscoveredService:
    return DiscoveredService(
        name=entry['name'],
        port=port,
        path=path if path is not None else entry.get('path', '/'),
        icon=entry.get('icon', 'server'),
        check_type=CheckType(entry.get('check_type', 'tcp')),
        protocol=protocol,
        process_name=process_name
    )


def _identify_tcp(port: int, process_name: Optional[str]) -> Optional[DiscoveredService]:
    """进程名表优先，其次端口表，最后对低端口生成通用条目"""
    if process_name and process_name in KNOWN_PROCESSES:
        return _service_from_table(KNOWN_PROCESSES[process_name], port, process_name)

    if port in KNOWN_SERVICES:
        return _service_from_table(KNOWN_SERVICES[port], port, process_name)

    if port < GENERIC_PORT_LIMIT:
        return DiscoveredService(
            name=process_name or f'Port {port}',
            port=port,
            process_name=process_name
        )

    return None


def parse_tcp_sockets(text: str, seen: Set[int]) -> List[DiscoveredService]:
    """
    解析TCP监听套接字

    Args:
        text: ss/netstat 输出
        seen: 本次扫描已经出现过的端口，会被原地更新

    Returns:
        List[DiscoveredService]: 识别出的服务
    """
    discovered = []
    for line in (text or '').splitlines():
        if 'LISTEN' not in line:
            continue

        match = _TCP_ADDRESS.search(line)
        if not match:
            continue

        port = int(match.group(1))
        if port > MAX_DISCOVERY_PORT or port in seen:
            continue

        # 只绑定回环地址的服务外部不可达
        if '127.0.0.1' in line:
            continue
        seen.add(port)

        process_match = _PROCESS.search(line)
        process_name = process_match.group(1) if process_match else None

        service = _identify_tcp(port, process_name)
        if service is not None:
            discovered.append(service)

    return discovered


def parse_udp_sockets(text: str, seen: Set[int]) -> List[DiscoveredService]:
    """
    解析UDP监听套接字，只识别VPN相关端口

    Args:
        text: ss/netstat 输出
        seen: 本次扫描已经出现过的端口，会被原地更新

    Returns:
        List[DiscoveredService]: 识别出的VPN服务
    """
    discovered = []
    for line in (text or '').splitlines():
        if 'UNCONN' not in line and 'udp' not in line:
            continue

        match = _UDP_ADDRESS.search(line)
        if not match:
            continue

        port = int(match.group(1))
        if port in seen or port not in KNOWN_UDP_SERVICES:
            continue
        seen.add(port)

        entry = KNOWN_UDP_SERVICES[port]
        discovered.append(_service_from_table(
            entry, port, None, protocol='udp', path=entry.get('interface', '')))

    return discovered


def discover(tcp_text: str, udp_text: str = '') -> List[DiscoveredService]:
    """
    从监听套接字表中识别候选服务

    UDP 结果只补充TCP中没有出现过的端口，最终按端口升序排列。

    Args:
        tcp_text: TCP监听套接字表
        udp_text: UDP监听套接字表，可为空

    Returns:
        List[DiscoveredService]: 候选服务列表
    """
    seen: Set[int] = set()
    discovered = parse_tcp_sockets(tcp_text, seen)
    discovered.extend(parse_udp_sockets(udp_text, seen))
    discovered.sort(key=lambda service: service.port)
    return discovered


parse_listening_sockets = discover
