"""WireGuard 状态文本解析

解析 ``wg show <iface>`` 的输出以及 ``pivpn -l`` / clients.txt 的客户端列表。
只做文本解析，不执行任何命令。

wg show 输出格式::

    interface: wg0
      public key: <base64>
      listening port: 51820

    peer: <base64>
      endpoint: 203.0.113.7:51820
      allowed ips: 10.6.0.2/32
      latest handshake: 1 minute, 12 seconds ago
      transfer: 3.65 MiB received, 17.21 MiB sent
"""

import locale
import re
import time
import unicodedata
from typing import Dict, List, Optional, Tuple

from ..models.telemetry import WireGuardInterface, WireGuardPeer, WireGuardStatus

ONLINE_THRESHOLD_SECONDS = 180
UNKNOWN_PEER_NAME = 'unknown'

_TIME_UNIT_SECONDS = {
    'second': 1,
    'minute': 60,
    'hour': 3600,
    'day': 86400,
}
_HANDSHAKE_PART = re.compile(r'(\d+)\s*(second|minute|hour|day)s?', re.IGNORECASE)

_BYTE_UNITS = {
    'b': 1,
    'kib': 1024,
    'mib': 1024 ** 2,
    'gib': 1024 ** 3,
}
_RECEIVED = re.compile(r'([\d.]+)\s*(B|KiB|MiB|GiB)\s*received', re.IGNORECASE)
_SENT = re.compile(r'([\d.]+)\s*(B|KiB|MiB|GiB)\s*sent', re.IGNORECASE)

_CLIENT_LINE = re.compile(r'^(\S+)\s+([A-Za-z0-9+/=]{44})(?=\s|$)')
PUBLIC_KEY_LENGTH = 44


def parse_handshake_age(text: Optional[str]) -> Optional[int]:
    """
    把 "3 minutes, 20 seconds ago" 之类的文本换算成秒数

    Args:
        text: latest handshake 字段的值

    Returns:
        握手距今秒数；没有任何时间片段（从未握手）时返回None
    """
    if not text:
        return None

    parts = _HANDSHAKE_PART.findall(text)
    if not parts:
        return None

    return sum(int(value) * _TIME_UNIT_SECONDS[unit.lower()] for value, unit in parts)


def _to_bytes(value: str, unit: str) -> int:
    try:
        amount = float(value)
    except ValueError:
        return 0
    return int(round(amount * _BYTE_UNITS[unit.lower()]))


def parse_transfer(text: Optional[str]) -> Tuple[int, int]:
    """
    解析 "3.65 MiB received, 17.21 MiB sent"

    Args:
        text: transfer 字段的值

    Returns:
        (接收字节数, 发送字节数)，缺失的一侧为0
    """
    if not text:
        return 0, 0

    received = _RECEIVED.search(text)
    sent = _SENT.search(text)
    return (
        _to_bytes(*received.groups()) if received else 0,
        _to_bytes(*sent.groups()) if sent else 0,
    )


def format_time_ago(seconds: Optional[int]) -> str:
    """把秒数格式化为 "5 min ago" 形式"""
    if seconds is None:
        return 'never'
    if seconds < 60:
        return f'{seconds} sec ago'
    if seconds < 3600:
        return f'{seconds // 60} min ago'
    if seconds < 86400:
        return f'{seconds // 3600} hr ago'
    return f'{seconds // 86400} day ago'


def parse_wg_show(output: str, interface_name: str,
                  now: Optional[float] = None) -> WireGuardStatus:
    """
    解析 wg show 输出

    逐行处理：peer: 行开启新的对端块并提交上一个块，之后的 endpoint、
    latest handshake、transfer 行归属当前块；输入结束时提交最后一个块。

    Args:
        output: wg show 的原始输出
        interface_name: 接口名称
        now: 当前时间戳（秒），用于计算握手时间点

    Returns:
        WireGuardStatus: 接口信息和对端列表（名称尚未关联）
    """
    if now is None:
        now = time.time()

    interface = WireGuardInterface(name=interface_name)
    peers: List[WireGuardPeer] = []
    current: Optional[WireGuardPeer] = None

    for line in (output or '').splitlines():
        stripped = line.strip()
        if not stripped:
            continue

        if stripped.startswith('peer:'):
            if current is not None:
                peers.append(current)
            current = WireGuardPeer(public_key=_field_value(stripped, 'peer:'))
            continue

        if stripped.startswith('listening port:'):
            port = _field_value(stripped, 'listening port:')
            interface.listen_port = int(port) if port.isdigit() else None
            continue

        if current is None:
            if stripped.startswith('public key:'):
                interface.public_key = _field_value(stripped, 'public key:') or None
            continue

        if stripped.startswith('endpoint:'):
            current.endpoint = _field_value(stripped, 'endpoint:') or None
        elif stripped.startswith('latest handshake:'):
            seconds = parse_handshake_age(_field_value(stripped, 'latest handshake:'))
            current.last_handshake_seconds = seconds
            if seconds is not None:
                current.last_handshake_epoch_seconds = int(now) - seconds
        elif stripped.startswith('transfer:'):
            received, sent = parse_transfer(_field_value(stripped, 'transfer:'))
            current.transfer_received_bytes = received
            current.transfer_sent_bytes = sent

    if current is not None:
        peers.append(current)

    return WireGuardStatus(interface=interface, peers=peers)


def _field_value(line: str, prefix: str) -> str:
    return line[len(prefix):].strip()


def parse_client_list(output: str) -> Dict[str, str]:
    """
    解析 pivpn -l 输出（或同格式的 clients.txt），建立公钥到名称的映射

    表头行、::: 提示行和格式不正确的行会被跳过。

    Args:
        output: 客户端列表文本

    Returns:
        Dict[str, str]: 公钥 -> 客户端名称
    """
    clients: Dict[str, str] = {}
    for line in (output or '').splitlines():
        if not line.strip():
            continue
        if 'Client' in line and 'Public key' in line:
            continue
        if ':::' in line:
            continue

        match = _CLIENT_LINE.match(line)
        if match:
            name, public_key = match.groups()
            clients[public_key] = name

    return clients


def parse_clients_file(content: str) -> Dict[str, str]:
    """
    解析两列格式的 clients.txt（名称 公钥 [其他字段]）

    Args:
        content: 文件内容

    Returns:
        Dict[str, str]: 公钥 -> 客户端名称
    """
    clients: Dict[str, str] = {}
    for line in (content or '').splitlines():
        parts = line.split()
        if len(parts) >= 2 and len(parts[1]) == PUBLIC_KEY_LENGTH:
            clients[parts[1]] = parts[0]
    return clients


def _base_letters(name: str) -> str:
    """去掉重音符号并折叠大小写，例如 Émile -> emile"""
    decomposed = unicodedata.normalize('NFKD', name)
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


def _sort_key(peer: WireGuardPeer):
    # 基本字母优先，locale 排序规则只区分重音不同的同名
    return (not peer.online, _base_letters(peer.name),
            locale.strxfrm(peer.name.casefold()), peer.name)


def correlate_peers(status: WireGuardStatus, client_names: Dict[str, str],
                    threshold_seconds: int = ONLINE_THRESHOLD_SECONDS) -> List[WireGuardPeer]:
    """
    关联客户端名称、计算在线状态并排序

    在线的对端排在前面，同组内按名称排序。

    Args:
        status: wg show 解析结果
        client_names: 公钥 -> 名称
        threshold_seconds: 在线判定阈值（秒）

    Returns:
        List[WireGuardPeer]: 排序后的对端列表
    """
    for peer in status.peers:
        peer.name = client_names.get(peer.public_key, UNKNOWN_PEER_NAME)
        seconds = peer.last_handshake_seconds
        peer.online = seconds is not None and seconds < threshold_seconds
        peer.last_handshake_ago = format_time_ago(seconds)

    return sorted(status.peers, key=_sort_key)


def parse(raw_status: str, raw_names: str, interface_name: str,
          now: Optional[float] = None) -> WireGuardStatus:
    """
    解析 wg show 输出和客户端列表，返回带名称、按在线状态排序的结果

    Args:
        raw_status: wg show 的原始输出
        raw_names: pivpn -l 输出或 clients.txt 内容
        interface_name: 接口名称
        now: 当前时间戳（秒）

    Returns:
        WireGuardStatus: 完整解析结果
    """
    status = parse_wg_show(raw_status, interface_name, now=now)
    names = parse_client_list(raw_names)
    status.peers = correlate_peers(status, names)
    return status
