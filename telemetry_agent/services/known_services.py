"""已知服务表

按端口和进程名识别常见家庭服务器服务，供服务发现和配置加载时推断探测类型。
"""

from typing import Dict, Any, Optional

from ..models.telemetry import CheckType

KNOWN_SERVICES: Dict[int, Dict[str, Any]] = {
    21: {'name': 'FTP', 'icon': 'folder', 'check_type': 'tcp'},
    22: {'name': 'SSH', 'icon': 'terminal', 'check_type': 'tcp'},
    25: {'name': 'SMTP', 'icon': 'mail', 'check_type': 'tcp'},
    53: {'name': 'DNS', 'icon': 'globe', 'check_type': 'dns'},
    80: {'name': 'HTTP', 'icon': 'globe', 'check_type': 'http', 'path': '/'},
    81: {'name': 'Nginx Proxy Manager', 'icon': 'server', 'check_type': 'http', 'path': '/'},
    110: {'name': 'POP3', 'icon': 'mail', 'check_type': 'tcp'},
    111: {'name': 'RPC', 'icon': 'cpu', 'check_type': 'tcp'},
    143: {'name': 'IMAP', 'icon': 'mail', 'check_type': 'tcp'},
    443: {'name': 'HTTPS', 'icon': 'lock', 'check_type': 'http', 'path': '/'},
    500: {'name': 'IKEv2/IPSec', 'icon': 'shield', 'check_type': 'interface', 'interface': 'ipsec0'},
    631: {'name': 'CUPS', 'icon': 'printer', 'check_type': 'http', 'path': '/'},
    1194: {'name': 'OpenVPN', 'icon': 'shield', 'check_type': 'interface', 'interface': 'tun0'},
    1723: {'name': 'PPTP', 'icon': 'shield', 'check_type': 'tcp'},
    1883: {'name': 'MQTT', 'icon': 'radio', 'check_type': 'tcp'},
    2049: {'name': 'NFS', 'icon': 'hard-drive', 'check_type': 'tcp'},
    3000: {'name': 'Grafana', 'icon': 'bar-chart', 'check_type': 'http', 'path': '/api/health'},
    3001: {'name': 'Pi Dashboard', 'icon': 'activity', 'check_type': 'http', 'path': '/api/health'},
    3306: {'name': 'MySQL', 'icon': 'database', 'check_type': 'tcp'},
    4500: {'name': 'IPSec NAT-T', 'icon': 'shield', 'check_type': 'interface', 'interface': 'ipsec0'},
    5432: {'name': 'PostgreSQL', 'icon': 'database', 'check_type': 'tcp'},
    5900: {'name': 'VNC', 'icon': 'monitor', 'check_type': 'tcp'},
    5984: {'name': 'CouchDB', 'icon': 'database', 'check_type': 'http'},
    6379: {'name': 'Redis', 'icon': 'database', 'check_type': 'redis'},
    6881: {'name': 'BitTorrent', 'icon': 'download', 'check_type': 'tcp'},
    7474: {'name': 'Neo4j', 'icon': 'database', 'check_type': 'http'},
    7681: {'name': 'ttyd', 'icon': 'terminal', 'check_type': 'http', 'path': '/'},
    8080: {'name': 'HTTP Proxy', 'icon': 'globe', 'check_type': 'http', 'path': '/'},
    8086: {'name': 'InfluxDB', 'icon': 'database', 'check_type': 'http'},
    8096: {'name': 'Jellyfin', 'icon': 'film', 'check_type': 'http', 'path': '/'},
    8112: {'name': 'Deluge', 'icon': 'download', 'check_type': 'http', 'path': '/'},
    8123: {'name': 'Home Assistant', 'icon': 'home', 'check_type': 'http', 'path': '/'},
    8384: {'name': 'Syncthing', 'icon': 'refresh-cw', 'check_type': 'http', 'path': '/'},
    8443: {'name': 'HTTPS Alt', 'icon': 'lock', 'check_type': 'http', 'path': '/'},
    8686: {'name': 'Lidarr', 'icon': 'music', 'check_type': 'http', 'path': '/'},
    8787: {'name': 'Readarr', 'icon': 'book', 'check_type': 'http', 'path': '/'},
    8989: {'name': 'Sonarr', 'icon': 'tv', 'check_type': 'http', 'path': '/'},
    9000: {'name': 'Portainer', 'icon': 'box', 'check_type': 'http', 'path': '/'},
    9042: {'name': 'Cassandra', 'icon': 'database', 'check_type': 'tcp'},
    9090: {'name': 'Prometheus', 'icon': 'bar-chart', 'check_type': 'http', 'path': '/-/healthy'},
    9091: {'name': 'Transmission', 'icon': 'download', 'check_type': 'http', 'path': '/'},
    9117: {'name': 'Jackett', 'icon': 'search', 'check_type': 'http', 'path': '/'},
    9200: {'name': 'Elasticsearch', 'icon': 'database', 'check_type': 'http'},
    9696: {'name': 'Prowlarr', 'icon': 'search', 'check_type': 'http', 'path': '/'},
    10000: {'name': 'Webmin', 'icon': 'settings', 'check_type': 'http', 'path': '/'},
    11434: {'name': 'Ollama', 'icon': 'cpu', 'check_type': 'http', 'path': '/'},
    19999: {'name': 'Netdata', 'icon': 'activity', 'check_type': 'http', 'path': '/'},
    26257: {'name': 'CockroachDB', 'icon': 'database', 'check_type': 'tcp'},
    27017: {'name': 'MongoDB', 'icon': 'database', 'check_type': 'tcp'},
    28015: {'name': 'RethinkDB', 'icon': 'database', 'check_type': 'tcp'},
    32400: {'name': 'Plex', 'icon': 'play-circle', 'check_type': 'http', 'path': '/web'},
    51413: {'name': 'Transmission P2P', 'icon': 'download', 'check_type': 'tcp'},
    51820: {'name': 'WireGuard', 'icon': 'shield', 'check_type': 'interface', 'interface': 'wg0'},
    58846: {'name': 'Deluge Daemon', 'icon': 'download', 'check_type': 'tcp'},
}

KNOWN_PROCESSES: Dict[str, Dict[str, Any]] = {
    'nginx': {'name': 'Nginx', 'icon': 'server', 'check_type': 'http', 'path': '/'},
    'apache2': {'name': 'Apache', 'icon': 'server', 'check_type': 'http', 'path': '/'},
    'httpd': {'name': 'Apache', 'icon': 'server', 'check_type': 'http', 'path': '/'},
    'pihole-FTL': {'name': 'Pi-hole', 'icon': 'shield', 'check_type': 'http', 'path': '/admin/'},
    'grafana': {'name': 'Grafana', 'icon': 'bar-chart', 'check_type': 'http', 'path': '/api/health'},
    'prometheus': {'name': 'Prometheus', 'icon': 'bar-chart', 'check_type': 'http', 'path': '/-/healthy'},
    'node': {'name': 'Node.js', 'icon': 'hexagon', 'check_type': 'http', 'path': '/'},
    'java': {'name': 'Java App', 'icon': 'coffee', 'check_type': 'http', 'path': '/'},
    'python': {'name': 'Python App', 'icon': 'code', 'check_type': 'http', 'path': '/'},
    'deluged': {'name': 'Deluge', 'icon': 'download', 'check_type': 'http', 'path': '/'},
    'transmission': {'name': 'Transmission', 'icon': 'download', 'check_type': 'http', 'path': '/'},
    'jellyfin': {'name': 'Jellyfin', 'icon': 'film', 'check_type': 'http', 'path': '/'},
    'plex': {'name': 'Plex', 'icon': 'play-circle', 'check_type': 'http', 'path': '/web'},
    'homeassistant': {'name': 'Home Assistant', 'icon': 'home', 'check_type': 'http', 'path': '/'},
    'ollama': {'name': 'Ollama', 'icon': 'cpu', 'check_type': 'http', 'path': '/'},
    'redis-server': {'name': 'Redis', 'icon': 'database', 'check_type': 'redis'},
    'mariadbd': {'name': 'MariaDB', 'icon': 'database', 'check_type': 'tcp'},
    'mysqld': {'name': 'MySQL', 'icon': 'database', 'check_type': 'tcp'},
    'postgres': {'name': 'PostgreSQL', 'icon': 'database', 'check_type': 'tcp'},
    'mongod': {'name': 'MongoDB', 'icon': 'database', 'check_type': 'tcp'},
    'sshd': {'name': 'SSH', 'icon': 'terminal', 'check_type': 'tcp'},
    'unbound': {'name': 'Unbound DNS', 'icon': 'globe', 'check_type': 'dns'},
}

# UDP 只识别VPN相关端口
KNOWN_UDP_PORTS = (500, 1194, 1723, 4500, 51820)
KNOWN_UDP_SERVICES: Dict[int, Dict[str, Any]] = {port: KNOWN_SERVICES[port] for port in KNOWN_UDP_PORTS}


def infer_check_type(port: Any, explicit: Any = None) -> CheckType:
    """
    推断服务的探测类型

    显式指定且合法的类型优先，其次查已知端口表，都没有时为 tcp。

    Args:
        port: 服务端口
        explicit: 配置中显式指定的探测类型

    Returns:
        CheckType: 探测类型
    """
    check_type = CheckType.from_value(explicit)
    if check_type is not None:
        return check_type

    known = lookup_port(port)
    if known is not None:
        return CheckType(known['check_type'])

    return CheckType.TCP


def infer_icon(port: Any, explicit: Optional[str] = None) -> str:
    """推断服务图标，显式指定的非默认图标优先"""
    if explicit and explicit != 'server':
        return explicit

    known = lookup_port(port)
    if known is not None:
        return known['icon']

    return 'server'


def lookup_port(port: Any) -> Optional[Dict[str, Any]]:
    """按端口查已知服务表"""
    try:
        return KNOWN_SERVICES.get(int(port))
    except (TypeError, ValueError):
        return None
