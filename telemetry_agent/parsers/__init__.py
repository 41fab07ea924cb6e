"""命令输出解析模块"""

from . import sockets, wireguard
from .sockets import discover, parse_listening_sockets
from .wireguard import parse_wg_show, parse_client_list, parse_clients_file, format_time_ago

__all__ = ['sockets', 'wireguard', 'discover', 'parse_listening_sockets', 'parse_wg_show',
           'parse_client_list', 'parse_clients_file', 'format_time_ago']
