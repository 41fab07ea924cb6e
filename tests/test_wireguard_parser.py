"""测试WireGuard状态解析"""

import pytest

from telemetry_agent.parsers.wireguard import (
    parse, parse_wg_show, parse_handshake_age, parse_transfer,
    parse_client_list, parse_clients_file, format_time_ago, ONLINE_THRESHOLD_SECONDS
)

KEY_ALICE = 'aAbBcCdDeEfFgGhHiIjJkKlLmMnNoOpPqQrRsStTuU0='
KEY_BOB = 'bBcCdDeEfFgGhHiIjJkKlLmMnNoOpPqQrRsStTuUvV1='
KEY_CAROL = 'cCdDeEfFgGhHiIjJkKlLmMnNoOpPqQrRsStTuUvVwW2='
KEY_SERVER = 'sSeErRvVeErRkKeEyYsSeErRvVeErRkKeEyY1234560='

WG_SHOW_OUTPUT = f"""interface: wg0
  public key: {KEY_SERVER}
  private key: (hidden)
  listening port: 51820

peer: {KEY_BOB}
  preshared key: (hidden)
  endpoint: 203.0.113.7:51820
  allowed ips: 10.6.0.3/32
  latest handshake: 1 minute, 12 seconds ago
  transfer: 3.65 MiB received, 17.21 MiB sent

peer: {KEY_ALICE}
  preshared key: (hidden)
  allowed ips: 10.6.0.2/32
"""

PIVPN_LIST_OUTPUT = f"""::: Clients Summary :::
Client           Public key                                       Creation date
alice            {KEY_ALICE}     12 Jan 2024, 10:00, CET
bob              {KEY_BOB}     13 Jan 2024, 11:00, CET
::: Disabled clients :::
"""

NOW = 1_700_000_000


class TestHandshakeAge:
    """测试握手时间解析"""

    def test_minutes_and_seconds(self):
        """测试分钟和秒组合"""
        assert parse_handshake_age('3 minutes, 20 seconds ago') == 200

    def test_single_hour(self):
        """测试单个小时"""
        assert parse_handshake_age('1 hour ago') == 3600

    def test_days_hours(self):
        """测试天和小时组合"""
        assert parse_handshake_age('2 days, 1 hour, 5 seconds ago') == 2 * 86400 + 3600 + 5

    def test_case_insensitive(self):
        """测试大小写不敏感"""
        assert parse_handshake_age('5 Seconds ago') == 5

    @pytest.mark.parametrize('text', ['', None, 'never', '(none)'])
    def test_no_time_phrase(self, text):
        """测试没有时间片段时返回None"""
        assert parse_handshake_age(text) is None


class TestTransfer:
    """测试流量解析"""

    def test_mib_values(self):
        """测试MiB单位（1024进制）"""
        received, sent = parse_transfer('3.65 MiB received, 17.21 MiB sent')
        assert received == 3827302
        assert sent == 18045993

    def test_mixed_units(self):
        """测试混合单位"""
        received, sent = parse_transfer('512 B received, 1.50 GiB sent')
        assert received == 512
        assert sent == int(round(1.5 * 1024 ** 3))

    def test_kib(self):
        """测试KiB单位"""
        assert parse_transfer('2 KiB received, 1 KiB sent') == (2048, 1024)

    def test_missing_side(self):
        """测试缺少一侧"""
        assert parse_transfer('10 KiB received') == (10240, 0)

    def test_empty(self):
        """测试空输入"""
        assert parse_transfer('') == (0, 0)
        assert parse_transfer(None) == (0, 0)


class TestFormatTimeAgo:
    """测试相对时间格式化"""

    @pytest.mark.parametrize('seconds,expected', [
        (None, 'never'),
        (0, '0 sec ago'),
        (59, '59 sec ago'),
        (72, '1 min ago'),
        (3600, '1 hr ago'),
        (86399, '23 hr ago'),
        (172800, '2 day ago'),
    ])
    def test_format(self, seconds, expected):
        """测试各个区间"""
        assert format_time_ago(seconds) == expected


class TestParseWgShow:
    """测试wg show输出解析"""

    def test_two_peers_with_own_fields(self):
        """测试两个peer块各自只包含自己的字段"""
        status = parse_wg_show(WG_SHOW_OUTPUT, 'wg0', now=NOW)

        assert len(status.peers) == 2
        bob, alice = status.peers

        assert bob.public_key == KEY_BOB
        assert bob.endpoint == '203.0.113.7:51820'
        assert bob.last_handshake_seconds == 72
        assert bob.last_handshake_epoch_seconds == NOW - 72
        assert bob.transfer_received_bytes == 3827302
        assert bob.transfer_sent_bytes == 18045993

        assert alice.public_key == KEY_ALICE
        assert alice.endpoint is None
        assert alice.last_handshake_seconds is None
        assert alice.last_handshake_epoch_seconds is None
        assert alice.transfer_received_bytes == 0
        assert alice.transfer_sent_bytes == 0

    def test_interface_fields(self):
        """测试接口级字段"""
        status = parse_wg_show(WG_SHOW_OUTPUT, 'wg0', now=NOW)

        assert status.interface.name == 'wg0'
        assert status.interface.public_key == KEY_SERVER
        assert status.interface.listen_port == 51820

    def test_public_key_after_peer_not_interface(self):
        """测试peer块之后的public key不会覆盖接口公钥"""
        output = f"peer: {KEY_ALICE}\n  public key: {KEY_BOB}\n"
        status = parse_wg_show(output, 'wg0', now=NOW)

        assert status.interface.public_key is None
        assert len(status.peers) == 1

    def test_listening_port_after_peer(self):
        """测试listening port出现在peer块之后也归属接口"""
        output = f"peer: {KEY_ALICE}\n  latest handshake: 5 seconds ago\n  listening port: 51821\n"
        status = parse_wg_show(output, 'wg0', now=NOW)

        assert status.interface.listen_port == 51821
        assert status.peers[0].last_handshake_seconds == 5

    def test_empty_output(self):
        """测试空输出"""
        status = parse_wg_show('', 'wg0', now=NOW)
        assert status.peers == []
        assert status.interface.listen_port is None

    def test_malformed_lines_ignored(self):
        """测试格式错误的行被忽略"""
        output = f"garbage line\npeer: {KEY_ALICE}\n  latest handshake: soon\n  transfer: lots\n"
        status = parse_wg_show(output, 'wg0', now=NOW)

        assert len(status.peers) == 1
        assert status.peers[0].last_handshake_seconds is None
        assert status.peers[0].transfer_received_bytes == 0


class TestClientList:
    """测试客户端列表解析"""

    def test_pivpn_list(self):
        """测试pivpn -l输出，跳过表头和:::行"""
        clients = parse_client_list(PIVPN_LIST_OUTPUT)
        assert clients == {KEY_ALICE: 'alice', KEY_BOB: 'bob'}

    def test_short_key_rejected(self):
        """测试长度不足的公钥被忽略"""
        assert parse_client_list('carol shortkey==\n') == {}

    def test_clients_file(self):
        """测试clients.txt格式"""
        content = f"alice {KEY_ALICE} 1700000000\nbroken\nbob {KEY_BOB}\n"
        assert parse_clients_file(content) == {KEY_ALICE: 'alice', KEY_BOB: 'bob'}

    def test_clients_file_wrong_key_length(self):
        """测试clients.txt中长度不对的公钥被忽略"""
        assert parse_clients_file('alice abc\n') == {}


class TestParse:
    """测试完整解析流程"""

    def test_names_online_and_sorting(self):
        """测试名称关联、在线判定和排序"""
        status = parse(WG_SHOW_OUTPUT, PIVPN_LIST_OUTPUT, 'wg0', now=NOW)

        bob, alice = status.peers
        assert bob.name == 'bob'
        assert bob.online is True
        assert bob.last_handshake_ago == '1 min ago'

        assert alice.name == 'alice'
        assert alice.online is False
        assert alice.last_handshake_ago == 'never'

    def test_unknown_peer_name(self):
        """测试没有名称的对端"""
        status = parse(WG_SHOW_OUTPUT, '', 'wg0', now=NOW)
        assert {peer.name for peer in status.peers} == {'unknown'}

    def test_online_threshold(self):
        """测试在线阈值为180秒（不含）"""
        output = (f"peer: {KEY_ALICE}\n  latest handshake: 2 minutes, 59 seconds ago\n"
                  f"peer: {KEY_BOB}\n  latest handshake: 3 minutes ago\n")
        status = parse(output, PIVPN_LIST_OUTPUT, 'wg0', now=NOW)

        peers = {peer.name: peer for peer in status.peers}
        assert ONLINE_THRESHOLD_SECONDS == 180
        assert peers['alice'].online is True
        assert peers['bob'].online is False

    def test_sort_online_first_then_name(self):
        """测试在线优先，同组按名称排序"""
        output = (f"peer: {KEY_CAROL}\n  latest handshake: 10 seconds ago\n"
                  f"peer: {KEY_BOB}\n  latest handshake: 1 day ago\n"
                  f"peer: {KEY_ALICE}\n  latest handshake: 20 seconds ago\n")
        names = f"Carol {KEY_CAROL}\nbob {KEY_BOB}\nalice {KEY_ALICE}\n"

        status = parse(output, names, 'wg0', now=NOW)

        assert [peer.name for peer in status.peers] == ['alice', 'Carol', 'bob']
        assert [peer.online for peer in status.peers] == [True, True, False]

    def test_sort_accented_names(self):
        """测试带重音的名称按基本字母排序"""
        output = (f"peer: {KEY_ALICE}\n  latest handshake: 10 seconds ago\n"
                  f"peer: {KEY_BOB}\n  latest handshake: 10 seconds ago\n"
                  f"peer: {KEY_CAROL}\n  latest handshake: 10 seconds ago\n")
        names = f"Zoe {KEY_ALICE}\nÉmile {KEY_BOB}\nbob {KEY_CAROL}\n"

        status = parse(output, names, 'wg0', now=NOW)

        assert [peer.name for peer in status.peers] == ['bob', 'Émile', 'Zoe']

    def test_peer_to_dict(self):
        """测试对端转换为字典"""
        status = parse(WG_SHOW_OUTPUT, PIVPN_LIST_OUTPUT, 'wg0', now=NOW)
        data = status.peers[0].to_dict()

        assert data['name'] == 'bob'
        assert data['publicKey'] == KEY_BOB
        assert data['lastHandshake'] == NOW - 72
        assert data['transfer'] == {'received': 3827302, 'sent': 18045993}
