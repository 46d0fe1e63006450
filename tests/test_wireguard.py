import base64
import datetime
import ipaddress

import pytest

from talemu.wireguard import (
    DevicePeer,
    Link,
    WireguardDevice,
    WireguardPeer,
    WireguardSpec,
    decode_device,
    find_link,
    parse_key,
    resolve_endpoint,
)


def _raw(n: int) -> bytes:
    return bytes([n]) * 32


def _key(n: int) -> str:
    return base64.b64encode(_raw(n)).decode()


def _net(text: str):
    return ipaddress.ip_network(text)


def test_parse_key_round_trip():
    assert parse_key(_key(7)) == _raw(7)


def test_parse_key_zero_key():
    assert parse_key("AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA=") == bytes(32)


def test_parse_key_invalid_base64():
    with pytest.raises(ValueError, match="failed to parse base64-encoded key"):
        parse_key("not base64 !!")


def test_parse_key_wrong_size():
    with pytest.raises(ValueError, match="incorrect key size: 16"):
        parse_key(base64.b64encode(bytes(16)).decode())


def test_resolve_endpoint_ipv4():
    assert resolve_endpoint("192.0.2.1:51820") == ("192.0.2.1", 51820)


def test_resolve_endpoint_ipv6():
    assert resolve_endpoint("[2001:db8::1]:51820") == ("2001:db8::1", 51820)


@pytest.mark.parametrize("endpoint", ["192.0.2.1", "2001:db8::1:51820", "192.0.2.1:70000"])
def test_resolve_endpoint_errors(endpoint):
    with pytest.raises(ValueError):
        resolve_endpoint(endpoint)


def test_find_link():
    links = [Link(index=1, name="lo"), Link(index=2, name="eth0"), Link(index=3, name="eth0")]
    found = find_link(links, "eth0")
    assert found is links[1]
    assert find_link(links, "siderolink0") is None


def test_sort_orders_peers_and_allowed_ips():
    spec = WireguardSpec(
        peers=[
            WireguardPeer(public_key=_key(3)),
            WireguardPeer(
                public_key=_key(1),
                allowed_ips=[_net("fd00::/64"), _net("10.0.0.0/16"), _net("10.0.0.0/8")],
            ),
        ]
    )
    spec.sort()
    assert [peer.public_key for peer in spec.peers] == sorted([_key(3), _key(1)])
    assert spec.peers[0].allowed_ips == [_net("10.0.0.0/8"), _net("10.0.0.0/16"), _net("fd00::/64")]


def test_encode_identical_is_empty():
    peer = WireguardPeer(public_key=_key(1), endpoint="192.0.2.1:51820")
    spec = WireguardSpec(private_key=_key(9), listen_port=1000, peers=[peer])
    existing = WireguardSpec(private_key=_key(9), listen_port=1000, peers=[peer])
    cfg = spec.encode(existing)
    assert cfg.private_key is None
    assert cfg.listen_port is None
    assert cfg.firewall_mark is None
    assert cfg.peers == []


def test_encode_settings_diff():
    spec = WireguardSpec(private_key=_key(9), listen_port=51820, firewall_mark=5)
    cfg = spec.encode(WireguardSpec(private_key=_key(8)))
    assert cfg.private_key == _raw(9)
    assert cfg.listen_port == 51820
    assert cfg.firewall_mark == 5


def test_encode_peer_merge():
    keepalive = datetime.timedelta(seconds=25)
    existing = WireguardSpec(
        private_key=_key(9),
        peers=[
            WireguardPeer(public_key=_key(1)),
            WireguardPeer(public_key=_key(2), endpoint="192.0.2.1:51820"),
            WireguardPeer(public_key=_key(4)),
        ],
    )
    spec = WireguardSpec(
        private_key=_key(9),
        peers=[
            WireguardPeer(public_key=_key(2), endpoint="192.0.2.2:51820"),
            WireguardPeer(
                public_key=_key(3),
                preshared_key=_key(5),
                persistent_keepalive_interval=keepalive,
                allowed_ips=[_net("fd00::1/128")],
            ),
            WireguardPeer(public_key=_key(4)),
        ],
    )
    existing.sort()
    spec.sort()

    cfg = spec.encode(existing)
    by_key = {peer.public_key: peer for peer in cfg.peers}

    assert set(by_key) == {_raw(1), _raw(2), _raw(3)}
    assert by_key[_raw(1)].remove is True
    assert by_key[_raw(2)].remove is False
    assert by_key[_raw(2)].endpoint == ("192.0.2.2", 51820)
    assert by_key[_raw(2)].replace_allowed_ips is True
    assert by_key[_raw(3)].preshared_key == _raw(5)
    assert by_key[_raw(3)].persistent_keepalive_interval == keepalive
    assert by_key[_raw(3)].allowed_ips == [_net("fd00::1/128")]
    assert by_key[_raw(3)].endpoint is None


def test_encode_invalid_peer_key():
    spec = WireguardSpec(peers=[WireguardPeer(public_key="broken")])
    with pytest.raises(ValueError):
        spec.encode(WireguardSpec())


def test_decode_device_config_and_status():
    device = WireguardDevice(
        private_key=_raw(9),
        public_key=_raw(8),
        listen_port=51820,
        firewall_mark=3,
        peers=[
            DevicePeer(
                public_key=_raw(1),
                endpoint=("2001:db8::1", 51820),
                allowed_ips=[_net("fd00::/64")],
            ),
            DevicePeer(public_key=_raw(2), preshared_key=_raw(6)),
        ],
    )

    config = decode_device(device, False)
    assert config.private_key == _key(9)
    assert config.public_key == ""
    assert config.listen_port == 51820
    assert config.firewall_mark == 3
    assert config.peers[0].endpoint == "[2001:db8::1]:51820"
    assert config.peers[0].preshared_key == ""
    assert config.peers[0].allowed_ips == [_net("fd00::/64")]
    assert config.peers[1].endpoint == ""
    assert config.peers[1].preshared_key == _key(6)

    status = decode_device(device, True)
    assert status.public_key == _key(8)
    assert status.private_key == ""


def test_decode_then_encode_against_itself_is_empty():
    device = WireguardDevice(
        private_key=_raw(9),
        peers=[DevicePeer(public_key=_raw(1), endpoint=("192.0.2.1", 51820))],
    )
    spec = decode_device(device, False)
    spec.sort()
    again = decode_device(device, False)
    again.sort()
    assert spec.encode(again).peers == []
    assert spec.encode(WireguardSpec()).peers[0].endpoint == ("192.0.2.1", 51820)