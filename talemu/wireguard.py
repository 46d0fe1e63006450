"""WireGuard link specs, their decoding from device state and the config diff between them."""

from __future__ import annotations

import base64
import binascii
import datetime
import ipaddress
import socket
from dataclasses import dataclass, field
from typing import Iterable, Union

KEY_SIZE = 32

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]
UDPAddr = tuple[str, int]

_ZERO_KEY = bytes(KEY_SIZE)


def parse_key(text: str) -> bytes:
    """Parse a base64 encoded 32 byte WireGuard key."""
    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as err:
        raise ValueError(f"wgtypes: failed to parse base64-encoded key: {err}") from err

    if len(raw) != KEY_SIZE:
        raise ValueError(f"wgtypes: incorrect key size: {len(raw)}")

    return raw


def _key_string(key: bytes) -> str:
    return base64.b64encode(key).decode("ascii")


def _split_host_port(endpoint: str) -> tuple[str, str]:
    if endpoint.startswith("["):
        end = endpoint.find("]")
        if end == -1:
            raise ValueError(f"address {endpoint}: missing ']' in address")
        host, rest = endpoint[1:end], endpoint[end + 1 :]
        if not rest.startswith(":"):
            raise ValueError(f"address {endpoint}: missing port in address")
        port = rest[1:]
        if ":" in port:
            raise ValueError(f"address {endpoint}: too many colons in address")
        return host, port

    host, sep, port = endpoint.rpartition(":")
    if not sep:
        raise ValueError(f"address {endpoint}: missing port in address")
    if ":" in host:
        raise ValueError(f"address {endpoint}: too many colons in address")
    return host, port


def _lookup_port(port: str) -> int:
    if port.isdigit():
        number = int(port)
        if number > 65535:
            raise ValueError(f"address {port}: invalid port")
        return number

    try:
        return socket.getservbyname(port, "udp")
    except OSError as err:
        raise ValueError(f"lookup udp/{port}: unknown port") from err


def _lookup_host(host: str) -> str:
    if not host:
        return ""

    try:
        return str(ipaddress.ip_address(host))
    except ValueError:
        pass

    try:
        infos = socket.getaddrinfo(host, None, type=socket.SOCK_DGRAM)
    except socket.gaierror as err:
        raise ValueError(f"lookup {host}: {err}") from err

    addresses = [info[4][0] for info in infos]
    if not addresses:
        raise ValueError(f"lookup {host}: no such host")

    return next((addr for addr in addresses if ":" not in addr), addresses[0])


def resolve_endpoint(endpoint: str) -> UDPAddr:
    """Resolve a ``host:port`` UDP endpoint into an ``(ip, port)`` pair."""
    host, port = _split_host_port(endpoint)
    return _lookup_host(host), _lookup_port(port)


def _format_endpoint(addr: UDPAddr) -> str:
    host, port = addr
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def _network_sort_key(network: IPNetwork) -> tuple[int, int, int]:
    return network.version, int(network.network_address), network.prefixlen


@dataclass
class WireguardPeer:
    """A peer as described in a link spec."""

    public_key: str
    endpoint: str = ""
    preshared_key: str = ""
    persistent_keepalive_interval: datetime.timedelta = datetime.timedelta(0)
    allowed_ips: list[IPNetwork] = field(default_factory=list)


@dataclass
class WireguardSpec:
    """WireGuard settings of a link."""

    private_key: str = ""
    public_key: str = ""
    listen_port: int = 0
    firewall_mark: int = 0
    peers: list[WireguardPeer] = field(default_factory=list)

    def sort(self) -> None:
        """Order peers by public key and each peer's allowed IPs by address."""
        self.peers.sort(key=lambda peer: peer.public_key)
        for peer in self.peers:
            peer.allowed_ips.sort(key=_network_sort_key)

    def encode(self, existing: WireguardSpec) -> WireguardConfig:
        """Build the config patch that turns ``existing`` into this spec.

        Both specs are expected to be sorted.
        """
        cfg = WireguardConfig()

        if existing.private_key != self.private_key:
            cfg.private_key = parse_key(self.private_key)

        if existing.listen_port != self.listen_port:
            cfg.listen_port = self.listen_port

        if existing.firewall_mark != self.firewall_mark:
            cfg.firewall_mark = self.firewall_mark

        old_peers = iter(existing.peers)
        new_peers = iter(self.peers)
        left = next(old_peers, None)
        right = next(new_peers, None)

        while left is not None or right is not None:
            if left is None or (right is not None and left.public_key > right.public_key):
                cfg.peers.append(_add_peer(right))
                right = next(new_peers, None)
            elif right is None or left.public_key < right.public_key:
                cfg.peers.append(PeerConfig(public_key=parse_key(left.public_key), remove=True))
                left = next(old_peers, None)
            else:
                if left != right:
                    cfg.peers.append(_add_peer(right))
                left = next(old_peers, None)
                right = next(new_peers, None)

        return cfg


def _add_peer(peer: WireguardPeer) -> PeerConfig:
    public_key = parse_key(peer.public_key)
    preshared_key = parse_key(peer.preshared_key) if peer.preshared_key else None
    endpoint = resolve_endpoint(peer.endpoint) if peer.endpoint else None

    return PeerConfig(
        public_key=public_key,
        endpoint=endpoint,
        preshared_key=preshared_key,
        persistent_keepalive_interval=peer.persistent_keepalive_interval,
        replace_allowed_ips=True,
        allowed_ips=list(peer.allowed_ips),
    )


@dataclass
class DevicePeer:
    """A peer as reported by a WireGuard device."""

    public_key: bytes
    endpoint: UDPAddr | None = None
    preshared_key: bytes = _ZERO_KEY
    persistent_keepalive_interval: datetime.timedelta = datetime.timedelta(0)
    allowed_ips: list[IPNetwork] = field(default_factory=list)


@dataclass
class WireguardDevice:
    """State of a WireGuard device."""

    private_key: bytes = _ZERO_KEY
    public_key: bytes = _ZERO_KEY
    listen_port: int = 0
    firewall_mark: int = 0
    peers: list[DevicePeer] = field(default_factory=list)


@dataclass
class PeerConfig:
    """Change to a single peer of a WireGuard device."""

    public_key: bytes
    remove: bool = False
    endpoint: UDPAddr | None = None
    preshared_key: bytes | None = None
    persistent_keepalive_interval: datetime.timedelta | None = None
    replace_allowed_ips: bool = False
    allowed_ips: list[IPNetwork] = field(default_factory=list)


@dataclass
class WireguardConfig:
    """Change to a WireGuard device; ``None`` fields are left untouched."""

    private_key: bytes | None = None
    listen_port: int | None = None
    firewall_mark: int | None = None
    peers: list[PeerConfig] = field(default_factory=list)


@dataclass
class Link:
    """A network link as listed by the kernel."""

    index: int
    name: str
    type: int = 0
    flags: int = 0
    mtu: int = 0
    kind: str = ""


def find_link(links: Iterable[Link], name: str) -> Link | None:
    """Return the first link with the given name, or ``None``."""
    return next((link for link in links if link.name == name), None)


def _decode_peer(peer: DevicePeer) -> WireguardPeer:
    return WireguardPeer(
        public_key=_key_string(peer.public_key),
        endpoint=_format_endpoint(peer.endpoint) if peer.endpoint is not None else "",
        preshared_key=_key_string(peer.preshared_key) if peer.preshared_key != _ZERO_KEY else "",
        persistent_keepalive_interval=peer.persistent_keepalive_interval,
        allowed_ips=list(peer.allowed_ips),
    )


def decode_device(device: WireguardDevice, is_status: bool) -> WireguardSpec:
    """Build a spec from device state.

    A status spec carries the public key, a configuration spec the private key.
    """
    spec = WireguardSpec(
        listen_port=device.listen_port,
        firewall_mark=device.firewall_mark,
        peers=[_decode_peer(peer) for peer in device.peers],
    )

    if is_status:
        spec.public_key = _key_string(device.public_key)
    else:
        spec.private_key = _key_string(device.private_key)

    return spec