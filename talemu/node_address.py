"""Generation of fake node addresses inside a per-machine IPv6 prefix."""

from __future__ import annotations

import hashlib
import ipaddress
import secrets
from typing import Union

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

_V4_MAPPED_PREFIX = bytes(10) + b"\xff\xff"


def _split_prefix(prefix) -> tuple[ipaddress.IPv4Address | ipaddress.IPv6Address, int]:
    if isinstance(prefix, (ipaddress.IPv4Network, ipaddress.IPv6Network)):
        return prefix.network_address, prefix.prefixlen

    interface = ipaddress.ip_interface(str(prefix))
    return interface.ip, interface.network.prefixlen


def generate_random_node_addr(prefix) -> ipaddress.IPv6Interface:
    """Return an address with random last 8 bytes and the prefix's length.

    ``prefix`` may be a network, an interface or their text form; IPv4 input
    is taken in its IPv4-mapped IPv6 form.
    """
    address, bits = _split_prefix(prefix)

    raw = address.packed
    if address.version == 4:
        raw = _V4_MAPPED_PREFIX + raw

    raw = raw[:8] + secrets.token_bytes(8)

    return ipaddress.IPv6Interface((ipaddress.IPv6Address(raw), bits))


def network_prefix(machine_id: str) -> ipaddress.IPv6Network:
    """Derive the machine's unique local /64 prefix from its ID."""
    digest = hashlib.sha256(machine_id.encode()).digest()

    data = bytearray(digest[-16:])
    data[0] = 0xDD
    data[7] = 0x04

    return ipaddress.IPv6Network((ipaddress.IPv6Address(bytes(data)), 64), strict=False)