"""Random node identities encoded in base62."""

from __future__ import annotations

import secrets

DEFAULT_NODE_IDENTITY_SIZE = 32

ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
_BASE = len(ALPHABET)


def _encoded_length(size: int) -> int:
    length, capacity, limit = 0, 1, 256**size
    while capacity < limit:
        capacity *= _BASE
        length += 1
    return length


def base62_encode(data: bytes) -> str:
    """Encode bytes as a fixed width base62 string.

    The width depends only on the input length, so leading zero bytes are
    kept and equal length inputs keep their byte order.
    """
    value = int.from_bytes(data, "big")
    digits = []
    for _ in range(_encoded_length(len(data))):
        value, remainder = divmod(value, _BASE)
        digits.append(ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_node_id() -> str:
    """Return a new random node identity."""
    return base62_encode(secrets.token_bytes(DEFAULT_NODE_IDENTITY_SIZE))