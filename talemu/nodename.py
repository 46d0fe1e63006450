"""Conversion of hostnames into Kubernetes Node names."""

from __future__ import annotations


def _normalize(char: str) -> str:
    if "a" <= char <= "z" or "0" <= char <= "9":
        return char
    if "A" <= char <= "Z":
        return char.lower()
    if char in ("-", "_"):
        return "-"
    if char == ".":
        return "."
    return ""


def from_hostname(hostname: str) -> str:
    """Convert a hostname to an RFC 1123 compliant Kubernetes Node name.

    The allowed format is ``[a-z0-9]([-a-z0-9]*[a-z0-9])?``: uppercase letters
    are lowered, underscores become dashes, anything else is dropped, and
    leading or trailing dashes and dots are removed.
    """
    nodename = "".join(_normalize(char) for char in hostname).strip("-.")

    if not nodename:
        raise ValueError(
            f'could not convert hostname "{hostname}" to a valid Kubernetes Node name'
        )

    return nodename