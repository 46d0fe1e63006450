"""Resolution of the Talos version a machine reports."""

from __future__ import annotations

DEFAULT_TALOS_VERSION = "1.9.1"
ARCHITECTURE = "amd64"


def resolve_version(image_version: str | None, install_image: str | None) -> str:
    """Return the reported Talos version.

    An upgrade image version wins over the version tag of the install image;
    without either, the default version is used. The result always starts
    with ``v``.
    """
    version = ""

    if image_version is not None:
        version = image_version
    elif install_image is not None:
        _, found, version = install_image.partition(":")
        if not found:
            raise ValueError("failed to parse schematic id from the install image")

    if not version:
        version = "v" + DEFAULT_TALOS_VERSION

    if not version.startswith("v"):
        version = "v" + version

    return version