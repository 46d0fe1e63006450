"""Fake mount statuses of the system partitions of an installed machine."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from talemu.machine_status import Disk

EPHEMERAL_PARTITION_LABEL = "EPHEMERAL"
STATE_PARTITION_LABEL = "STATE"
FILESYSTEM_TYPE = "xfs"

# label, partition index, mount target
_PARTITIONS = (
    (EPHEMERAL_PARTITION_LABEL, 6, "/var"),
    (STATE_PARTITION_LABEL, 5, "/system/state"),
)


@dataclass(frozen=True)
class MountStatus:
    """A mounted system partition."""

    label: str
    source: str
    target: str
    filesystem_type: str = FILESYSTEM_TYPE
    encrypted: bool = False


def compute_mount_statuses(
    configured: bool, disks: Iterable[Disk], encrypted_labels: Iterable[str] = ()
) -> list[MountStatus]:
    """Return the mounts of the system disk; none until configured and installed."""
    if not configured:
        return []

    system_disk = next((disk for disk in disks if disk.system_disk), None)
    if system_disk is None:
        return []

    encrypted = set(encrypted_labels)

    return [
        MountStatus(
            label=label,
            source=f"{system_disk.device_name}{index}",
            target=target,
            encrypted=label in encrypted,
        )
        for label, index, target in _PARTITIONS
    ]