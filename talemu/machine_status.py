"""Machine stage and readiness computed from the state of the emulated machine."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

APID_SERVICE = "apid"
ETCD_SERVICE = "etcd"
KUBELET_SERVICE = "kubelet"

VERSION_RESOURCE = "talos/version"

RESOURCE_NOT_READY = "resourceNotReady"
SERVICE_NOT_READY = "serviceNotReady"


class MachineStage(enum.IntEnum):
    """Stage of a machine as reported in its status."""

    UNKNOWN = 0
    BOOTING = 1
    INSTALLING = 2
    MAINTENANCE = 3
    RUNNING = 4
    REBOOTING = 5
    SHUTTING_DOWN = 6
    RESETTING = 7
    UPGRADING = 8


@dataclass(frozen=True)
class UnmetCondition:
    """A reason why the machine is not ready."""

    name: str
    reason: str


@dataclass(frozen=True)
class ServiceState:
    """Observed state of a service."""

    running: bool = False
    healthy: bool = False


@dataclass
class Disk:
    """A disk of the machine."""

    device_name: str
    system_disk: bool = False


@dataclass
class MachineStatus:
    """Stage and readiness of a machine."""

    stage: MachineStage
    ready: bool
    unmet_conditions: list[UnmetCondition] = field(default_factory=list)


class InstallDiskMissingError(LookupError):
    """The configured install disk does not exist on the machine."""

    def __init__(self, install_disk: str):
        super().__init__(f"the install disk {install_disk} doesn't exist")
        self.install_disk = install_disk


def required_services(control_plane: bool) -> list[str]:
    """Services that must run for the machine to be ready."""
    services = [APID_SERVICE]
    if control_plane:
        services += [ETCD_SERVICE, KUBELET_SERVICE]
    return services


def check_services_ready(
    services: Mapping[str, ServiceState], names: Iterable[str]
) -> list[UnmetCondition]:
    """Return a condition for each named service that is missing, unhealthy or stopped."""
    conditions = []

    for name in names:
        service = services.get(name)
        if service is None:
            reason = f'service "{name}" is not started'
        elif not service.healthy:
            reason = f'service "{name}" is not healthy'
        elif not service.running:
            reason = f'service "{name}" is not running'
        else:
            continue
        conditions.append(UnmetCondition(SERVICE_NOT_READY, reason))

    return conditions


def select_install_disk(disks: Iterable[Disk], install_disk: str) -> Disk | None:
    """Return the disk to install onto, or ``None`` if a system disk already exists."""
    disks = list(disks)

    if any(disk.system_disk for disk in disks):
        return None

    selected = None
    if install_disk:
        for disk in disks:
            if disk.device_name == install_disk:
                selected = disk

    if selected is None:
        raise InstallDiskMissingError(install_disk)

    return selected


def compute_machine_status(
    configured: bool,
    version_present: bool,
    rebooting: bool,
    control_plane: bool,
    services: Mapping[str, ServiceState],
) -> MachineStatus:
    """Compute the machine status from its configuration and resources."""
    if not configured:
        return MachineStatus(stage=MachineStage.MAINTENANCE, ready=True)

    stage = MachineStage.RUNNING
    unmet: list[UnmetCondition] = []

    if not version_present:
        stage = MachineStage.BOOTING
        unmet.append(
            UnmetCondition(RESOURCE_NOT_READY, f"{VERSION_RESOURCE} doesn't exist yet")
        )

    if rebooting:
        stage = MachineStage.REBOOTING

    unmet.extend(check_services_ready(services, required_services(control_plane)))

    return MachineStatus(stage=stage, ready=not unmet, unmet_conditions=unmet)