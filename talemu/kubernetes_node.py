"""Kubernetes Node objects describing an emulated machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

MACHINE_ID_LABEL = "talemu.dev/machine"
INPUT_VERSION_LABEL = "talemu.dev/inputversion"
OS_LINUX = "linux"

CONTAINER_RUNTIME_VERSION = "containerd://1.7.13"
KERNEL_VERSION = "6.1.82-talos"
EPHEMERAL_STORAGE_CAPACITY = 5_000_000_000
PODS_CAPACITY = 110

_MEBIBYTE = 1024 * 1024
_DECIMAL_SUFFIXES = ("", "k", "M", "G", "T", "P", "E")


@dataclass
class NodeInputs:
    """Machine state the Node object is computed from.

    ``None`` stands for a resource that does not exist yet.
    """

    kubelet_image: str = ""
    proxy_image: str = ""
    pod_cidrs: list[str] = field(default_factory=list)
    control_plane: bool = False
    node_labels: dict[str, str] = field(default_factory=dict)
    kubelet_extra_args: dict[str, str] = field(default_factory=dict)
    hostname: str | None = None
    talos_version: str | None = None
    architecture: str | None = None
    system_uuid: str | None = None
    addresses: list[Any] = field(default_factory=list)
    memory_module_sizes: list[int] = field(default_factory=list)
    processor_core_counts: list[int] = field(default_factory=list)


def _decimal_quantity(value: int) -> str:
    """Format an integer the way a decimal SI resource quantity is written."""
    if value == 0:
        return "0"

    suffix = 0
    while value % 1000 == 0 and suffix < len(_DECIMAL_SUFFIXES) - 1:
        value //= 1000
        suffix += 1

    return f"{value}{_DECIMAL_SUFFIXES[suffix]}"


def get_image_version(image: str) -> str:
    """Return the part of an image reference after the first colon."""
    _, _, version = image.partition(":")
    return version


def compute_node_labels(inputs: NodeInputs) -> dict[str, str]:
    """Compute the labels of the Node."""
    labels: dict[str, str] = {}

    if inputs.hostname is not None:
        labels["kubernetes.io/hostname"] = inputs.hostname

    if inputs.talos_version is not None:
        arch = inputs.architecture or ""
        labels["kubernetes.io/arch"] = arch
        labels["beta.kubernetes.io/arch"] = arch

    labels["kubernetes.io/os"] = OS_LINUX
    labels["beta.kubernetes.io/os"] = OS_LINUX

    labels.update(inputs.node_labels)

    if inputs.control_plane:
        labels["node-role.kubernetes.io/control-plane"] = ""

    kubelet_labels = inputs.kubelet_extra_args.get("node-labels")
    if kubelet_labels is not None:
        for pair in kubelet_labels.split(","):
            key, found, value = pair.partition("=")
            if found:
                labels[key.strip()] = value.strip()

    return labels


def compute_node_status(inputs: NodeInputs) -> dict[str, Any]:
    """Compute the status of the Node: conditions, system info, addresses and capacity."""
    node_info = {
        "systemUUID": inputs.system_uuid or "",
        "containerRuntimeVersion": CONTAINER_RUNTIME_VERSION,
        "kernelVersion": KERNEL_VERSION,
        "operatingSystem": OS_LINUX,
        "osImage": f"Talos ({inputs.talos_version})" if inputs.talos_version is not None else "",
        "kubeletVersion": get_image_version(inputs.kubelet_image),
        "kubeProxyVersion": get_image_version(inputs.proxy_image),
    }

    addresses = [{"type": "ExternalIP", "address": str(addr)} for addr in inputs.addresses]
    if inputs.hostname is not None:
        addresses.append({"type": "Hostname", "address": inputs.hostname})

    memory = sum(size * _MEBIBYTE for size in inputs.memory_module_sizes)
    cpu = sum(inputs.processor_core_counts)

    return {
        "conditions": [
            {
                "type": "Ready",
                "reason": "KubeletReady",
                "status": "True",
                "message": "kubelet is posting ready status",
            }
        ],
        "nodeInfo": node_info,
        "addresses": addresses,
        "capacity": {
            "memory": _decimal_quantity(memory),
            "cpu": _decimal_quantity(cpu),
            "ephemeral-storage": _decimal_quantity(EPHEMERAL_STORAGE_CAPACITY),
            "pods": _decimal_quantity(PODS_CAPACITY),
        },
    }


def build_node(
    inputs: NodeInputs, nodename: str, machine_id: str, input_version: str
) -> dict[str, Any]:
    """Build the full Node object registered for the machine."""
    if not inputs.pod_cidrs:
        raise ValueError("the cluster has no pod CIDRs")

    labels = compute_node_labels(inputs)
    labels[MACHINE_ID_LABEL] = machine_id
    labels[INPUT_VERSION_LABEL] = input_version

    return {
        "metadata": {"name": nodename, "labels": labels},
        "spec": {"podCIDR": inputs.pod_cidrs[0], "podCIDRs": list(inputs.pod_cidrs)},
        "status": compute_node_status(inputs),
    }


def stale_node_selector(input_version: str, machine_id: str) -> str:
    """Label selector matching the machine's Nodes registered from older inputs."""
    return f"{INPUT_VERSION_LABEL}!={input_version},{MACHINE_ID_LABEL}={machine_id}"