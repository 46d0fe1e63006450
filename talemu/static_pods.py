"""Fake control plane static pods reported for an emulated machine."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from talemu.kubernetes_node import INPUT_VERSION_LABEL, MACHINE_ID_LABEL

NAMESPACE = "kube-system"
SCHEDULER_NAME = "default-scheduler"

API_SERVER = "kube-apiserver"
CONTROLLER_MANAGER = "kube-controller-manager"
SCHEDULER = "kube-scheduler"

# Render order of the control plane components.
COMPONENTS = (API_SERVER, CONTROLLER_MANAGER, SCHEDULER)

CPU_LIMIT = "50m"
MEMORY_LIMIT = "256Mi"

POD_CONDITIONS = (
    "PodReadyToStartContainers",
    "Initialized",
    "Ready",
    "ContainersReady",
    "PodScheduled",
)


def _render(component: str, nodename: str, image: str) -> dict[str, Any]:
    return {
        "metadata": {
            "name": f"{component}-{nodename}",
            "namespace": NAMESPACE,
            "labels": {"k8s-app": component, "tier": "control-plane"},
        },
        "spec": {
            "containers": [
                {
                    "name": component,
                    "image": image,
                    "resources": {
                        "limits": {"cpu": CPU_LIMIT, "memory": MEMORY_LIMIT},
                    },
                }
            ],
        },
        "status": {},
    }


def render_api_server(nodename: str, image: str) -> dict[str, Any]:
    """Render the API server pod."""
    return _render(API_SERVER, nodename, image)


def render_controller_manager(nodename: str, image: str) -> dict[str, Any]:
    """Render the controller manager pod."""
    return _render(CONTROLLER_MANAGER, nodename, image)


def render_scheduler(nodename: str, image: str) -> dict[str, Any]:
    """Render the scheduler pod."""
    return _render(SCHEDULER, nodename, image)


_RENDERERS = {
    API_SERVER: render_api_server,
    CONTROLLER_MANAGER: render_controller_manager,
    SCHEDULER: render_scheduler,
}


def finalize_pod(
    pod: Mapping[str, Any],
    nodename: str,
    host_ip: Any,
    machine_id: str,
    input_version: str,
) -> dict[str, Any]:
    """Return a copy of the pod bound to the node and reported as running and ready."""
    result = copy.deepcopy(dict(pod))

    metadata = result.setdefault("metadata", {})
    labels = metadata.setdefault("labels", {})
    labels[MACHINE_ID_LABEL] = machine_id
    labels[INPUT_VERSION_LABEL] = input_version

    spec = result.setdefault("spec", {})
    spec["schedulerName"] = SCHEDULER_NAME
    spec["nodeName"] = nodename
    spec["hostNetwork"] = True

    containers = spec.get("containers", [])

    status = result.setdefault("status", {})
    status["hostIP"] = str(host_ip)
    status["phase"] = "Running"
    status["conditions"] = [{"type": kind, "status": "True"} for kind in POD_CONDITIONS]
    status["containerStatuses"] = [
        {
            "name": container["name"],
            "image": container["image"],
            "started": True,
            "ready": True,
            "state": {"running": {}},
        }
        for container in containers
    ]

    return result


def render_static_pods(
    nodename: str,
    images: Mapping[str, str],
    host_ip: Any,
    machine_id: str,
    input_version: str,
) -> list[dict[str, Any]]:
    """Render all control plane pods; ``images`` maps component names to images."""
    return [
        finalize_pod(
            _RENDERERS[component](nodename, images[component]),
            nodename,
            host_ip,
            machine_id,
            input_version,
        )
        for component in COMPONENTS
    ]


def stale_pods_selector(input_version: str, machine_id: str) -> str:
    """Label selector matching the machine's pods rendered from older inputs."""
    return f"{INPUT_VERSION_LABEL}!={input_version},{MACHINE_ID_LABEL}={machine_id}"


def machine_pods_selector(machine_id: str) -> str:
    """Label selector matching all pods of the machine."""
    return f"{MACHINE_ID_LABEL}={machine_id}"