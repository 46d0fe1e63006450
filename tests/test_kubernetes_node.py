import pytest

from talemu.kubernetes_node import (
    INPUT_VERSION_LABEL,
    MACHINE_ID_LABEL,
    NodeInputs,
    build_node,
    compute_node_labels,
    compute_node_status,
    get_image_version,
    stale_node_selector,
)


def _inputs(**overrides):
    base = dict(
        kubelet_image="ghcr.io/siderolabs/kubelet:v1.30.0",
        proxy_image="registry.k8s.io/kube-proxy:v1.30.1",
        pod_cidrs=["10.244.0.0/16", "fd00::/64"],
        hostname="node-1",
        talos_version="v1.7.0",
        architecture="amd64",
        system_uuid="uuid-1",
        addresses=["fd00::1/64"],
        memory_module_sizes=[1024, 1024],
        processor_core_counts=[2, 2],
    )
    base.update(overrides)
    return NodeInputs(**base)


def test_get_image_version():
    assert get_image_version("ghcr.io/siderolabs/kubelet:v1.30.0") == "v1.30.0"
    assert get_image_version("kubelet") == ""


def test_labels_basic():
    labels = compute_node_labels(_inputs())
    assert labels["kubernetes.io/hostname"] == "node-1"
    assert labels["kubernetes.io/arch"] == "amd64"
    assert labels["beta.kubernetes.io/arch"] == "amd64"
    assert labels["kubernetes.io/os"] == "linux"
    assert "node-role.kubernetes.io/control-plane" not in labels


def test_labels_without_hostname_and_version():
    labels = compute_node_labels(_inputs(hostname=None, talos_version=None))
    assert "kubernetes.io/hostname" not in labels
    assert "kubernetes.io/arch" not in labels
    assert labels["beta.kubernetes.io/os"] == "linux"


def test_labels_control_plane_and_extra():
    labels = compute_node_labels(
        _inputs(
            control_plane=True,
            node_labels={"kubernetes.io/os": "custom", "zone": "a"},
            kubelet_extra_args={"node-labels": " rack = r1 ,broken, tier=web"},
        )
    )
    assert labels["node-role.kubernetes.io/control-plane"] == ""
    assert labels["kubernetes.io/os"] == "custom"
    assert labels["zone"] == "a"
    assert labels["rack"] == "r1"
    assert labels["tier"] == "web"
    assert "broken" not in labels


def test_status_info_and_addresses():
    status = compute_node_status(_inputs())
    info = status["nodeInfo"]
    assert info["osImage"] == "Talos (v1.7.0)"
    assert info["kubeletVersion"] == "v1.30.0"
    assert info["kubeProxyVersion"] == "v1.30.1"
    assert info["systemUUID"] == "uuid-1"
    assert info["containerRuntimeVersion"] == "containerd://1.7.13"
    assert status["addresses"] == [
        {"type": "ExternalIP", "address": "fd00::1/64"},
        {"type": "Hostname", "address": "node-1"},
    ]
    assert status["conditions"][0]["reason"] == "KubeletReady"


def test_status_capacity():
    capacity = compute_node_status(_inputs())["capacity"]
    assert capacity["cpu"] == "4"
    assert capacity["pods"] == "110"
    assert capacity["ephemeral-storage"] == "5G"
    assert int(capacity["memory"]) == 2 * 1024 * 1024 * 1024


def test_status_empty_hardware():
    status = compute_node_status(
        _inputs(memory_module_sizes=[], processor_core_counts=[], hostname=None, addresses=[])
    )
    assert status["capacity"]["memory"] == "0"
    assert status["capacity"]["cpu"] == "0"
    assert status["addresses"] == []


def test_build_node():
    node = build_node(_inputs(), "node-1", "machine-a", "3")
    assert node["metadata"]["name"] == "node-1"
    assert node["metadata"]["labels"][MACHINE_ID_LABEL] == "machine-a"
    assert node["metadata"]["labels"][INPUT_VERSION_LABEL] == "3"
    assert node["spec"]["podCIDR"] == "10.244.0.0/16"
    assert node["spec"]["podCIDRs"] == ["10.244.0.0/16", "fd00::/64"]


def test_build_node_without_pod_cidrs():
    with pytest.raises(ValueError):
        build_node(_inputs(pod_cidrs=[]), "node-1", "machine-a", "3")


def test_stale_node_selector():
    assert (
        stale_node_selector("3", "machine-a")
        == "talemu.dev/inputversion!=3,talemu.dev/machine=machine-a"
    )