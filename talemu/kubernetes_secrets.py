"""Kubeconfigs for control plane components derived from the Kubernetes root secrets."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field

from talemu.kubeconfig import (
    AdminInput,
    AdminKubeconfig,
    GenerateInput,
    PEMCertificate,
    PEMCertificateAndKey,
    generate,
    generate_admin,
)

KUBERNETES_CERTIFICATE_VALIDITY_DURATION = datetime.timedelta(days=365)
# Certificates are refreshed at half of their validity.
REFRESH_INTERVAL = KUBERNETES_CERTIFICATE_VALIDITY_DURATION / 2

CONTROLLER_MANAGER_ORGANIZATION = "system:kube-controller-manager"
SCHEDULER_ORGANIZATION = "system:kube-scheduler"
TALOS_ADMIN_CERT_COMMON_NAME = "talos:admin"
ADMIN_CERT_ORGANIZATION = "system:masters"


@dataclass
class KubernetesRoot:
    """Root Kubernetes secrets of a cluster."""

    name: str
    endpoint: str
    local_endpoint: str
    issuing_ca: PEMCertificateAndKey | None
    accepted_cas: list[PEMCertificate] = field(default_factory=list)


@dataclass
class KubernetesCerts:
    """Kubeconfigs rendered for the control plane."""

    controller_manager_kubeconfig: str = ""
    scheduler_kubeconfig: str = ""
    admin_kubeconfig: str = ""
    localhost_admin_kubeconfig: str = ""


def _component_kubeconfig(root: KubernetesRoot, organization: str) -> str:
    return generate(
        GenerateInput(
            cluster_name=root.name,
            issuing_ca=root.issuing_ca,
            accepted_cas=list(root.accepted_cas),
            certificate_lifetime=KUBERNETES_CERTIFICATE_VALIDITY_DURATION,
            common_name=organization,
            organization=organization,
            endpoint=root.local_endpoint,
            username=organization,
            context_name="default",
        )
    )


def _admin_kubeconfig(root: KubernetesRoot, endpoint: str) -> str:
    return generate_admin(
        AdminInput(
            name=root.name,
            endpoint=endpoint,
            issuing_ca=root.issuing_ca,
            accepted_cas=list(root.accepted_cas),
            # used only internally by control plane components
            admin_kubeconfig=AdminKubeconfig(
                cert_lifetime=KUBERNETES_CERTIFICATE_VALIDITY_DURATION,
                common_name=TALOS_ADMIN_CERT_COMMON_NAME,
                cert_organization=ADMIN_CERT_ORGANIZATION,
            ),
        )
    )


def build_kubernetes_secrets(root: KubernetesRoot) -> KubernetesCerts:
    """Render all control plane kubeconfigs from the root secrets."""
    certs = KubernetesCerts()

    try:
        certs.controller_manager_kubeconfig = _component_kubeconfig(
            root, CONTROLLER_MANAGER_ORGANIZATION
        )
    except ValueError as err:
        raise ValueError(f"failed to generate controller manager kubeconfig: {err}") from err

    try:
        certs.scheduler_kubeconfig = _component_kubeconfig(root, SCHEDULER_ORGANIZATION)
    except ValueError as err:
        raise ValueError(f"failed to generate scheduler kubeconfig: {err}") from err

    try:
        certs.admin_kubeconfig = _admin_kubeconfig(root, root.endpoint)
        certs.localhost_admin_kubeconfig = _admin_kubeconfig(root, root.local_endpoint)
    except ValueError as err:
        raise ValueError(f"failed to generate admin kubeconfig: {err}") from err

    return certs