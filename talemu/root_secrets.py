"""Root OS and Kubernetes secrets derived from the machine configuration."""

from __future__ import annotations

import ipaddress
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from talemu.kubeconfig import PEMCertificate, PEMCertificateAndKey

KUBERNETES_TALOS_API_SERVICE_NAME = "talos"
KUBERNETES_TALOS_API_SERVICE_NAMESPACE = "default"
API_SERVER_PORT = 6443

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


@dataclass
class OSRoot:
    """Root secrets of the Talos API."""

    issuing_ca: PEMCertificateAndKey | None = None
    accepted_cas: list[PEMCertificate] = field(default_factory=list)
    cert_san_ips: list[IPAddress] = field(default_factory=list)
    cert_san_dns_names: list[str] = field(default_factory=list)
    token: str = ""


@dataclass
class ClusterSecretsInput:
    """Cluster settings of the machine configuration."""

    name: str
    endpoint: str
    aggregator_ca: PEMCertificateAndKey | None
    issuing_ca: PEMCertificateAndKey | None
    accepted_cas: list[PEMCertificate] = field(default_factory=list)
    cert_sans: list[str] = field(default_factory=list)
    dns_domain: str = "cluster.local"
    service_cidrs: list[str] = field(default_factory=list)
    service_account: Any = None
    aescbc_encryption_secret: str = ""
    secretbox_encryption_secret: str = ""
    bootstrap_token_id: str = ""
    bootstrap_token_secret: str = ""


@dataclass
class KubernetesRootSpec:
    """Root Kubernetes secrets of the cluster."""

    name: str
    endpoint: str
    local_endpoint: str
    cert_sans: list[str]
    dns_domain: str
    api_server_ips: list[IPAddress]
    aggregator_ca: PEMCertificateAndKey
    issuing_ca: PEMCertificateAndKey | None
    accepted_cas: list[PEMCertificate]
    service_account: Any
    aescbc_encryption_secret: str
    secretbox_encryption_secret: str
    bootstrap_token_id: str
    bootstrap_token_secret: str


def _address_of(address) -> IPAddress:
    if isinstance(address, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return address
    if isinstance(address, (ipaddress.IPv4Network, ipaddress.IPv6Network)):
        return address.network_address
    return ipaddress.ip_interface(str(address)).ip


def split_cert_sans(sans: Iterable[str]) -> tuple[list[IPAddress], list[str]]:
    """Split SANs into IP addresses and DNS names, keeping their order."""
    ips: list[IPAddress] = []
    names: list[str] = []

    for san in sans:
        try:
            ips.append(ipaddress.ip_address(san))
        except ValueError:
            names.append(san)

    return ips, names


def local_endpoint(address) -> str:
    """Return the API server URL on the given node address."""
    ip = _address_of(address)
    host = f"[{ip}]" if ip.version == 6 else str(ip)
    return f"https://{host}:{API_SERVER_PORT}"


def _with_issuing_ca(
    issuing_ca: PEMCertificateAndKey | None, accepted_cas: Iterable[PEMCertificate]
) -> tuple[PEMCertificateAndKey | None, list[PEMCertificate]]:
    accepted = list(accepted_cas)

    if issuing_ca is not None:
        accepted.append(PEMCertificate(crt=issuing_ca.crt))
        # worker configs carry only the certificate of the issuing CA
        if not issuing_ca.key:
            issuing_ca = None

    return issuing_ca, accepted


def build_os_root(
    issuing_ca: PEMCertificateAndKey | None,
    accepted_cas: Iterable[PEMCertificate],
    cert_sans: Iterable[str],
    talos_api_access: bool,
    token: str,
) -> OSRoot:
    """Build the OS root secrets from the machine security settings."""
    issuing, accepted = _with_issuing_ca(issuing_ca, accepted_cas)
    ips, names = split_cert_sans(cert_sans)

    if talos_api_access:
        names += [
            KUBERNETES_TALOS_API_SERVICE_NAME,
            f"{KUBERNETES_TALOS_API_SERVICE_NAME}.{KUBERNETES_TALOS_API_SERVICE_NAMESPACE}",
        ]

    return OSRoot(
        issuing_ca=issuing,
        accepted_cas=accepted,
        cert_san_ips=ips,
        cert_san_dns_names=names,
        token=token,
    )


def _api_server_ips(service_cidrs: Sequence[str]) -> list[IPAddress]:
    ips = []
    for cidr in service_cidrs:
        try:
            network = ipaddress.ip_network(cidr, strict=False)
        except ValueError as err:
            raise ValueError(f"error building API service IPs: {err}") from err
        if network.num_addresses < 2:
            raise ValueError(f"error building API service IPs: {cidr} is too small")
        ips.append(network.network_address + 1)
    return ips


def build_kubernetes_root(
    cluster: ClusterSecretsInput, node_addresses: Sequence
) -> KubernetesRootSpec:
    """Build the Kubernetes root secrets of a control plane node.

    Raises :class:`LookupError` while the node has no addresses yet.
    """
    if not node_addresses:
        raise LookupError("no node addresses")

    endpoint = local_endpoint(node_addresses[0])
    api_server_ips = _api_server_ips(cluster.service_cidrs)

    if cluster.aggregator_ca is None:
        raise ValueError("missing cluster.aggregatorCA secret")

    issuing, accepted = _with_issuing_ca(cluster.issuing_ca, cluster.accepted_cas)

    if not accepted:
        raise ValueError("missing cluster.CA secret")

    return KubernetesRootSpec(
        name=cluster.name,
        endpoint=cluster.endpoint,
        local_endpoint=endpoint,
        cert_sans=list(cluster.cert_sans),
        dns_domain=cluster.dns_domain,
        api_server_ips=api_server_ips,
        aggregator_ca=cluster.aggregator_ca,
        issuing_ca=issuing,
        accepted_cas=accepted,
        service_account=cluster.service_account,
        aescbc_encryption_secret=cluster.aescbc_encryption_secret,
        secretbox_encryption_secret=cluster.secretbox_encryption_secret,
        bootstrap_token_id=cluster.bootstrap_token_id,
        bootstrap_token_secret=cluster.bootstrap_token_secret,
    )