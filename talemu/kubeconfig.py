"""Kubeconfig generation backed by freshly issued client certificates."""

from __future__ import annotations

import base64
import datetime
from dataclasses import dataclass, field

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

ALLOWED_TIME_SKEW = datetime.timedelta(seconds=10)

_RSA_KEY_SIZE = 4096
_ED25519_PEM_LABEL = b"ED25519 PRIVATE KEY"


@dataclass(frozen=True)
class PEMCertificate:
    """A PEM encoded certificate."""

    crt: bytes


@dataclass(frozen=True)
class PEMCertificateAndKey:
    """A PEM encoded certificate together with its PEM encoded private key."""

    crt: bytes
    key: bytes = b""


@dataclass
class GenerateInput:
    """Parameters for :func:`generate`."""

    cluster_name: str
    issuing_ca: PEMCertificateAndKey | None
    accepted_cas: list[PEMCertificate]
    certificate_lifetime: datetime.timedelta
    common_name: str
    organization: str
    endpoint: str
    username: str
    context_name: str


@dataclass(frozen=True)
class AdminKubeconfig:
    """Settings of the admin client certificate."""

    cert_lifetime: datetime.timedelta
    common_name: str
    cert_organization: str


@dataclass
class AdminInput:
    """Cluster settings needed to build an admin kubeconfig."""

    name: str
    endpoint: str
    issuing_ca: PEMCertificateAndKey | None
    admin_kubeconfig: AdminKubeconfig
    accepted_cas: list[PEMCertificate] = field(default_factory=list)


def _b64(text: str) -> str:
    return base64.b64encode(text.encode()).decode("ascii")


def _load_ca(issuing_ca: PEMCertificateAndKey | None):
    if issuing_ca is None:
        raise ValueError("error getting Kubernetes CA: issuing CA is missing")

    key_pem = issuing_ca.key.replace(_ED25519_PEM_LABEL, b"PRIVATE KEY")

    try:
        cert = x509.load_pem_x509_certificate(issuing_ca.crt)
        key = serialization.load_pem_private_key(key_pem, password=None)
    except (ValueError, TypeError) as err:
        raise ValueError(f"error getting Kubernetes CA: {err}") from err

    return cert, key


def _new_client_key(ca_public_key):
    if isinstance(ca_public_key, rsa.RSAPublicKey):
        return rsa.generate_private_key(public_exponent=65537, key_size=_RSA_KEY_SIZE)
    if isinstance(ca_public_key, ec.EllipticCurvePublicKey):
        return ec.generate_private_key(ec.SECP256R1())
    if isinstance(ca_public_key, ed25519.Ed25519PublicKey):
        return ed25519.Ed25519PrivateKey.generate()
    raise ValueError(
        "error generating Kubernetes client certificate: unsupported CA key type"
    )


def _encode_key(key) -> bytes:
    if isinstance(key, ed25519.Ed25519PrivateKey):
        key_format = serialization.PrivateFormat.PKCS8
    else:
        key_format = serialization.PrivateFormat.TraditionalOpenSSL
    return key.private_bytes(
        serialization.Encoding.PEM, key_format, serialization.NoEncryption()
    )


def _issue_client_cert(params: GenerateInput, ca_cert, ca_key) -> tuple[bytes, bytes]:
    key = _new_client_key(ca_cert.public_key())
    now = datetime.datetime.now(datetime.timezone.utc)

    builder = (
        x509.CertificateBuilder()
        .subject_name(
            x509.Name(
                [
                    x509.NameAttribute(NameOID.COMMON_NAME, params.common_name),
                    x509.NameAttribute(NameOID.ORGANIZATION_NAME, params.organization),
                ]
            )
        )
        .issuer_name(ca_cert.subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - ALLOWED_TIME_SKEW)
        .not_valid_after(now + params.certificate_lifetime)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=True,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CLIENT_AUTH]), critical=False
        )
    )

    algorithm = None if isinstance(ca_key, ed25519.Ed25519PrivateKey) else hashes.SHA256()

    try:
        cert = builder.sign(ca_key, algorithm)
    except (ValueError, TypeError) as err:
        raise ValueError(f"error generating Kubernetes client certificate: {err}") from err

    return cert.public_bytes(serialization.Encoding.PEM), _encode_key(key)


def generate(params: GenerateInput) -> str:
    """Issue a client certificate and return the kubeconfig document."""
    ca_cert, ca_key = _load_ca(params.issuing_ca)
    client_cert, client_key = _issue_client_cert(params, ca_cert, ca_key)
    server_cas = b"".join(ca.crt for ca in params.accepted_cas).decode()

    cluster = params.cluster_name
    user = f"{params.username}@{cluster}"
    context = f"{params.context_name}@{cluster}"

    return (
        "apiVersion: v1\n"
        "kind: Config\n"
        "clusters:\n"
        f"- name: {cluster}\n"
        "  cluster:\n"
        f"    server: {params.endpoint}\n"
        f"    certificate-authority-data: {_b64(server_cas)}\n"
        "users:\n"
        f"- name: {user}\n"
        "  user:\n"
        f"    client-certificate-data: {_b64(client_cert.decode())}\n"
        f"    client-key-data: {_b64(client_key.decode())}\n"
        "contexts:\n"
        "- context:\n"
        f"    cluster: {cluster}\n"
        "    namespace: default\n"
        f"    user: {user}\n"
        f"  name: {context}\n"
        f"current-context: {context}\n"
    )


def generate_admin(config: AdminInput) -> str:
    """Return the admin kubeconfig for a cluster."""
    accepted_cas = list(config.accepted_cas)
    if config.issuing_ca is not None:
        accepted_cas.append(PEMCertificate(crt=config.issuing_ca.crt))

    admin = config.admin_kubeconfig

    return generate(
        GenerateInput(
            cluster_name=config.name,
            issuing_ca=config.issuing_ca,
            accepted_cas=accepted_cas,
            certificate_lifetime=admin.cert_lifetime,
            common_name=admin.common_name,
            organization=admin.cert_organization,
            endpoint=config.endpoint,
            username="admin",
            context_name="admin",
        )
    )