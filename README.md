# talemu

A library of building blocks for emulating Talos machines. It computes the
state that a real Talos node would report (node objects, static pods, machine
stage, mounts, version) and produces the secrets and kubeconfigs such a node
would publish.

## Installation

```
pip install talemu
```

To run the test suite, install the test extra:

```
pip install "talemu[test]"
pytest
```

## Modules

- `talemu.kubeconfig`
  - `generate(params)` issues a client certificate signed by
    `params.issuing_ca` and returns the kubeconfig document as a string. The
    CA key may be RSA, ECDSA or Ed25519; the client key is of the same kind.
  - `generate_admin(config)` builds an `admin@<cluster>` kubeconfig from an
    `AdminInput`. Its issuing CA certificate is added to the accepted CAs.
  - Data classes: `PEMCertificate`, `PEMCertificateAndKey`, `GenerateInput`,
    `AdminKubeconfig`, `AdminInput`.
- `talemu.kubernetes_secrets`: `build_kubernetes_secrets(root)` renders the
  controller-manager, scheduler, admin and localhost admin kubeconfigs from a
  `KubernetesRoot` and returns them as `KubernetesCerts`.
- `talemu.root_secrets`
  - `build_os_root(...)` returns an `OSRoot`. It splits certificate SANs into
    IPs and DNS names (`split_cert_sans`), and it drops an issuing CA that has
    no key after adding its certificate to the accepted CAs.
  - `build_kubernetes_root(cluster, node_addresses)` returns a
    `KubernetesRootSpec`. It raises `LookupError` while there are no node
    addresses, and `ValueError` when the aggregator CA or every CA is missing.
  - `local_endpoint(address)` gives the API server URL on port 6443.
- `talemu.nodename`: `from_hostname(hostname)` converts a hostname into an
  RFC 1123 node name and raises `ValueError` if nothing valid remains.
- `talemu.wireguard`
  - `WireguardSpec.encode(existing)` returns the `WireguardConfig` patch that
    turns an existing spec into the desired one. It adds, replaces or removes
    peers; both specs should be sorted with `WireguardSpec.sort()` first.
  - `decode_device(device, is_status)` builds a spec from a `WireguardDevice`.
  - Also `parse_key`, `resolve_endpoint` and `find_link`.
- `talemu.logsink`
  - `LogSender` sends `LogEvent`s as JSON over `tcp://` (newline delimited) or
    `udp://` (one per datagram), connecting from the configured local address.
  - `SinkHandler` is a `logging.Handler`. It keeps records in a bounded buffer
    (1 MiB by default) until `configure_interface` is called and the sink can
    be reached.
- `talemu.node_address`: `network_prefix(machine_id)` derives a per-machine
  `/64` prefix from a SHA-256 of the ID. `generate_random_node_addr(prefix)`
  fills the last 8 bytes with random data.
- `talemu.node_identity`: `generate_node_id()` returns 32 random bytes in
  fixed-width base62 (`base62_encode`).
- `talemu.kubernetes_node`
  - `build_node(inputs, nodename, machine_id, input_version)` returns the Node
    object as a dict.
  - `compute_node_labels` and `compute_node_status` compute its parts from
    `NodeInputs`.
  - `stale_node_selector` gives the label selector for outdated registrations.
- `talemu.static_pods`: `render_static_pods(...)` returns the API server,
  controller manager and scheduler pods as dicts, marked running and ready.
  `stale_pods_selector` and `machine_pods_selector` give matching selectors.
- `talemu.machine_status`
  - `compute_machine_status(...)` returns a `MachineStatus` with a
    `MachineStage` and `UnmetCondition`s for missing or unhealthy services.
  - `select_install_disk` raises `InstallDiskMissingError` when the configured
    disk is absent.
- `talemu.mount_status`: `compute_mount_statuses(...)` lists the EPHEMERAL and
  STATE mounts of the system disk.
- `talemu.version`: `resolve_version(image_version, install_image)` returns the
  reported Talos version, always prefixed with `v`.
- `talemu.reboot`: `reboot_remaining(updated, downtime, now)` returns the time
  left in a simulated reboot, or `None` once it is over.

## Examples

```python
from talemu.nodename import from_hostname

from_hostname("My_Host.example.com.")  # "my-host.example.com"
```

```python
from talemu.version import resolve_version

resolve_version("1.8.0", None)  # "v1.8.0"
```

```python
import logging
from talemu.logsink import SinkHandler

handler = SinkHandler("tcp://[fd00::1]:4001")
logging.getLogger().addHandler(handler)

# Records are buffered until the interface is known, then delivered.
handler.configure_interface("siderolink0", "fd00::2/64")
```

## What it does not do

These are pure functions and data classes. There is no controller runtime or
resource store that runs them in a loop, and no command-line program. The
package does not talk to a Kubernetes API server: nodes and pods come back as
dicts for the caller to submit. It does not create or configure network links
or WireGuard devices: it only computes the patch to apply. Apart from the log
sink's sockets, it performs no network I/O.