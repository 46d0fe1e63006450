"""Building blocks for emulating Talos machines: secrets, kubeconfigs, node state and log forwarding."""

__version__ = "0.1.0"