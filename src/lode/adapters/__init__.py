"""Adapter implementations for external services."""

from lode.adapters.k8s_adapter import KubernetesAdapter
from lode.adapters.linode_adapter import LinodeAdapter

__all__ = [
    "KubernetesAdapter",
    "LinodeAdapter",
]
