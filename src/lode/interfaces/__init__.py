"""Interface definitions for provider black boxes."""

from lode.interfaces.cloud_provider import CloudProvider
from lode.interfaces.cloud_types import ClusterInfo, NodePoolInfo
from lode.interfaces.kubernetes_provider import (
    DeploymentInfo,
    KubernetesProvider,
    ServiceInfo,
)

__all__ = [
    "CloudProvider",
    "ClusterInfo",
    "NodePoolInfo",
    "KubernetesProvider",
    "DeploymentInfo",
    "ServiceInfo",
]
