"""Cloud provider interface for managed cluster operations."""

from abc import ABC, abstractmethod

from lode.interfaces.cloud_types import ClusterInfo, NodePoolInfo


class CloudProvider(ABC):
    """Abstract interface for managed Kubernetes cluster operations.

    Implementation Note:
    Concrete implementations should hide provider-specific details
    (HTTP status codes, response envelopes, etc.) behind this interface and
    raise the LODE exception taxonomy (ProviderError, AuthError, ...).
    """

    @abstractmethod
    async def find_cluster(self, label: str) -> ClusterInfo | None:
        """Find a cluster by its label.

        Args:
            label: Cluster label

        Returns:
            ClusterInfo if a cluster with this label exists, None otherwise

        Raises:
            ProviderError: If the lookup fails
        """

    @abstractmethod
    async def create_cluster(
        self,
        label: str,
        region: str,
        k8s_version: str,
        node_type: str,
        node_count: int,
    ) -> ClusterInfo:
        """Request a new cluster with one node pool.

        Raises:
            ProviderError: If the provider rejects the request
        """

    @abstractmethod
    async def get_node_pools(self, cluster_id: int) -> list[NodePoolInfo]:
        """List node pools and their node readiness.

        Raises:
            ProviderError: If the request fails
        """

    @abstractmethod
    async def get_api_endpoints(self, cluster_id: int) -> list[str]:
        """List control-plane API endpoints (empty until published).

        Raises:
            ProviderError: If the request fails
        """

    @abstractmethod
    async def get_kubeconfig(self, cluster_id: int) -> str | None:
        """Get the base64-encoded kubeconfig, or None while it is not yet available.

        Raises:
            ProviderError: If the request fails
        """

    @abstractmethod
    async def delete_cluster(self, cluster_id: int) -> None:
        """Delete a cluster.

        Raises:
            ProviderError: If deletion fails
        """
