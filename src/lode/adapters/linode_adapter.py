"""Linode adapter implementing CloudProvider interface."""

from typing import Any

from lode.clients.linode_client import DEFAULT_API_URL, LinodeClient
from lode.core.exceptions import LodeError, ProviderError, ProviderUnavailableError
from lode.interfaces.cloud_provider import CloudProvider
from lode.interfaces.cloud_types import ClusterInfo, NodePoolInfo
from lode.utils.logging import get_logger

logger = get_logger(__name__)

MANAGED_TAG = "managed-by:lode"


def _to_cluster_info(data: dict[str, Any]) -> ClusterInfo:
    return ClusterInfo(
        id=data["id"],
        label=data["label"],
        region=data["region"],
        k8s_version=data.get("k8s_version", ""),
        status=data.get("status"),
        tags=list(data.get("tags") or []),
    )


class LinodeAdapter(CloudProvider):
    """Adapter wrapping LinodeClient to implement CloudProvider interface.

    Errors already in the LODE taxonomy pass through untouched; anything else
    is wrapped in ProviderError.
    """

    def __init__(self, token: str, api_url: str = DEFAULT_API_URL, timeout: int = 30):
        """Initialize Linode adapter.

        Args:
            token: Linode API token
            api_url: API base URL
            timeout: Per-request timeout (seconds)
        """
        self.client = LinodeClient(token=token, api_url=api_url, timeout=timeout)
        logger.debug("linode_adapter_initialized", api_url=api_url)

    async def find_cluster(self, label: str) -> ClusterInfo | None:
        try:
            clusters = self.client.list_lke_clusters(label=label)
        except LodeError:
            raise
        except Exception as e:
            raise ProviderError(f"Failed to look up cluster {label}: {e}") from e

        if not clusters:
            return None
        if len(clusters) > 1:
            logger.warning("duplicate_cluster_labels", label=label, count=len(clusters))
        return _to_cluster_info(clusters[0])

    async def create_cluster(
        self,
        label: str,
        region: str,
        k8s_version: str,
        node_type: str,
        node_count: int,
    ) -> ClusterInfo:
        try:
            data = self.client.create_lke_cluster(
                label=label,
                region=region,
                k8s_version=k8s_version,
                node_pools=[{"type": node_type, "count": node_count}],
                tags=[MANAGED_TAG],
            )
        except LodeError:
            raise
        except Exception as e:
            raise ProviderError(f"Failed to create cluster {label}: {e}") from e

        logger.info("cluster_created", cluster_id=data.get("id"), label=label)
        return _to_cluster_info(data)

    async def get_node_pools(self, cluster_id: int) -> list[NodePoolInfo]:
        try:
            pools = self.client.list_lke_node_pools(cluster_id)
        except LodeError:
            raise
        except Exception as e:
            raise ProviderError(f"Failed to list node pools for {cluster_id}: {e}") from e

        return [
            NodePoolInfo(
                id=pool["id"],
                type=pool.get("type", ""),
                count=pool.get("count", 0),
                node_statuses=[node.get("status", "") for node in pool.get("nodes", [])],
            )
            for pool in pools
        ]

    async def get_api_endpoints(self, cluster_id: int) -> list[str]:
        try:
            return self.client.list_lke_api_endpoints(cluster_id)
        except ProviderUnavailableError:
            # Endpoints are not published until the control plane is built
            return []
        except LodeError:
            raise
        except Exception as e:
            raise ProviderError(f"Failed to list API endpoints for {cluster_id}: {e}") from e

    async def get_kubeconfig(self, cluster_id: int) -> str | None:
        try:
            return self.client.get_lke_kubeconfig(cluster_id) or None
        except ProviderUnavailableError:
            logger.debug("kubeconfig_not_ready", cluster_id=cluster_id)
            return None
        except LodeError:
            raise
        except Exception as e:
            raise ProviderError(f"Failed to get kubeconfig for {cluster_id}: {e}") from e

    async def delete_cluster(self, cluster_id: int) -> None:
        try:
            self.client.delete_lke_cluster(cluster_id)
        except LodeError:
            raise
        except Exception as e:
            raise ProviderError(f"Failed to delete cluster {cluster_id}: {e}") from e
