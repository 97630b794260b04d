"""Managed cluster provisioning with attach-by-label idempotence."""

from pydantic import SecretStr

from lode.core.exceptions import ConflictError
from lode.core.models import ClusterHandle, ClusterSpec
from lode.interfaces.cloud_provider import CloudProvider
from lode.interfaces.cloud_types import ClusterInfo
from lode.utils.logging import get_logger
from lode.utils.retry import poll_until

logger = get_logger(__name__)


class ClusterProvisioner:
    """Requests a managed cluster and waits until the provider reports it ready.

    Cluster identity is tracked by label: provisioning a label that already
    exists attaches to that cluster instead of creating a duplicate.
    """

    def __init__(
        self,
        cloud_provider: CloudProvider,
        ready_timeout: float = 1200.0,
        poll_interval: float = 10.0,
    ):
        """Initialize the provisioner.

        Args:
            cloud_provider: Cloud provider implementation
            ready_timeout: Bound on waiting for readiness (seconds)
            poll_interval: Delay between readiness checks (seconds)
        """
        self.cloud = cloud_provider
        self.ready_timeout = ready_timeout
        self.poll_interval = poll_interval

    async def find(self, label: str) -> ClusterInfo | None:
        """Look up an existing cluster by label."""
        return await self.cloud.find_cluster(label)

    async def request(self, spec: ClusterSpec) -> ClusterInfo:
        """Validate the spec and create the cluster, or attach to the existing one.

        Args:
            spec: Cluster spec

        Returns:
            Provider cluster information

        Raises:
            ValidationError: If the spec is invalid (nothing is sent)
            ConflictError: If a cluster with this label exists in another region
            ProviderError: If the provider rejects the request
        """
        spec.ensure_valid()

        existing = await self.cloud.find_cluster(spec.label)
        if existing is not None:
            if existing.region != spec.region:
                raise ConflictError(
                    f"Cluster {spec.label!r} already exists in {existing.region}, "
                    f"not {spec.region}"
                )
            logger.info(
                "attaching_to_existing_cluster",
                label=spec.label,
                cluster_id=existing.id,
                region=existing.region,
            )
            return existing

        logger.info(
            "requesting_cluster",
            label=spec.label,
            region=spec.region,
            node_type=spec.node_type,
            node_count=spec.node_count,
            kubernetes_version=spec.kubernetes_version,
        )
        return await self.cloud.create_cluster(
            label=spec.label,
            region=spec.region,
            k8s_version=spec.kubernetes_version,
            node_type=spec.node_type,
            node_count=spec.node_count,
        )

    async def wait_until_ready(self, cluster: ClusterInfo) -> ClusterHandle:
        """Wait until kubeconfig, API endpoint and every node are available.

        Args:
            cluster: Cluster returned by ``request``

        Returns:
            ClusterHandle for the ready cluster

        Raises:
            ReadinessTimeoutError: If readiness is not reached within ``ready_timeout``
        """

        async def _check() -> ClusterHandle | None:
            kubeconfig = await self.cloud.get_kubeconfig(cluster.id)
            if not kubeconfig:
                return None

            endpoints = await self.cloud.get_api_endpoints(cluster.id)
            if not endpoints:
                return None

            pools = await self.cloud.get_node_pools(cluster.id)
            if not pools or not all(pool.ready for pool in pools):
                logger.debug(
                    "cluster_nodes_pending",
                    cluster_id=cluster.id,
                    pools=[(pool.id, pool.node_statuses) for pool in pools],
                )
                return None

            return ClusterHandle(
                id=cluster.id,
                label=cluster.label,
                region=cluster.region,
                api_endpoint=endpoints[0],
                kubeconfig_blob=SecretStr(kubeconfig),
            )

        logger.info("waiting_for_cluster", cluster_id=cluster.id, timeout=self.ready_timeout)
        handle = await poll_until(
            _check,
            f"cluster {cluster.label} to become ready",
            timeout=self.ready_timeout,
            interval=self.poll_interval,
        )
        logger.info("cluster_ready", cluster_id=handle.id, api_endpoint=handle.api_endpoint)
        return handle

    async def describe(self, cluster: ClusterInfo) -> ClusterHandle | None:
        """Build a handle from one readiness-agnostic look at the cluster.

        Returns:
            ClusterHandle, or None if the kubeconfig or endpoint is not published
        """
        kubeconfig = await self.cloud.get_kubeconfig(cluster.id)
        endpoints = await self.cloud.get_api_endpoints(cluster.id)
        if not kubeconfig or not endpoints:
            return None
        return ClusterHandle(
            id=cluster.id,
            label=cluster.label,
            region=cluster.region,
            api_endpoint=endpoints[0],
            kubeconfig_blob=SecretStr(kubeconfig),
        )

    async def provision(self, spec: ClusterSpec) -> ClusterHandle:
        """Provision (or attach to) the cluster and wait for readiness.

        Args:
            spec: Cluster spec

        Returns:
            ClusterHandle with id, endpoint and kubeconfig
        """
        cluster = await self.request(spec)
        return await self.wait_until_ready(cluster)

    async def destroy(self, label: str) -> bool:
        """Delete the cluster with this label.

        Returns:
            True if a cluster was deleted, False if none existed
        """
        cluster = await self.cloud.find_cluster(label)
        if cluster is None:
            logger.info("cluster_absent", label=label)
            return False

        await self.cloud.delete_cluster(cluster.id)
        logger.info("cluster_deleted", label=label, cluster_id=cluster.id)
        return True
