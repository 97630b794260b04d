"""Tests for ClusterProvisioner."""

from unittest.mock import MagicMock

import pytest

from lode.core.exceptions import (
    ConflictError,
    ProviderError,
    ReadinessTimeoutError,
    ValidationError,
)
from lode.core.models import ClusterSpec
from lode.interfaces.cloud_types import ClusterInfo, NodePoolInfo
from lode.workflow.cluster_provisioner import ClusterProvisioner

KUBECONFIG_B64 = "a3ViZWNvbmZpZw=="


@pytest.fixture
def provisioner(mock_cloud_provider: MagicMock) -> ClusterProvisioner:
    return ClusterProvisioner(mock_cloud_provider, ready_timeout=5, poll_interval=0)


class TestRequest:
    """Tests for request."""

    @pytest.mark.asyncio
    async def test_creates_when_absent(
        self,
        provisioner: ClusterProvisioner,
        mock_cloud_provider: MagicMock,
        cluster_spec: ClusterSpec,
    ) -> None:
        """Test a new cluster is created with the spec's shape."""
        cluster = await provisioner.request(cluster_spec)

        assert cluster.id == 12345
        mock_cloud_provider.create_cluster.assert_awaited_once_with(
            label="test",
            region="gb-lon",
            k8s_version="1.31",
            node_type="g6-standard-2",
            node_count=3,
        )

    @pytest.mark.asyncio
    async def test_same_label_attaches(
        self,
        provisioner: ClusterProvisioner,
        mock_cloud_provider: MagicMock,
        cluster_spec: ClusterSpec,
        cluster_info: ClusterInfo,
    ) -> None:
        """Test provisioning an existing label returns the same cluster without creating."""
        first = await provisioner.request(cluster_spec)
        mock_cloud_provider.find_cluster.return_value = cluster_info

        second = await provisioner.request(cluster_spec)

        assert second.id == first.id
        mock_cloud_provider.create_cluster.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_zero_nodes_rejected_before_provider_call(
        self, provisioner: ClusterProvisioner, mock_cloud_provider: MagicMock
    ) -> None:
        """Test node_count=0 fails validation and nothing reaches the provider."""
        spec = ClusterSpec(label="test", node_count=0)

        with pytest.raises(ValidationError, match="node_count must be >= 1"):
            await provisioner.request(spec)

        mock_cloud_provider.find_cluster.assert_not_called()
        mock_cloud_provider.create_cluster.assert_not_called()

    @pytest.mark.asyncio
    async def test_existing_label_in_other_region_conflicts(
        self,
        provisioner: ClusterProvisioner,
        mock_cloud_provider: MagicMock,
        cluster_info: ClusterInfo,
    ) -> None:
        """Test a label taken in another region is a conflict."""
        mock_cloud_provider.find_cluster.return_value = cluster_info

        with pytest.raises(ConflictError, match="already exists in gb-lon"):
            await provisioner.request(ClusterSpec(label="test", region="us-east"))

        mock_cloud_provider.create_cluster.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_rejection_propagates(
        self,
        provisioner: ClusterProvisioner,
        mock_cloud_provider: MagicMock,
        cluster_spec: ClusterSpec,
    ) -> None:
        """Test a rejected create surfaces as ProviderError."""
        mock_cloud_provider.create_cluster.side_effect = ProviderError("region: invalid")

        with pytest.raises(ProviderError, match="region: invalid"):
            await provisioner.request(cluster_spec)


class TestWaitUntilReady:
    """Tests for wait_until_ready."""

    @pytest.mark.asyncio
    async def test_ready_handle(
        self,
        provisioner: ClusterProvisioner,
        cluster_info: ClusterInfo,
    ) -> None:
        """Test a ready cluster yields id, endpoint and kubeconfig."""
        handle = await provisioner.wait_until_ready(cluster_info)

        assert handle.id == 12345
        assert handle.label == "test"
        assert handle.api_endpoint == "https://12345.gb-lon-1.linodelke.net:443"
        assert handle.kubeconfig_blob.get_secret_value() == KUBECONFIG_B64

    @pytest.mark.asyncio
    async def test_waits_for_kubeconfig(
        self,
        provisioner: ClusterProvisioner,
        mock_cloud_provider: MagicMock,
        cluster_info: ClusterInfo,
    ) -> None:
        """Test polling continues until the kubeconfig is published."""
        mock_cloud_provider.get_kubeconfig.side_effect = [None, None, KUBECONFIG_B64]

        handle = await provisioner.wait_until_ready(cluster_info)

        assert handle.id == 12345
        assert mock_cloud_provider.get_kubeconfig.await_count == 3

    @pytest.mark.asyncio
    async def test_waits_for_every_node(
        self,
        provisioner: ClusterProvisioner,
        mock_cloud_provider: MagicMock,
        cluster_info: ClusterInfo,
    ) -> None:
        """Test a pool with a node not ready keeps the cluster pending."""
        pending = [NodePoolInfo(id=1, type="g6-standard-2", count=3, node_statuses=["ready"] * 2)]
        ready = [NodePoolInfo(id=1, type="g6-standard-2", count=3, node_statuses=["ready"] * 3)]
        mock_cloud_provider.get_node_pools.side_effect = [pending, ready]

        await provisioner.wait_until_ready(cluster_info)

        assert mock_cloud_provider.get_node_pools.await_count == 2

    @pytest.mark.asyncio
    async def test_timeout(
        self,
        mock_cloud_provider: MagicMock,
        cluster_info: ClusterInfo,
    ) -> None:
        """Test a cluster that never becomes ready times out."""
        mock_cloud_provider.get_node_pools.return_value = [
            NodePoolInfo(id=1, type="g6-standard-2", count=3, node_statuses=["not_ready"] * 3)
        ]
        provisioner = ClusterProvisioner(
            mock_cloud_provider, ready_timeout=0.05, poll_interval=0.01
        )

        with pytest.raises(ReadinessTimeoutError, match="cluster test"):
            await provisioner.wait_until_ready(cluster_info)


class TestDescribe:
    """Tests for describe."""

    @pytest.mark.asyncio
    async def test_not_published(
        self,
        provisioner: ClusterProvisioner,
        mock_cloud_provider: MagicMock,
        cluster_info: ClusterInfo,
    ) -> None:
        """Test a missing kubeconfig yields no handle."""
        mock_cloud_provider.get_kubeconfig.return_value = None

        assert await provisioner.describe(cluster_info) is None

    @pytest.mark.asyncio
    async def test_published(
        self, provisioner: ClusterProvisioner, cluster_info: ClusterInfo
    ) -> None:
        """Test a single look builds the handle."""
        handle = await provisioner.describe(cluster_info)

        assert handle is not None
        assert handle.id == 12345


class TestProvisionAndDestroy:
    """Tests for provision and destroy."""

    @pytest.mark.asyncio
    async def test_provision(
        self, provisioner: ClusterProvisioner, cluster_spec: ClusterSpec
    ) -> None:
        """Test provision requests then waits."""
        handle = await provisioner.provision(cluster_spec)

        assert handle.id == 12345

    @pytest.mark.asyncio
    async def test_destroy_existing(
        self,
        provisioner: ClusterProvisioner,
        mock_cloud_provider: MagicMock,
        cluster_info: ClusterInfo,
    ) -> None:
        """Test destroy deletes the labelled cluster."""
        mock_cloud_provider.find_cluster.return_value = cluster_info

        assert await provisioner.destroy("test") is True
        mock_cloud_provider.delete_cluster.assert_awaited_once_with(12345)

    @pytest.mark.asyncio
    async def test_destroy_absent(
        self, provisioner: ClusterProvisioner, mock_cloud_provider: MagicMock
    ) -> None:
        """Test destroying a missing cluster is a no-op."""
        assert await provisioner.destroy("test") is False
        mock_cloud_provider.delete_cluster.assert_not_called()
