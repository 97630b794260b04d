"""Pytest configuration and shared fixtures."""

import base64
from typing import Any
from unittest.mock import MagicMock

import pytest
from pydantic import SecretStr

from lode.core.config import WaitConfig
from lode.core.models import ClusterHandle, ClusterSpec, ServiceSpec, WorkloadSpec
from lode.interfaces.cloud_provider import CloudProvider
from lode.interfaces.cloud_types import ClusterInfo, NodePoolInfo
from lode.interfaces.kubernetes_provider import DeploymentInfo, KubernetesProvider, ServiceInfo

KUBECONFIG_B64 = base64.b64encode(b"kubeconfig").decode()  # "a3ViZWNvbmZpZw=="


@pytest.fixture
def cluster_spec() -> ClusterSpec:
    """Provide a sample cluster spec."""
    return ClusterSpec(
        label="test",
        kubernetes_version="1.31",
        region="gb-lon",
        node_type="g6-standard-2",
        node_count=3,
    )


@pytest.fixture
def workload_spec() -> WorkloadSpec:
    """Provide the sample Spring Boot workload."""
    return WorkloadSpec(
        app_name="springboot-app",
        namespace="springboot",
        container_image="springio/gs-spring-boot-docker:latest",
        container_port=8080,
        replicas=2,
    )


@pytest.fixture
def service_spec() -> ServiceSpec:
    """Provide the sample LoadBalancer service."""
    return ServiceSpec(name="springboot-service", app_name="springboot-app", port=80, target_port=8080)


@pytest.fixture
def cluster_info() -> ClusterInfo:
    """Provider view of the sample cluster."""
    return ClusterInfo(id=12345, label="test", region="gb-lon", k8s_version="1.31", status="ready")


@pytest.fixture
def cluster_handle() -> ClusterHandle:
    """Ready handle for the sample cluster."""
    return ClusterHandle(
        id=12345,
        label="test",
        region="gb-lon",
        api_endpoint="https://12345.gb-lon-1.linodelke.net:443",
        kubeconfig_blob=SecretStr(KUBECONFIG_B64),
    )


@pytest.fixture
def fast_waits() -> WaitConfig:
    """Wait bounds that never actually sleep."""
    return WaitConfig(
        poll_interval_seconds=0,
        cluster_ready_timeout_seconds=5,
        deployment_ready_timeout_seconds=5,
        external_ip_timeout_seconds=5,
    )


@pytest.fixture
def mock_cloud_provider(cluster_info: ClusterInfo) -> MagicMock:
    """CloudProvider mock where no cluster exists yet and creation is instantly ready."""
    provider = MagicMock(spec=CloudProvider)
    provider.find_cluster.return_value = None
    provider.create_cluster.return_value = cluster_info
    provider.get_kubeconfig.return_value = KUBECONFIG_B64
    provider.get_api_endpoints.return_value = ["https://12345.gb-lon-1.linodelke.net:443"]
    provider.get_node_pools.return_value = [
        NodePoolInfo(id=1, type="g6-standard-2", count=3, node_statuses=["ready"] * 3)
    ]
    provider.delete_cluster.return_value = None
    return provider


@pytest.fixture
def mock_kubernetes_provider() -> MagicMock:
    """KubernetesProvider mock where every object becomes ready immediately."""
    provider = MagicMock(spec=KubernetesProvider)
    provider.get_server_version.return_value = "v1.31.0"
    provider.get_deployment.return_value = DeploymentInfo(
        name="springboot-app",
        namespace="springboot",
        ready=True,
        replicas_desired=2,
        replicas_ready=2,
        replicas_available=2,
        replicas_updated=2,
    )
    provider.get_service.return_value = ServiceInfo(
        name="springboot-service",
        namespace="springboot",
        type="LoadBalancer",
        external_ip="172.105.10.20",
    )
    return provider


@pytest.fixture
def sample_lke_cluster() -> dict[str, Any]:
    """Sample Linode API cluster object."""
    return {
        "id": 12345,
        "label": "test",
        "region": "gb-lon",
        "k8s_version": "1.31",
        "status": "ready",
        "tags": ["managed-by:lode"],
        "control_plane": {"high_availability": False},
    }


@pytest.fixture
def sample_lke_pools() -> list[dict[str, Any]]:
    """Sample Linode API node pool listing."""
    return [
        {
            "id": 456,
            "type": "g6-standard-2",
            "count": 3,
            "nodes": [
                {"id": "456-a", "instance_id": 1, "status": "ready"},
                {"id": "456-b", "instance_id": 2, "status": "ready"},
                {"id": "456-c", "instance_id": 3, "status": "not_ready"},
            ],
        }
    ]


def pytest_configure(config: Any) -> None:
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
