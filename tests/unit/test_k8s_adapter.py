"""Unit tests for KubernetesAdapter.

Tests the Kubernetes adapter implementation of KubernetesProvider interface.
All Kubernetes API calls are mocked to ensure tests are isolated and fast.
"""

from unittest.mock import MagicMock, patch

import pytest
from urllib3.exceptions import MaxRetryError

from lode.adapters.k8s_adapter import KubernetesAdapter
from lode.core.exceptions import (
    AuthError,
    NotFoundError,
    ProviderError,
    ProviderUnavailableError,
)
from lode.interfaces.kubernetes_provider import DeploymentInfo, ServiceInfo


def make_deployment(
    replicas: int = 2,
    ready: int | None = 2,
    available: int | None = 2,
    updated: int | None = 2,
    generation: int = 1,
    observed_generation: int | None = 1,
    available_condition: str = "True",
) -> MagicMock:
    """Build a V1Deployment-shaped mock."""
    deployment = MagicMock()
    deployment.metadata.generation = generation
    deployment.spec.replicas = replicas
    deployment.status.observed_generation = observed_generation
    deployment.status.ready_replicas = ready
    deployment.status.available_replicas = available
    deployment.status.updated_replicas = updated
    condition = MagicMock()
    condition.type = "Available"
    condition.status = available_condition
    deployment.status.conditions = [condition]
    return deployment


def make_service(ingress_ips: list[str | None] | None) -> MagicMock:
    """Build a V1Service-shaped mock."""
    service = MagicMock()
    service.spec.type = "LoadBalancer"
    if ingress_ips is None:
        service.status.load_balancer.ingress = None
    else:
        service.status.load_balancer.ingress = [MagicMock(ip=ip) for ip in ingress_ips]
    return service


class TestKubernetesAdapterInit:
    """Tests for KubernetesAdapter initialization."""

    @patch("lode.adapters.k8s_adapter.KubernetesClient")
    def test_init_with_kubeconfig(self, mock_k8s_client_class: MagicMock) -> None:
        """Test the adapter is bound to the given kubeconfig."""
        adapter = KubernetesAdapter(kubeconfig_path="/tmp/kubeconfig.yaml")

        mock_k8s_client_class.assert_called_once_with(
            kubeconfig_path="/tmp/kubeconfig.yaml", context=None
        )
        assert adapter.client == mock_k8s_client_class.return_value

    @patch("lode.adapters.k8s_adapter.KubernetesClient")
    def test_init_auth_error_passes_through(self, mock_k8s_client_class: MagicMock) -> None:
        """Test AuthError from the client is not re-wrapped."""
        mock_k8s_client_class.side_effect = AuthError("bad kubeconfig")

        with pytest.raises(AuthError):
            KubernetesAdapter(kubeconfig_path="/invalid/path")

    @patch("lode.adapters.k8s_adapter.KubernetesClient")
    def test_init_failure_raises_provider_error(self, mock_k8s_client_class: MagicMock) -> None:
        """Test unexpected initialization failure raises ProviderError."""
        mock_k8s_client_class.side_effect = Exception("boom")

        with pytest.raises(ProviderError) as exc_info:
            KubernetesAdapter(kubeconfig_path="/invalid/path")

        assert "Failed to initialize K8s adapter" in str(exc_info.value)


class TestKubernetesAdapterGetDeployment:
    """Tests for get_deployment readiness."""

    @pytest.mark.asyncio
    @patch("lode.adapters.k8s_adapter.KubernetesClient")
    async def test_deployment_ready(self, mock_k8s_client_class: MagicMock) -> None:
        """Test a fully rolled-out deployment is ready."""
        mock_k8s_client_class.return_value.get_deployment.return_value = make_deployment()

        adapter = KubernetesAdapter(kubeconfig_path="/tmp/kubeconfig.yaml")
        info = await adapter.get_deployment("springboot-app", "springboot")

        assert info == DeploymentInfo(
            name="springboot-app",
            namespace="springboot",
            ready=True,
            replicas_desired=2,
            replicas_ready=2,
            replicas_available=2,
            replicas_updated=2,
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"ready": 1},
            {"available": None},
            {"updated": 1},
            {"generation": 2},
            {"available_condition": "False"},
        ],
    )
    @patch("lode.adapters.k8s_adapter.KubernetesClient")
    async def test_deployment_not_ready(
        self, mock_k8s_client_class: MagicMock, overrides: dict
    ) -> None:
        """Test any incomplete rollout signal keeps the deployment not ready."""
        mock_k8s_client_class.return_value.get_deployment.return_value = make_deployment(
            **overrides
        )

        adapter = KubernetesAdapter(kubeconfig_path="/tmp/kubeconfig.yaml")
        info = await adapter.get_deployment("springboot-app", "springboot")

        assert info.ready is False

    @pytest.mark.asyncio
    @patch("lode.adapters.k8s_adapter.KubernetesClient")
    async def test_deployment_not_found(self, mock_k8s_client_class: MagicMock) -> None:
        """Test NotFoundError propagates."""
        mock_k8s_client_class.return_value.get_deployment.side_effect = NotFoundError("404")

        adapter = KubernetesAdapter(kubeconfig_path="/tmp/kubeconfig.yaml")

        with pytest.raises(NotFoundError):
            await adapter.get_deployment("springboot-app", "springboot")


class TestKubernetesAdapterGetService:
    """Tests for get_service."""

    @pytest.mark.asyncio
    @patch("lode.adapters.k8s_adapter.KubernetesClient")
    async def test_external_ip_assigned(self, mock_k8s_client_class: MagicMock) -> None:
        """Test the first ingress IP is reported."""
        mock_k8s_client_class.return_value.get_service.return_value = make_service(
            [None, "172.105.10.20"]
        )

        adapter = KubernetesAdapter(kubeconfig_path="/tmp/kubeconfig.yaml")
        info = await adapter.get_service("springboot-service", "springboot")

        assert info == ServiceInfo(
            name="springboot-service",
            namespace="springboot",
            type="LoadBalancer",
            external_ip="172.105.10.20",
        )

    @pytest.mark.asyncio
    @patch("lode.adapters.k8s_adapter.KubernetesClient")
    async def test_external_ip_pending(self, mock_k8s_client_class: MagicMock) -> None:
        """Test a pending load balancer has no external IP."""
        mock_k8s_client_class.return_value.get_service.return_value = make_service(None)

        adapter = KubernetesAdapter(kubeconfig_path="/tmp/kubeconfig.yaml")
        info = await adapter.get_service("springboot-service", "springboot")

        assert info.external_ip is None


class TestKubernetesAdapterDelegation:
    """Tests for simple delegations."""

    @pytest.mark.asyncio
    @patch("lode.adapters.k8s_adapter.KubernetesClient")
    async def test_server_version(self, mock_k8s_client_class: MagicMock) -> None:
        """Test the server version is forwarded."""
        mock_k8s_client_class.return_value.get_server_version.return_value = "v1.31.0"

        adapter = KubernetesAdapter(kubeconfig_path="/tmp/kubeconfig.yaml")

        assert await adapter.get_server_version() == "v1.31.0"

    @pytest.mark.asyncio
    @patch("lode.adapters.k8s_adapter.KubernetesClient")
    async def test_create_calls(
        self,
        mock_k8s_client_class: MagicMock,
        workload_spec,
        service_spec,
    ) -> None:
        """Test creates pass the spec and namespace through."""
        mock_client = mock_k8s_client_class.return_value
        adapter = KubernetesAdapter(kubeconfig_path="/tmp/kubeconfig.yaml")

        await adapter.create_namespace("springboot")
        await adapter.create_deployment(workload_spec, "springboot")
        await adapter.create_service(service_spec, "springboot")

        mock_client.create_namespace.assert_called_once_with("springboot")
        mock_client.create_deployment.assert_called_once_with(workload_spec, "springboot")
        mock_client.create_service.assert_called_once_with(service_spec, "springboot")

    @pytest.mark.asyncio
    @patch("lode.adapters.k8s_adapter.KubernetesClient")
    async def test_replace_service(self, mock_k8s_client_class: MagicMock, service_spec) -> None:
        """Test replace_service passes the spec and namespace through."""
        mock_client = mock_k8s_client_class.return_value
        adapter = KubernetesAdapter(kubeconfig_path="/tmp/kubeconfig.yaml")

        await adapter.replace_service(service_spec, "springboot")

        mock_client.replace_service.assert_called_once_with(service_spec, "springboot")


class TestKubernetesAdapterErrors:
    """Tests for error wrapping outside client initialization."""

    @pytest.mark.asyncio
    @patch("lode.adapters.k8s_adapter.KubernetesClient")
    async def test_transport_error_is_unavailable(self, mock_k8s_client_class: MagicMock) -> None:
        """Test a urllib3 MaxRetryError (e.g. a dead LB) becomes ProviderUnavailableError."""
        mock_k8s_client_class.return_value.create_namespace.side_effect = MaxRetryError(
            pool=None, url="/api/v1/namespaces", reason="connection refused"
        )
        adapter = KubernetesAdapter(kubeconfig_path="/tmp/kubeconfig.yaml")

        with pytest.raises(ProviderUnavailableError, match="Failed to create namespace springboot"):
            await adapter.create_namespace("springboot")

    @pytest.mark.asyncio
    @patch("lode.adapters.k8s_adapter.KubernetesClient")
    async def test_unexpected_error_is_provider_error(
        self, mock_k8s_client_class: MagicMock
    ) -> None:
        """Test any other exception becomes a plain ProviderError."""
        mock_k8s_client_class.return_value.delete_service.side_effect = RuntimeError("boom")
        adapter = KubernetesAdapter(kubeconfig_path="/tmp/kubeconfig.yaml")

        with pytest.raises(ProviderError, match="boom") as exc_info:
            await adapter.delete_service("springboot-service", "springboot")

        assert not isinstance(exc_info.value, ProviderUnavailableError)

    @pytest.mark.asyncio
    @patch("lode.adapters.k8s_adapter.KubernetesClient")
    async def test_malformed_response_is_provider_error(
        self, mock_k8s_client_class: MagicMock
    ) -> None:
        """Test a deployment without status is wrapped rather than leaking AttributeError."""
        deployment = MagicMock()
        deployment.status = None
        mock_k8s_client_class.return_value.get_deployment.return_value = deployment
        adapter = KubernetesAdapter(kubeconfig_path="/tmp/kubeconfig.yaml")

        with pytest.raises(ProviderError, match="Failed to get deployment springboot-app"):
            await adapter.get_deployment("springboot-app", "springboot")

    @pytest.mark.asyncio
    @patch("lode.adapters.k8s_adapter.KubernetesClient")
    async def test_taxonomy_errors_pass_through(self, mock_k8s_client_class: MagicMock) -> None:
        """Test NotFoundError from the client is not rewrapped."""
        mock_k8s_client_class.return_value.get_service.side_effect = NotFoundError("gone")
        adapter = KubernetesAdapter(kubeconfig_path="/tmp/kubeconfig.yaml")

        with pytest.raises(NotFoundError, match="^gone$"):
            await adapter.get_service("springboot-service", "springboot")
