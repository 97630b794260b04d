"""Kubernetes provider interface for workload operations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from lode.core.models import ServiceSpec, WorkloadSpec


@dataclass
class DeploymentInfo:
    """Normalized deployment information."""

    name: str
    namespace: str
    ready: bool
    replicas_desired: int
    replicas_ready: int
    replicas_available: int
    replicas_updated: int


@dataclass
class ServiceInfo:
    """Normalized service information."""

    name: str
    namespace: str
    type: str
    external_ip: str | None = None


class KubernetesProvider(ABC):
    """Abstract interface for Kubernetes operations.

    All methods return normalized data structures (dataclasses) rather than
    native K8s API objects. Implementations raise ConflictError on HTTP 409,
    NotFoundError on 404 and AuthError on 401/403.
    """

    @abstractmethod
    async def get_server_version(self) -> str:
        """Query the control plane version; used as a readiness probe.

        Raises:
            ProviderError: If the control plane does not answer
        """

    @abstractmethod
    async def create_namespace(self, name: str) -> None:
        """Create a namespace.

        Raises:
            ConflictError: If it already exists
        """

    @abstractmethod
    async def delete_namespace(self, name: str) -> None:
        """Delete a namespace.

        Raises:
            NotFoundError: If it does not exist
        """

    @abstractmethod
    async def create_deployment(self, spec: WorkloadSpec, namespace: str) -> None:
        """Create a deployment from a workload spec.

        Raises:
            ConflictError: If it already exists
        """

    @abstractmethod
    async def replace_deployment(self, spec: WorkloadSpec, namespace: str) -> None:
        """Replace an existing deployment with the workload spec."""

    @abstractmethod
    async def get_deployment(self, name: str, namespace: str) -> DeploymentInfo:
        """Get deployment information.

        Raises:
            NotFoundError: If it does not exist
        """

    @abstractmethod
    async def delete_deployment(self, name: str, namespace: str) -> None:
        """Delete a deployment.

        Raises:
            NotFoundError: If it does not exist
        """

    @abstractmethod
    async def create_service(self, spec: ServiceSpec, namespace: str) -> None:
        """Create a LoadBalancer service.

        Raises:
            ConflictError: If it already exists
        """

    @abstractmethod
    async def replace_service(self, spec: ServiceSpec, namespace: str) -> None:
        """Replace an existing service with this spec."""

    @abstractmethod
    async def get_service(self, name: str, namespace: str) -> ServiceInfo:
        """Get service information, including any assigned external IP.

        Raises:
            NotFoundError: If it does not exist
        """

    @abstractmethod
    async def delete_service(self, name: str, namespace: str) -> None:
        """Delete a service.

        Raises:
            NotFoundError: If it does not exist
        """
