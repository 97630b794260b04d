"""Kubernetes adapter implementing KubernetesProvider interface."""

from urllib3.exceptions import HTTPError

from lode.clients.kubernetes_client import KubernetesClient
from lode.core.exceptions import LodeError, ProviderError, ProviderUnavailableError
from lode.core.models import ServiceSpec, WorkloadSpec
from lode.interfaces.kubernetes_provider import (
    DeploymentInfo,
    KubernetesProvider,
    ServiceInfo,
)
from lode.utils.logging import get_logger

logger = get_logger(__name__)


def _wrap_error(message: str, e: Exception) -> ProviderError:
    """Map a non-taxonomy failure; transport errors stay retryable."""
    if isinstance(e, HTTPError):
        return ProviderUnavailableError(f"{message}: {e}")
    return ProviderError(f"{message}: {e}")


class KubernetesAdapter(KubernetesProvider):
    """Adapter wrapping KubernetesClient to implement KubernetesProvider interface.

    This adapter normalizes Kubernetes API responses into clean dataclasses,
    hiding kubernetes Python client implementation details. Errors already in
    the LODE taxonomy pass through; urllib3 transport failures become
    ProviderUnavailableError and anything else ProviderError.
    """

    def __init__(self, kubeconfig_path: str, context: str | None = None):
        """Initialize Kubernetes adapter.

        Args:
            kubeconfig_path: Path to the materialized kubeconfig
            context: Kubernetes context to use (optional)
        """
        try:
            self.client = KubernetesClient(kubeconfig_path=kubeconfig_path, context=context)
            logger.debug("k8s_adapter_initialized", context=context)
        except LodeError:
            raise
        except Exception as e:
            raise ProviderError(f"Failed to initialize K8s adapter: {e}") from e

    async def get_server_version(self) -> str:
        try:
            return self.client.get_server_version()
        except LodeError:
            raise
        except Exception as e:
            raise _wrap_error("Failed to get server version", e) from e

    async def create_namespace(self, name: str) -> None:
        try:
            self.client.create_namespace(name)
        except LodeError:
            raise
        except Exception as e:
            raise _wrap_error(f"Failed to create namespace {name}", e) from e

    async def delete_namespace(self, name: str) -> None:
        try:
            self.client.delete_namespace(name)
        except LodeError:
            raise
        except Exception as e:
            raise _wrap_error(f"Failed to delete namespace {name}", e) from e

    async def create_deployment(self, spec: WorkloadSpec, namespace: str) -> None:
        try:
            self.client.create_deployment(spec, namespace)
        except LodeError:
            raise
        except Exception as e:
            raise _wrap_error(f"Failed to create deployment {spec.app_name}", e) from e

    async def replace_deployment(self, spec: WorkloadSpec, namespace: str) -> None:
        try:
            self.client.replace_deployment(spec, namespace)
        except LodeError:
            raise
        except Exception as e:
            raise _wrap_error(f"Failed to replace deployment {spec.app_name}", e) from e

    async def get_deployment(self, name: str, namespace: str) -> DeploymentInfo:
        """Get deployment information.

        A deployment is ready once the controller has observed the current
        generation, the Available condition is True, and every desired replica
        is updated, ready and available.
        """
        try:
            deployment = self.client.get_deployment(name=name, namespace=namespace)
            status = deployment.status

            spec_generation = deployment.metadata.generation or 0
            observed_generation = status.observed_generation or 0

            is_available = False
            for condition in status.conditions or []:
                if condition.type == "Available":
                    is_available = condition.status == "True"
                    break

            desired = deployment.spec.replicas or 0
            ready = status.ready_replicas or 0
            available = status.available_replicas or 0
            updated = status.updated_replicas or 0

            is_ready = (
                observed_generation >= spec_generation
                and is_available
                and desired > 0
                and ready == desired
                and available == desired
                and updated == desired
            )

            return DeploymentInfo(
                name=name,
                namespace=namespace,
                ready=is_ready,
                replicas_desired=desired,
                replicas_ready=ready,
                replicas_available=available,
                replicas_updated=updated,
            )
        except LodeError:
            raise
        except Exception as e:
            raise _wrap_error(f"Failed to get deployment {name}", e) from e

    async def delete_deployment(self, name: str, namespace: str) -> None:
        try:
            self.client.delete_deployment(name=name, namespace=namespace)
        except LodeError:
            raise
        except Exception as e:
            raise _wrap_error(f"Failed to delete deployment {name}", e) from e

    async def create_service(self, spec: ServiceSpec, namespace: str) -> None:
        try:
            self.client.create_service(spec, namespace)
        except LodeError:
            raise
        except Exception as e:
            raise _wrap_error(f"Failed to create service {spec.name}", e) from e

    async def replace_service(self, spec: ServiceSpec, namespace: str) -> None:
        try:
            self.client.replace_service(spec, namespace)
        except LodeError:
            raise
        except Exception as e:
            raise _wrap_error(f"Failed to replace service {spec.name}", e) from e

    async def get_service(self, name: str, namespace: str) -> ServiceInfo:
        try:
            service = self.client.get_service(name=name, namespace=namespace)

            external_ip = None
            load_balancer = service.status.load_balancer if service.status else None
            for ingress in (load_balancer.ingress if load_balancer else None) or []:
                if ingress.ip:
                    external_ip = ingress.ip
                    break

            return ServiceInfo(
                name=name,
                namespace=namespace,
                type=service.spec.type,
                external_ip=external_ip,
            )
        except LodeError:
            raise
        except Exception as e:
            raise _wrap_error(f"Failed to get service {name}", e) from e

    async def delete_service(self, name: str, namespace: str) -> None:
        try:
            self.client.delete_service(name=name, namespace=namespace)
        except LodeError:
            raise
        except Exception as e:
            raise _wrap_error(f"Failed to delete service {name}", e) from e
