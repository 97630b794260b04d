"""Namespace, deployment and service creation on the cluster."""

from lode.core.exceptions import ConflictError, NotFoundError
from lode.core.models import (
    DeploymentHandle,
    ExternalEndpoint,
    NamespaceHandle,
    ServiceHandle,
    ServiceSpec,
    WorkloadSpec,
)
from lode.interfaces.kubernetes_provider import DeploymentInfo, KubernetesProvider
from lode.utils.logging import get_logger
from lode.utils.retry import poll_until

logger = get_logger(__name__)


class WorkloadDeployer:
    """Deploys one application: namespace, then deployment, then service.

    Each create is safe to re-run: an existing namespace is reused, an
    existing deployment is replaced, an existing service is kept.
    """

    def __init__(
        self,
        kubernetes_provider: KubernetesProvider,
        poll_interval: float = 10.0,
        deployment_timeout: float = 600.0,
        external_ip_timeout: float = 600.0,
    ):
        """Initialize the deployer.

        Args:
            kubernetes_provider: Provider authenticated with the credential artifact
            poll_interval: Delay between status checks (seconds)
            deployment_timeout: Bound on waiting for the rollout (seconds)
            external_ip_timeout: Bound on waiting for the load balancer IP (seconds)
        """
        self.k8s = kubernetes_provider
        self.poll_interval = poll_interval
        self.deployment_timeout = deployment_timeout
        self.external_ip_timeout = external_ip_timeout

    async def create_namespace(self, name: str) -> NamespaceHandle:
        """Create a namespace; an existing one is accepted as-is.

        Raises:
            AuthError: If credentials are invalid
        """
        try:
            await self.k8s.create_namespace(name)
        except ConflictError:
            logger.info("namespace_exists", namespace=name)
            return NamespaceHandle(name=name, existed=True)

        logger.info("namespace_created", namespace=name)
        return NamespaceHandle(name=name)

    async def create_deployment(
        self, spec: WorkloadSpec, namespace: NamespaceHandle
    ) -> DeploymentHandle:
        """Create (or replace) the deployment and wait for its rollout.

        Raises:
            ValidationError: If the workload spec is malformed
            AuthError: If credentials are invalid
            ProviderError: If the control plane rejects the deployment
            ReadinessTimeoutError: If the rollout does not complete in time
        """
        spec.ensure_valid()

        try:
            await self.k8s.create_deployment(spec, namespace.name)
            logger.info("deployment_created", name=spec.app_name, namespace=namespace.name)
        except ConflictError:
            await self.k8s.replace_deployment(spec, namespace.name)
            logger.info("deployment_replaced", name=spec.app_name, namespace=namespace.name)

        async def _check() -> DeploymentInfo | None:
            info = await self.k8s.get_deployment(spec.app_name, namespace.name)
            if not info.ready:
                logger.debug(
                    "deployment_rolling_out",
                    name=spec.app_name,
                    ready=info.replicas_ready,
                    desired=info.replicas_desired,
                )
                return None
            return info

        await poll_until(
            _check,
            f"deployment {spec.app_name} rollout",
            timeout=self.deployment_timeout,
            interval=self.poll_interval,
        )

        logger.info("deployment_ready", name=spec.app_name, replicas=spec.replicas)
        return DeploymentHandle(
            name=spec.app_name, namespace=namespace.name, replicas=spec.replicas
        )

    async def get_endpoint(self, service_name: str, namespace: str) -> ExternalEndpoint:
        """Current external endpoint; ``ip`` is None while assignment is pending."""
        info = await self.k8s.get_service(service_name, namespace)
        return ExternalEndpoint(ip=info.external_ip or None)

    async def create_service(self, spec: ServiceSpec, namespace: NamespaceHandle) -> ServiceHandle:
        """Create the LoadBalancer service and wait for its external IP.

        Never returns a pending endpoint.

        Raises:
            ValidationError: If the service spec is malformed
            ReadinessTimeoutError: If no IP is assigned in time
        """
        spec.ensure_valid()

        try:
            await self.k8s.create_service(spec, namespace.name)
            logger.info("service_created", name=spec.name, namespace=namespace.name)
        except ConflictError:
            await self.k8s.replace_service(spec, namespace.name)
            logger.info("service_replaced", name=spec.name, namespace=namespace.name)

        async def _check() -> ExternalEndpoint | None:
            endpoint = await self.get_endpoint(spec.name, namespace.name)
            return endpoint if endpoint.is_assigned else None

        endpoint = await poll_until(
            _check,
            f"external IP for service {spec.name}",
            timeout=self.external_ip_timeout,
            interval=self.poll_interval,
        )

        logger.info("service_endpoint_assigned", name=spec.name, ip=endpoint.ip)
        return ServiceHandle(name=spec.name, namespace=namespace.name, endpoint=endpoint)

    async def delete_service(self, name: str, namespace: str) -> bool:
        """Delete a service; returns False if it was already gone."""
        try:
            await self.k8s.delete_service(name, namespace)
        except NotFoundError:
            return False
        return True

    async def delete_deployment(self, name: str, namespace: str) -> bool:
        """Delete a deployment; returns False if it was already gone."""
        try:
            await self.k8s.delete_deployment(name, namespace)
        except NotFoundError:
            return False
        return True

    async def delete_namespace(self, name: str) -> bool:
        """Delete a namespace; returns False if it was already gone."""
        try:
            await self.k8s.delete_namespace(name)
        except NotFoundError:
            return False
        return True
