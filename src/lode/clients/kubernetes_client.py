"""Kubernetes client for workload operations."""

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.client.models import V1Deployment, V1Service
from urllib3.exceptions import HTTPError

from lode.core.exceptions import (
    AuthError,
    ConflictError,
    NotFoundError,
    ProviderError,
    ProviderUnavailableError,
)
from lode.core.models import ProbeSpec, ServiceSpec, WorkloadSpec
from lode.utils.logging import get_logger

logger = get_logger(__name__)


def _raise_for_api_exception(e: ApiException, action: str) -> None:
    """Translate an ApiException into the LODE error taxonomy."""
    message = f"Failed to {action}: {e.status} {e.reason}"
    if e.status in (401, 403):
        raise AuthError(message) from e
    if e.status == 404:
        raise NotFoundError(message) from e
    if e.status == 409:
        raise ConflictError(message) from e
    if e.status is None or e.status == 0 or e.status >= 500:
        raise ProviderUnavailableError(message) from e
    raise ProviderError(message) from e


def _build_probe(probe: ProbeSpec, default_port: int) -> client.V1Probe:
    return client.V1Probe(
        http_get=client.V1HTTPGetAction(path=probe.path, port=probe.port or default_port),
        initial_delay_seconds=probe.initial_delay_seconds,
        period_seconds=probe.period_seconds,
        timeout_seconds=probe.timeout_seconds,
        failure_threshold=probe.failure_threshold,
    )


def build_deployment(spec: WorkloadSpec, namespace: str) -> V1Deployment:
    """Build the Deployment object for a workload spec.

    Args:
        spec: Workload spec
        namespace: Target namespace

    Returns:
        V1Deployment ready to submit
    """
    labels = {"app": spec.app_name}

    container = client.V1Container(
        name=spec.app_name,
        image=spec.container_image,
        ports=[client.V1ContainerPort(container_port=spec.container_port)],
        resources=client.V1ResourceRequirements(
            requests=dict(spec.resources.requests),
            limits=dict(spec.resources.limits),
        ),
        liveness_probe=_build_probe(spec.liveness_probe, spec.container_port),
        readiness_probe=_build_probe(spec.readiness_probe, spec.container_port),
    )

    return client.V1Deployment(
        api_version="apps/v1",
        kind="Deployment",
        metadata=client.V1ObjectMeta(name=spec.app_name, namespace=namespace, labels=labels),
        spec=client.V1DeploymentSpec(
            replicas=spec.replicas,
            selector=client.V1LabelSelector(match_labels=labels),
            template=client.V1PodTemplateSpec(
                metadata=client.V1ObjectMeta(labels=labels),
                spec=client.V1PodSpec(containers=[container]),
            ),
        ),
    )


def build_service(spec: ServiceSpec, namespace: str) -> V1Service:
    """Build the Service object for a service spec.

    Args:
        spec: Service spec
        namespace: Target namespace

    Returns:
        V1Service ready to submit
    """
    return client.V1Service(
        api_version="v1",
        kind="Service",
        metadata=client.V1ObjectMeta(
            name=spec.name, namespace=namespace, labels={"app": spec.app_name}
        ),
        spec=client.V1ServiceSpec(
            type=spec.type,
            selector={"app": spec.app_name},
            ports=[
                client.V1ServicePort(
                    port=spec.port,
                    target_port=spec.target_port,
                    protocol=spec.protocol,
                )
            ],
        ),
    )


class KubernetesClient:
    """Kubernetes client wrapper bound to one kubeconfig file."""

    def __init__(self, kubeconfig_path: str, context: str | None = None):
        """Initialize Kubernetes client.

        The API client is built from ``kubeconfig_path`` alone; the process-wide
        default configuration is left untouched.

        Args:
            kubeconfig_path: Path to kubeconfig file
            context: Kubernetes context to use (optional)
        """
        try:
            api_client = config.new_client_from_config(
                config_file=kubeconfig_path, context=context
            )
        except Exception as e:
            logger.error("k8s_client_initialization_failed", error=str(e))
            raise AuthError(f"Failed to load kubeconfig {kubeconfig_path}: {e}") from e

        self.api_client = api_client
        self.core_v1 = client.CoreV1Api(api_client)
        self.apps_v1 = client.AppsV1Api(api_client)
        self.version_api = client.VersionApi(api_client)

        logger.debug("k8s_client_initialized", kubeconfig_path=kubeconfig_path, context=context)

    def get_server_version(self) -> str:
        """Get the control plane version string.

        Raises:
            ProviderUnavailableError: If the control plane is not serving yet
        """
        try:
            info = self.version_api.get_code()
            return info.git_version
        except ApiException as e:
            _raise_for_api_exception(e, "query server version")
        except HTTPError as e:
            raise ProviderUnavailableError(f"Control plane unreachable: {e}") from e

    def create_namespace(self, name: str) -> None:
        """Create a namespace.

        Raises:
            ConflictError: If the namespace already exists
        """
        try:
            logger.info("creating_namespace", namespace=name)
            body = client.V1Namespace(metadata=client.V1ObjectMeta(name=name))
            self.core_v1.create_namespace(body=body)
        except ApiException as e:
            _raise_for_api_exception(e, f"create namespace {name}")

    def delete_namespace(self, name: str) -> None:
        """Delete a namespace."""
        try:
            logger.info("deleting_namespace", namespace=name)
            self.core_v1.delete_namespace(name=name)
        except ApiException as e:
            _raise_for_api_exception(e, f"delete namespace {name}")

    def create_deployment(self, spec: WorkloadSpec, namespace: str) -> V1Deployment:
        """Create a deployment.

        Raises:
            ConflictError: If the deployment already exists
        """
        try:
            logger.info("creating_deployment", name=spec.app_name, namespace=namespace)
            return self.apps_v1.create_namespaced_deployment(
                namespace=namespace, body=build_deployment(spec, namespace)
            )
        except ApiException as e:
            _raise_for_api_exception(e, f"create deployment {spec.app_name}")

    def replace_deployment(self, spec: WorkloadSpec, namespace: str) -> V1Deployment:
        """Replace an existing deployment."""
        try:
            logger.info("replacing_deployment", name=spec.app_name, namespace=namespace)
            return self.apps_v1.replace_namespaced_deployment(
                name=spec.app_name, namespace=namespace, body=build_deployment(spec, namespace)
            )
        except ApiException as e:
            _raise_for_api_exception(e, f"replace deployment {spec.app_name}")

    def get_deployment(self, name: str, namespace: str) -> V1Deployment:
        """Get a deployment."""
        try:
            logger.debug("getting_deployment", name=name, namespace=namespace)
            return self.apps_v1.read_namespaced_deployment(name=name, namespace=namespace)
        except ApiException as e:
            _raise_for_api_exception(e, f"get deployment {name}")

    def delete_deployment(self, name: str, namespace: str) -> None:
        """Delete a deployment."""
        try:
            logger.info("deleting_deployment", name=name, namespace=namespace)
            self.apps_v1.delete_namespaced_deployment(name=name, namespace=namespace)
        except ApiException as e:
            _raise_for_api_exception(e, f"delete deployment {name}")

    def create_service(self, spec: ServiceSpec, namespace: str) -> V1Service:
        """Create a service.

        Raises:
            ConflictError: If the service already exists
        """
        try:
            logger.info("creating_service", name=spec.name, namespace=namespace, type=spec.type)
            return self.core_v1.create_namespaced_service(
                namespace=namespace, body=build_service(spec, namespace)
            )
        except ApiException as e:
            _raise_for_api_exception(e, f"create service {spec.name}")

    def get_service(self, name: str, namespace: str) -> V1Service:
        """Get a service."""
        try:
            logger.debug("getting_service", name=name, namespace=namespace)
            return self.core_v1.read_namespaced_service(name=name, namespace=namespace)
        except ApiException as e:
            _raise_for_api_exception(e, f"get service {name}")

    def replace_service(self, spec: ServiceSpec, namespace: str) -> V1Service:
        """Replace an existing service with the desired spec.

        The live resource version and cluster IP are carried over; the API
        rejects an update without the former and cannot change the latter.
        """
        try:
            current = self.core_v1.read_namespaced_service(name=spec.name, namespace=namespace)
            body = build_service(spec, namespace)
            body.metadata.resource_version = current.metadata.resource_version
            body.spec.cluster_ip = current.spec.cluster_ip
            body.spec.cluster_i_ps = current.spec.cluster_i_ps
            logger.info("replacing_service", name=spec.name, namespace=namespace, type=spec.type)
            return self.core_v1.replace_namespaced_service(
                name=spec.name, namespace=namespace, body=body
            )
        except ApiException as e:
            _raise_for_api_exception(e, f"replace service {spec.name}")

    def delete_service(self, name: str, namespace: str) -> None:
        """Delete a service (and the provider load balancer behind it)."""
        try:
            logger.info("deleting_service", name=name, namespace=namespace)
            self.core_v1.delete_namespaced_service(name=name, namespace=namespace)
        except ApiException as e:
            _raise_for_api_exception(e, f"delete service {name}")
