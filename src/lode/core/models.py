"""Core data models for LODE."""

import re
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from lode.core.exceptions import ValidationError

# Linode labels: 3-32 chars, alphanumeric start, then letters, digits, '-', '_', '.'
LABEL_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{2,31}$")

# Kubernetes DNS-1123 label (namespace, deployment, service and app names)
DNS_LABEL_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]{0,61}[a-z0-9])?$")


class WorkflowState(str, Enum):
    """Provisioning workflow state enum."""

    UNPROVISIONED = "unprovisioned"
    CLUSTER_REQUESTED = "cluster-requested"
    CLUSTER_READY = "cluster-ready"
    CREDENTIALS_WRITTEN = "credentials-written"
    STABILIZING = "stabilizing"
    NAMESPACE_READY = "namespace-ready"
    DEPLOYMENT_READY = "deployment-ready"
    SERVICE_READY = "service-ready"
    ENDPOINT_ASSIGNED = "endpoint-assigned"
    FAILED = "failed"
    TEARDOWN = "teardown"
    TORN_DOWN = "torn-down"


class ClusterSpec(BaseModel):
    """Requested shape of one managed cluster, identified by its label."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., description="Unique cluster label")
    kubernetes_version: str = Field("1.31", description="Kubernetes minor version")
    region: str = Field("gb-lon", description="Provider region")
    node_type: str = Field("g6-standard-2", description="Node machine type")
    node_count: int = Field(3, description="Nodes in the single node pool")

    def ensure_valid(self) -> None:
        """Check the spec before it is submitted to the provider.

        Raises:
            ValidationError: If any field is out of range or malformed
        """
        problems = []

        if not LABEL_PATTERN.match(self.label or ""):
            problems.append(f"label {self.label!r} must be 3-32 characters of [A-Za-z0-9_.-]")
        if self.node_count < 1:
            problems.append(f"node_count must be >= 1, got {self.node_count}")
        if not self.region:
            problems.append("region must not be empty")
        if not self.node_type:
            problems.append("node_type must not be empty")
        if not self.kubernetes_version:
            problems.append("kubernetes_version must not be empty")

        if problems:
            raise ValidationError(f"Invalid cluster spec: {'; '.join(problems)}")


class ClusterHandle(BaseModel):
    """Provider-side identity of a ready cluster."""

    model_config = ConfigDict(frozen=True)

    id: int
    label: str
    region: str
    api_endpoint: str
    kubeconfig_blob: SecretStr = Field(..., description="Base64 kubeconfig, never logged")


class CredentialArtifact(BaseModel):
    """Kubeconfig written to local disk.

    Lives independently of the cluster it describes: teardown never removes it.
    """

    path: str
    cluster_id: int
    written_at: datetime = Field(default_factory=datetime.utcnow)


class ProbeSpec(BaseModel):
    """HTTP GET probe timing."""

    path: str = "/actuator/health"
    port: int | None = None
    initial_delay_seconds: int = 60
    period_seconds: int = 10
    timeout_seconds: int = 5
    failure_threshold: int = 3


def default_liveness_probe() -> ProbeSpec:
    return ProbeSpec(initial_delay_seconds=60, period_seconds=10)


def default_readiness_probe() -> ProbeSpec:
    return ProbeSpec(initial_delay_seconds=30, period_seconds=5)


class ResourceRequirements(BaseModel):
    """Container resource requests and limits."""

    requests: dict[str, str] = Field(default_factory=lambda: {"cpu": "250m", "memory": "512Mi"})
    limits: dict[str, str] = Field(default_factory=lambda: {"cpu": "500m", "memory": "1Gi"})


class WorkloadSpec(BaseModel):
    """One application deployment."""

    app_name: str = "springboot-app"
    namespace: str = "springboot"
    container_image: str = "springio/gs-spring-boot-docker:latest"
    container_port: int = 8080
    replicas: int = 2
    resources: ResourceRequirements = Field(default_factory=ResourceRequirements)
    liveness_probe: ProbeSpec = Field(default_factory=default_liveness_probe)
    readiness_probe: ProbeSpec = Field(default_factory=default_readiness_probe)

    def ensure_valid(self) -> None:
        """Check the workload spec before it is submitted.

        Raises:
            ValidationError: If the spec is malformed
        """
        problems = []

        if not DNS_LABEL_PATTERN.match(self.app_name or ""):
            problems.append(f"app_name {self.app_name!r} is not a valid DNS-1123 label")
        if not DNS_LABEL_PATTERN.match(self.namespace or ""):
            problems.append(f"namespace {self.namespace!r} is not a valid DNS-1123 label")
        if not self.container_image:
            problems.append("container_image must not be empty")
        if not 1 <= self.container_port <= 65535:
            problems.append(f"container_port {self.container_port} out of range")
        if self.replicas < 1:
            problems.append(f"replicas must be >= 1, got {self.replicas}")

        for kind, probe in (("liveness", self.liveness_probe), ("readiness", self.readiness_probe)):
            if not probe.path.startswith("/"):
                problems.append(f"{kind} probe path must start with '/'")
            if probe.period_seconds < 1 or probe.initial_delay_seconds < 0:
                problems.append(f"{kind} probe timing must be positive")

        # Readiness gates traffic before liveness starts restarting containers
        if self.readiness_probe.initial_delay_seconds > self.liveness_probe.initial_delay_seconds:
            problems.append("readiness initial delay must not exceed liveness initial delay")
        if self.readiness_probe.period_seconds > self.liveness_probe.period_seconds:
            problems.append("readiness period must not exceed liveness period")

        if problems:
            raise ValidationError(f"Invalid workload spec: {'; '.join(problems)}")


class ServiceSpec(BaseModel):
    """LoadBalancer service exposing a workload."""

    name: str = "springboot-service"
    app_name: str = "springboot-app"
    port: int = 80
    target_port: int = 8080
    protocol: str = "TCP"
    type: str = "LoadBalancer"

    def ensure_valid(self) -> None:
        """Check the service spec before it is submitted.

        Raises:
            ValidationError: If the spec is malformed
        """
        problems = []

        if not DNS_LABEL_PATTERN.match(self.name or ""):
            problems.append(f"name {self.name!r} is not a valid DNS-1123 label")
        for field_name in ("port", "target_port"):
            value = getattr(self, field_name)
            if not 1 <= value <= 65535:
                problems.append(f"{field_name} {value} out of range")
        if self.protocol not in ("TCP", "UDP", "SCTP"):
            problems.append(f"unsupported protocol {self.protocol!r}")
        if self.type != "LoadBalancer":
            problems.append("only LoadBalancer services are supported")

        if problems:
            raise ValidationError(f"Invalid service spec: {'; '.join(problems)}")


class ExternalEndpoint(BaseModel):
    """Address assigned by the provider's load balancer; ``ip`` is None while pending."""

    ip: str | None = None

    @property
    def is_assigned(self) -> bool:
        return bool(self.ip)

    @property
    def url(self) -> str | None:
        """Application URL, or None while the address is pending."""
        if not self.is_assigned:
            return None
        return f"http://{self.ip}"


class NamespaceHandle(BaseModel):
    """Created (or pre-existing) namespace."""

    name: str
    existed: bool = False


class DeploymentHandle(BaseModel):
    """Created deployment."""

    name: str
    namespace: str
    replicas: int


class ServiceHandle(BaseModel):
    """Created service and its external endpoint."""

    name: str
    namespace: str
    endpoint: ExternalEndpoint = Field(default_factory=ExternalEndpoint)


class StateTransition(BaseModel):
    """One recorded workflow state change."""

    state: WorkflowState
    at: datetime = Field(default_factory=datetime.utcnow)


class WorkflowResult(BaseModel):
    """Outcome of a provisioning run."""

    cluster: ClusterHandle
    credentials: CredentialArtifact
    namespace: NamespaceHandle
    deployment: DeploymentHandle
    service: ServiceHandle
    state: WorkflowState
    history: list[StateTransition] = Field(default_factory=list)

    def outputs(self, include_sensitive: bool = False) -> dict[str, Any]:
        """Values surfaced to the operator.

        Args:
            include_sensitive: Include the kubeconfig blob

        Returns:
            Dictionary of output name to value
        """
        outputs: dict[str, Any] = {
            "cluster_id": self.cluster.id,
            "api_endpoint": self.cluster.api_endpoint,
            "kubeconfig_path": self.credentials.path,
            "load_balancer_ip": self.service.endpoint.ip,
            "app_url": self.service.endpoint.url,
        }
        if include_sensitive:
            outputs["kubeconfig"] = self.cluster.kubeconfig_blob.get_secret_value()
        return outputs
