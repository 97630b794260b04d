"""Provisioning workflow: ordered stages, state machine and teardown."""

from collections.abc import Callable
from dataclasses import dataclass

from lode.core.config import LodeConfig, WaitConfig
from lode.core.exceptions import WorkflowStateError
from lode.core.models import (
    ClusterSpec,
    CredentialArtifact,
    ServiceSpec,
    StateTransition,
    WorkflowResult,
    WorkflowState,
    WorkloadSpec,
)
from lode.interfaces.cloud_provider import CloudProvider
from lode.interfaces.kubernetes_provider import KubernetesProvider
from lode.utils.logging import get_logger, log_error
from lode.workflow.cluster_provisioner import ClusterProvisioner
from lode.workflow.credentials import CredentialMaterializer
from lode.workflow.stabilization import StabilizationGate
from lode.workflow.workload_deployer import WorkloadDeployer

logger = get_logger(__name__)

KubernetesProviderFactory = Callable[[CredentialArtifact], KubernetesProvider]

_PROVISIONING_ORDER = [
    WorkflowState.UNPROVISIONED,
    WorkflowState.CLUSTER_REQUESTED,
    WorkflowState.CLUSTER_READY,
    WorkflowState.CREDENTIALS_WRITTEN,
    WorkflowState.STABILIZING,
    WorkflowState.NAMESPACE_READY,
    WorkflowState.DEPLOYMENT_READY,
    WorkflowState.SERVICE_READY,
    WorkflowState.ENDPOINT_ASSIGNED,
]

TERMINAL_STATES = frozenset(
    {WorkflowState.ENDPOINT_ASSIGNED, WorkflowState.FAILED, WorkflowState.TORN_DOWN}
)


def _allowed_transitions() -> dict[WorkflowState, set[WorkflowState]]:
    allowed: dict[WorkflowState, set[WorkflowState]] = {state: set() for state in WorkflowState}

    for current, following in zip(_PROVISIONING_ORDER, _PROVISIONING_ORDER[1:]):
        allowed[current].add(following)

    for state in WorkflowState:
        if state not in TERMINAL_STATES:
            allowed[state].add(WorkflowState.FAILED)
        if state is not WorkflowState.TEARDOWN:
            allowed[state].add(WorkflowState.TEARDOWN)

    # Re-running after a failure or a teardown reconciles by label
    allowed[WorkflowState.FAILED].add(WorkflowState.CLUSTER_REQUESTED)
    allowed[WorkflowState.TORN_DOWN].add(WorkflowState.CLUSTER_REQUESTED)
    allowed[WorkflowState.TEARDOWN].add(WorkflowState.TORN_DOWN)
    return allowed


ALLOWED_TRANSITIONS = _allowed_transitions()


def default_kubernetes_factory(artifact: CredentialArtifact) -> KubernetesProvider:
    """Build a Kubernetes adapter authenticated with the credential artifact."""
    from lode.adapters.k8s_adapter import KubernetesAdapter

    return KubernetesAdapter(kubeconfig_path=artifact.path)


@dataclass
class TeardownStep:
    """One resource considered by teardown."""

    kind: str
    name: str
    deleted: bool


class ProvisioningWorkflow:
    """Runs the four stages strictly in order and records every state change.

    Any stage failure moves the workflow to FAILED and re-raises the original
    error; no stage recovers from a predecessor's failure.
    """

    def __init__(
        self,
        provisioner: ClusterProvisioner,
        materializer: CredentialMaterializer,
        gate: StabilizationGate,
        cluster_spec: ClusterSpec,
        workload_spec: WorkloadSpec,
        service_spec: ServiceSpec,
        kubernetes_factory: KubernetesProviderFactory = default_kubernetes_factory,
        gate_mode: str = "poll",
        waits: WaitConfig | None = None,
    ):
        self.provisioner = provisioner
        self.materializer = materializer
        self.gate = gate
        self.cluster_spec = cluster_spec
        self.workload_spec = workload_spec
        self.service_spec = service_spec
        self.kubernetes_factory = kubernetes_factory
        self.gate_mode = gate_mode
        self.waits = waits or WaitConfig()

        self.state = WorkflowState.UNPROVISIONED
        self.history: list[StateTransition] = [StateTransition(state=self.state)]

    @classmethod
    def from_config(
        cls,
        config: LodeConfig,
        cloud_provider: CloudProvider,
        kubernetes_factory: KubernetesProviderFactory = default_kubernetes_factory,
    ) -> "ProvisioningWorkflow":
        """Wire every stage from configuration."""
        provisioner = ClusterProvisioner(
            cloud_provider,
            ready_timeout=config.waits.cluster_ready_timeout_seconds,
            poll_interval=config.waits.poll_interval_seconds,
        )
        gate = StabilizationGate(
            fixed_delay=config.stabilization.fixed_delay_seconds,
            settle_seconds=config.stabilization.settle_seconds,
            max_attempts=config.stabilization.max_attempts,
            min_wait=config.stabilization.min_wait_seconds,
            max_wait=config.stabilization.max_wait_seconds,
        )
        return cls(
            provisioner=provisioner,
            materializer=CredentialMaterializer(config.credentials_path),
            gate=gate,
            cluster_spec=config.cluster,
            workload_spec=config.workload,
            service_spec=config.service,
            kubernetes_factory=kubernetes_factory,
            gate_mode=config.stabilization.mode,
            waits=config.waits,
        )

    def _transition(self, new_state: WorkflowState) -> None:
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise WorkflowStateError(
                f"Illegal transition {self.state.value} -> {new_state.value}"
            )
        logger.info("workflow_transition", from_state=self.state.value, to_state=new_state.value)
        self.state = new_state
        self.history.append(StateTransition(state=new_state))

    def _fail(self, error: Exception) -> None:
        log_error(logger, error, operation="workflow", state=self.state.value)
        if WorkflowState.FAILED in ALLOWED_TRANSITIONS[self.state]:
            self._transition(WorkflowState.FAILED)

    def _deployer(self, kubernetes_provider: KubernetesProvider) -> WorkloadDeployer:
        return WorkloadDeployer(
            kubernetes_provider,
            poll_interval=self.waits.poll_interval_seconds,
            deployment_timeout=self.waits.deployment_ready_timeout_seconds,
            external_ip_timeout=self.waits.external_ip_timeout_seconds,
        )

    async def _stabilize(self, kubernetes_provider: KubernetesProvider) -> None:
        if self.gate_mode == "fixed":
            await self.gate.wait()
        else:
            await self.gate.wait_until_ready(kubernetes_provider.get_server_version)

    async def run(self) -> WorkflowResult:
        """Provision the cluster and deploy the application.

        Returns:
            WorkflowResult in state ENDPOINT_ASSIGNED

        Raises:
            LodeError: Whatever the failing stage raised, unchanged
        """
        try:
            # Fail before anything is submitted
            self.cluster_spec.ensure_valid()
            self.workload_spec.ensure_valid()
            self.service_spec.ensure_valid()

            self._transition(WorkflowState.CLUSTER_REQUESTED)
            cluster = await self.provisioner.request(self.cluster_spec)
            handle = await self.provisioner.wait_until_ready(cluster)
            self._transition(WorkflowState.CLUSTER_READY)

            artifact = self.materializer.materialize(handle)
            self._transition(WorkflowState.CREDENTIALS_WRITTEN)

            kubernetes_provider = self.kubernetes_factory(artifact)
            self._transition(WorkflowState.STABILIZING)
            await self._stabilize(kubernetes_provider)

            deployer = self._deployer(kubernetes_provider)
            namespace = await deployer.create_namespace(self.workload_spec.namespace)
            self._transition(WorkflowState.NAMESPACE_READY)

            deployment = await deployer.create_deployment(self.workload_spec, namespace)
            self._transition(WorkflowState.DEPLOYMENT_READY)

            service = await deployer.create_service(self.service_spec, namespace)
            self._transition(WorkflowState.SERVICE_READY)

            # create_service only returns once the IP is assigned
            self._transition(WorkflowState.ENDPOINT_ASSIGNED)
        except Exception as e:
            self._fail(e)
            raise

        result = WorkflowResult(
            cluster=handle,
            credentials=artifact,
            namespace=namespace,
            deployment=deployment,
            service=service,
            state=self.state,
            history=list(self.history),
        )
        logger.info("workflow_complete", cluster_id=handle.id, app_url=service.endpoint.url)
        return result

    async def teardown(self) -> list[TeardownStep]:
        """Delete service, deployment, namespace, then cluster.

        The credential artifact is kept: the Kubernetes deletions authenticate
        with it, and it is only removed by explicit operator action. The
        kubeconfig is fetched for the cluster being deleted, and a missing or
        stale artifact is rewritten from it before any Kubernetes call.

        Returns:
            Steps in the order they were executed
        """
        self._transition(WorkflowState.TEARDOWN)
        steps: list[TeardownStep] = []
        namespace = self.workload_spec.namespace

        try:
            cluster = await self.provisioner.find(self.cluster_spec.label)

            if cluster is not None:
                handle = await self.provisioner.describe(cluster)

                if handle is not None:
                    artifact = self.materializer.ensure(handle)
                    deployer = self._deployer(self.kubernetes_factory(artifact))
                    steps.append(
                        TeardownStep(
                            "service",
                            self.service_spec.name,
                            await deployer.delete_service(self.service_spec.name, namespace),
                        )
                    )
                    steps.append(
                        TeardownStep(
                            "deployment",
                            self.workload_spec.app_name,
                            await deployer.delete_deployment(
                                self.workload_spec.app_name, namespace
                            ),
                        )
                    )
                    steps.append(
                        TeardownStep(
                            "namespace", namespace, await deployer.delete_namespace(namespace)
                        )
                    )
                else:
                    logger.warning("teardown_without_credentials", cluster_id=cluster.id)

            steps.append(
                TeardownStep(
                    "cluster",
                    self.cluster_spec.label,
                    await self.provisioner.destroy(self.cluster_spec.label),
                )
            )
            self._transition(WorkflowState.TORN_DOWN)
        except Exception as e:
            self._fail(e)
            raise

        logger.info(
            "teardown_complete",
            steps=[(step.kind, step.name, step.deleted) for step in steps],
            credentials_kept=str(self.materializer.path),
        )
        return steps
