"""Provisioning workflow stages."""

from lode.workflow.cluster_provisioner import ClusterProvisioner
from lode.workflow.credentials import CredentialMaterializer
from lode.workflow.orchestrator import ProvisioningWorkflow, TeardownStep
from lode.workflow.stabilization import StabilizationGate
from lode.workflow.workload_deployer import WorkloadDeployer

__all__ = [
    "ClusterProvisioner",
    "CredentialMaterializer",
    "ProvisioningWorkflow",
    "StabilizationGate",
    "TeardownStep",
    "WorkloadDeployer",
]
