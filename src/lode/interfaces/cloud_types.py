"""Data types for CloudProvider interface."""

from dataclasses import dataclass, field


@dataclass
class ClusterInfo:
    """Managed cluster as reported by the provider."""

    id: int
    label: str
    region: str
    k8s_version: str
    status: str | None = None
    tags: list[str] = field(default_factory=list)


@dataclass
class NodePoolInfo:
    """Node pool with per-node readiness."""

    id: int
    type: str
    count: int
    node_statuses: list[str] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        """True when every requested node exists and reports ready."""
        return len(self.node_statuses) >= self.count and all(
            status == "ready" for status in self.node_statuses
        )
