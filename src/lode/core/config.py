"""Configuration management for LODE."""

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, SecretStr

from lode.core.exceptions import ConfigurationError
from lode.core.models import ClusterSpec, ServiceSpec, WorkloadSpec

TOKEN_ENV_VAR = "LINODE_TOKEN"


class LinodeConfig(BaseModel):
    """Linode API configuration."""

    token: SecretStr | None = None
    token_secret: str | None = None  # AWS Secrets Manager secret name
    aws_region: str = "us-east-1"
    api_url: str = "https://api.linode.com/v4"
    request_timeout_seconds: int = 30


class CredentialsConfig(BaseModel):
    """Credential artifact configuration."""

    path: str = "~/.lode/kubeconfig.yaml"


class StabilizationConfig(BaseModel):
    """Control-plane stabilization gate configuration."""

    mode: Literal["poll", "fixed"] = "poll"
    fixed_delay_seconds: float = 30.0
    settle_seconds: float = 0.0
    max_attempts: int = 8
    min_wait_seconds: float = 2.0
    max_wait_seconds: float = 60.0


class WaitConfig(BaseModel):
    """Bounds for provider-side readiness waits."""

    poll_interval_seconds: float = 10.0
    cluster_ready_timeout_seconds: float = 1200.0
    deployment_ready_timeout_seconds: float = 600.0
    external_ip_timeout_seconds: float = 600.0


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"
    output: str = "stdout"


class LodeConfig(BaseModel):
    """Main LODE configuration."""

    linode: LinodeConfig = Field(default_factory=LinodeConfig)
    cluster: ClusterSpec = Field(default_factory=lambda: ClusterSpec(label="lode-cluster"))
    workload: WorkloadSpec = Field(default_factory=WorkloadSpec)
    service: ServiceSpec = Field(default_factory=ServiceSpec)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    stabilization: StabilizationConfig = Field(default_factory=StabilizationConfig)
    waits: WaitConfig = Field(default_factory=WaitConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "LodeConfig":
        """Load configuration from YAML file.

        A ``LINODE_TOKEN`` environment variable overrides the token in the file.

        Args:
            path: Path to configuration file

        Returns:
            LodeConfig instance

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        config_path = Path(path).expanduser()

        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration must be a mapping: {config_path}")

        env_token = os.environ.get(TOKEN_ENV_VAR)
        if env_token:
            data.setdefault("linode", {})["token"] = env_token

        try:
            return cls(**data)
        except Exception as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @property
    def credentials_path(self) -> Path:
        """Expanded credential artifact path."""
        return Path(self.credentials.path).expanduser()

    def validate_specs(self) -> None:
        """Validate every spec and their cross-references.

        Raises:
            ValidationError: If a spec is malformed
            ConfigurationError: If the service does not target the workload
        """
        self.cluster.ensure_valid()
        self.workload.ensure_valid()
        self.service.ensure_valid()

        if self.service.app_name != self.workload.app_name:
            raise ConfigurationError(
                f"Service selects app {self.service.app_name!r} "
                f"but workload is {self.workload.app_name!r}"
            )
        if self.service.target_port != self.workload.container_port:
            raise ConfigurationError(
                f"Service target port {self.service.target_port} "
                f"does not match container port {self.workload.container_port}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary.

        Returns:
            Dictionary representation (secrets masked)
        """
        return self.model_dump()
