"""Main CLI entry point for LODE."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import click
from rich.console import Console
from rich.table import Table

from lode import __version__
from lode.core.exceptions import LodeError

if TYPE_CHECKING:
    from lode.core.config import LodeConfig
    from lode.interfaces.cloud_provider import CloudProvider

console = Console()


class LodeContext:
    """Shared context for CLI commands with lazy initialization."""

    def __init__(self, config_path: str):
        """Initialize context with config path.

        Args:
            config_path: Path to configuration file
        """
        self.config_path = config_path
        self._config: LodeConfig | None = None
        self._cloud_provider: CloudProvider | None = None

    @property
    def config(self) -> LodeConfig:
        """Get or create config lazily, configuring logging on first load."""
        if self._config is None:
            from lode.core.config import LodeConfig
            from lode.utils.logging import setup_logging

            self._config = LodeConfig.from_file(self.config_path)
            setup_logging(
                level=self._config.logging.level,
                format=self._config.logging.format,
                output=self._config.logging.output,
            )
        return self._config

    @property
    def cloud_provider(self) -> CloudProvider:
        """Get or create the Linode adapter lazily."""
        if self._cloud_provider is None:
            from lode.adapters.linode_adapter import LinodeAdapter
            from lode.utils.secrets import resolve_provider_token

            linode = self.config.linode
            self._cloud_provider = LinodeAdapter(
                token=resolve_provider_token(linode),
                api_url=linode.api_url,
                timeout=linode.request_timeout_seconds,
            )
        return self._cloud_provider

    def workflow(self) -> Any:
        """Build a provisioning workflow from the loaded configuration."""
        from lode.workflow.orchestrator import ProvisioningWorkflow

        return ProvisioningWorkflow.from_config(self.config, self.cloud_provider)


def _print_outputs(outputs: dict[str, Any]) -> None:
    table = Table(title="Outputs", show_header=True, header_style="bold")
    table.add_column("Name")
    table.add_column("Value", overflow="fold")
    for name, value in outputs.items():
        table.add_row(name, "" if value is None else str(value))
    console.print(table)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    type=click.Path(dir_okay=False),
    default="~/.lode/config.yaml",
    help="Path to configuration file",
)
@click.pass_context
def cli(ctx: click.Context, config: str) -> None:
    """Linode Orchestrated Deployment Engine (LODE) - Provision LKE and deploy an app."""
    ctx.obj = LodeContext(config_path=config)


@cli.command()
@click.option("--show-sensitive", is_flag=True, help="Also print the kubeconfig blob")
@click.pass_context
def up(ctx: click.Context, show_sensitive: bool) -> None:
    """Provision the cluster and deploy the application."""
    lode_ctx = ctx.obj

    try:
        config = lode_ctx.config
        console.print("[bold blue]LODE Up[/bold blue]")
        console.print(f"Cluster: {config.cluster.label} ({config.cluster.region})")
        console.print(f"Image: {config.workload.container_image}\n")
        config.validate_specs()

        workflow = lode_ctx.workflow()
        result = asyncio.run(workflow.run())
    except LodeError as e:
        console.print(f"[red]✗ {type(e).__name__}: {e}[/red]")
        ctx.exit(1)

    console.print(f"[green]✓ Application available at {result.service.endpoint.url}[/green]\n")
    _print_outputs(result.outputs(include_sensitive=show_sensitive))


@cli.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def down(ctx: click.Context, yes: bool) -> None:
    """Tear down service, deployment, namespace and cluster (credentials are kept)."""
    lode_ctx = ctx.obj

    try:
        config = lode_ctx.config
        if not yes:
            click.confirm(
                f"Destroy cluster {config.cluster.label!r} and everything on it?", abort=True
            )

        workflow = lode_ctx.workflow()
        steps = asyncio.run(workflow.teardown())
    except LodeError as e:
        console.print(f"[red]✗ {type(e).__name__}: {e}[/red]")
        ctx.exit(1)

    for step in steps:
        mark = "[green]deleted[/green]" if step.deleted else "[yellow]absent[/yellow]"
        console.print(f"  {step.kind} {step.name}: {mark}")
    console.print(
        f"\nCredential artifact kept at {config.credentials_path}; "
        "remove it with `lode forget-credentials`."
    )


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the cluster and the application endpoint."""
    from lode.core.exceptions import NotFoundError
    from lode.workflow.cluster_provisioner import ClusterProvisioner
    from lode.workflow.credentials import CredentialMaterializer
    from lode.workflow.orchestrator import default_kubernetes_factory
    from lode.workflow.workload_deployer import WorkloadDeployer

    lode_ctx = ctx.obj

    async def _status() -> dict[str, Any]:
        config = lode_ctx.config
        outputs: dict[str, Any] = {"cluster_label": config.cluster.label}

        cluster = await lode_ctx.cloud_provider.find_cluster(config.cluster.label)
        if cluster is None:
            outputs["cluster"] = "not provisioned"
            return outputs

        outputs["cluster_id"] = cluster.id
        outputs["cluster_status"] = cluster.status

        handle = await ClusterProvisioner(lode_ctx.cloud_provider).describe(cluster)
        if handle is None:
            outputs["endpoint"] = "unknown (kubeconfig not published)"
            return outputs

        artifact = CredentialMaterializer(config.credentials_path).ensure(handle)
        deployer = WorkloadDeployer(default_kubernetes_factory(artifact))
        try:
            endpoint = await deployer.get_endpoint(config.service.name, config.workload.namespace)
        except NotFoundError:
            outputs["endpoint"] = "service not created"
            return outputs

        outputs["endpoint"] = endpoint.url if endpoint.is_assigned else "pending"
        return outputs

    try:
        outputs = asyncio.run(_status())
    except LodeError as e:
        console.print(f"[red]✗ {type(e).__name__}: {e}[/red]")
        ctx.exit(1)

    _print_outputs(outputs)


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Validate configuration and specs without contacting the provider."""
    lode_ctx = ctx.obj

    try:
        config = lode_ctx.config
        console.print(f"[green]✓ Configuration loaded from {lode_ctx.config_path}[/green]")
        config.validate_specs()
    except LodeError as e:
        console.print(f"[red]✗ {e}[/red]")
        ctx.exit(1)

    console.print("[green]✓ Cluster, workload and service specs are valid[/green]")


@cli.command(name="forget-credentials")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def forget_credentials(ctx: click.Context, yes: bool) -> None:
    """Remove the local credential artifact."""
    from lode.workflow.credentials import CredentialMaterializer

    lode_ctx = ctx.obj

    try:
        path = lode_ctx.config.credentials_path
        if not yes:
            click.confirm(f"Remove {path}?", abort=True)
        removed = CredentialMaterializer(path).remove()
    except LodeError as e:
        console.print(f"[red]✗ {e}[/red]")
        ctx.exit(1)

    if removed:
        console.print(f"[green]✓ Removed {path}[/green]")
    else:
        console.print(f"[yellow]No credential artifact at {path}[/yellow]")


if __name__ == "__main__":
    cli()
