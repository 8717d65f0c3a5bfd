"""Main CLI entry point using Typer."""

import logging
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from .. import __version__
from ..aws.credentials import CredentialValidationError, validate_credentials
from ..aws.gateway import RDSGateway
from ..clone.orchestrator import CloneLifecycle, RunOptions, RunReport
from ..clone.tags import TagRegistry
from ..clone.waiter import StatusWaiter
from ..errors import ConfigError, NotFoundError, QueryError, RdsTryError, WaitFailedError
from ..models.query import ExportConfig, QueryBatchResult
from ..models.resource import DBInstance, DBSnapshot
from ..query.executor import QueryExecutor
from ..query.loader import load_queries
from ..utils.logging import setup_logging
from .config import Config

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="rdstry",
    help="rdstry - run SQL against a throwaway clone of an RDS instance",
    add_completion=False,
)

# Create Rich console for output
console = Console()

# Global config
config: Optional[Config] = None


@app.callback()
def main(
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="AWS profile name"),
    region: Optional[str] = typer.Option(None, "--region", "-r", help="AWS region"),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Config file (default: ~/.rdstry/config.yaml or $RDSTRY_CONFIG)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output except errors"),
):
    """rdstry - run SQL against a throwaway clone of an RDS instance."""
    global config

    try:
        config = Config.load(config_path)
    except ConfigError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=1)

    # Override with CLI options
    if profile:
        config.aws_profile = profile
    if region:
        config.region = region

    # Setup logging
    log_level = "ERROR" if quiet else ("DEBUG" if verbose else config.log_level)
    setup_logging(level=log_level, verbose=verbose, log_file=config.log_file)


@app.command()
def version():
    """Show version information."""
    console.print(f"rdstry version {__version__}")


def build_lifecycle(export_config: Optional[ExportConfig] = None) -> CloneLifecycle:
    """Wire the gateway, tag registry, waiter and executor from the config.

    Raises:
        CredentialValidationError: If AWS credentials are invalid
    """
    identity = validate_credentials(config.aws_profile, config.region)
    gateway = RDSGateway.create(
        account_id=identity["account_id"],
        region=config.region,
        profile_name=config.aws_profile,
        partition=identity["partition"],
    )
    executor = QueryExecutor(
        user=config.rds.user,
        password=config.rds.password,
        export_config=export_config or config.out,
    )
    return CloneLifecycle(
        gateway=gateway,
        tag_registry=TagRegistry(gateway),
        waiter=StatusWaiter(gateway),
        executor=executor,
    )


@app.command()
def run(
    source: str = typer.Argument(..., help="Identifier of the DB instance to clone"),
    queries_file: str = typer.Option(..., "--queries", "-f", help="YAML file with the queries to run"),
    instance_class: Optional[str] = typer.Option(None, "--instance-class", "-c", help="Instance class for the clone"),
    multi_az: Optional[bool] = typer.Option(None, "--multi-az/--single-az", help="Create the clone as Multi-AZ"),
    fresh_snapshot: bool = typer.Option(
        False, "--fresh-snapshot", help="Take a new snapshot of the source instead of using the latest one"
    ),
    export: Optional[bool] = typer.Option(None, "--export/--no-export", help="Write a CSV file per query"),
    out_dir: Optional[str] = typer.Option(None, "--out-dir", "-o", help="Directory for CSV files"),
    bom: Optional[bool] = typer.Option(None, "--bom/--no-bom", help="Write CSV files with a UTF-8 BOM"),
):
    """Clone an instance, run queries against the clone, then delete it.

    The clone is restored from the source's latest available snapshot and
    gets the source's parameter group and security groups. Each query's
    result set is written to a CSV file.
    """
    try:
        queries = load_queries(queries_file)

        export_config = ExportConfig(
            enabled=config.out.enabled if export is None else export,
            root=out_dir or config.out.root,
            bom=config.out.bom if bom is None else bom,
        )
        lifecycle = build_lifecycle(export_config)

        options = RunOptions(
            source_identifier=source,
            queries=queries,
            instance_class=instance_class or config.rds.instance_class,
            multi_az=config.rds.multi_az if multi_az is None else multi_az,
            fresh_snapshot=fresh_snapshot,
        )

        console.print(f"🚀 Cloning [bold]{source}[/bold] to run {len(queries)} queries (this takes a while)")
        report = lifecycle.run(options)

        _display_report(report)
        console.print(f"✓ Deleted clone {report.clone_identifier}", style="green")

    except (ConfigError, NotFoundError, CredentialValidationError) as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=1)
    except WaitFailedError as e:
        console.print(f"✗ {e}", style="bold red")
        console.print("  The clone was left in place. Remove it with: rdstry rm --instances", style="yellow")
        raise typer.Exit(code=2)
    except QueryError as e:
        if e.batch is not None and e.batch.results:
            _display_batch(f"Completed queries on {source} clone", e.batch)
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=2)
    except RdsTryError as e:
        console.print(f"✗ {e}", style="bold red")
        logger.exception("Error in run command")
        raise typer.Exit(code=2)


@app.command("ls")
def list_resources(
    instances: bool = typer.Option(True, "--instances/--no-instances", help="List clone instances"),
    snapshots: bool = typer.Option(True, "--snapshots/--no-snapshots", help="List snapshots"),
):
    """List DB instances and snapshots created by rdstry."""
    try:
        lifecycle = build_lifecycle()

        if instances:
            _display_instances(lifecycle.discover_owned_instances())
        if snapshots:
            _display_snapshots(lifecycle.discover_owned_snapshots())

    except CredentialValidationError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=1)
    except RdsTryError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=2)


@app.command("rm")
def remove_resources(
    instances: bool = typer.Option(False, "--instances", "-i", help="Delete clone instances"),
    snapshots: bool = typer.Option(False, "--snapshots", "-s", help="Delete snapshots"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
):
    """Delete DB instances and snapshots created by rdstry.

    Only resources carrying both rdstry ownership tags are deleted. With
    neither --instances nor --snapshots, both kinds are deleted.
    """
    if not instances and not snapshots:
        instances = snapshots = True

    try:
        lifecycle = build_lifecycle()

        owned_instances: List[DBInstance] = lifecycle.discover_owned_instances() if instances else []
        owned_snapshots: List[DBSnapshot] = lifecycle.discover_owned_snapshots() if snapshots else []

        if not owned_instances and not owned_snapshots:
            console.print("No rdstry resources found", style="yellow")
            raise typer.Exit(code=0)

        if owned_instances:
            _display_instances(owned_instances)
        if owned_snapshots:
            _display_snapshots(owned_snapshots)

        if not yes:
            total = len(owned_instances) + len(owned_snapshots)
            if not typer.confirm(f"Delete {total} resources?"):
                console.print("Cancelled", style="yellow")
                raise typer.Exit(code=0)

        if owned_instances:
            deleted = lifecycle.delete_all(owned_instances)
            console.print(f"✓ Deleted {len(deleted)} DB instances", style="green")
        if owned_snapshots:
            deleted = lifecycle.delete_all(owned_snapshots)
            console.print(f"✓ Deleted {len(deleted)} DB snapshots", style="green")

    except typer.Exit:
        raise
    except CredentialValidationError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=1)
    except RdsTryError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=2)


def _display_report(report: RunReport) -> None:
    _display_batch(f"Queries on {report.clone_identifier}", report.batch)


def _display_batch(title: str, batch: QueryBatchResult) -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right")
    table.add_column("Query")
    table.add_column("Elapsed", justify="right")
    table.add_column("CSV")

    for index, result in enumerate(batch.results, start=1):
        if result.csv_path is None:
            csv_cell = "-"
        elif result.exported:
            csv_cell = result.csv_path
        else:
            csv_cell = f"[red]failed: {result.csv_path}[/red]"
        table.add_row(str(index), result.name, f"{result.elapsed.total_seconds():.3f}s", csv_cell)

    console.print(table)


def _display_instances(instances: List[DBInstance]) -> None:
    table = Table(title="rdstry DB Instances", show_header=True, header_style="bold cyan")
    table.add_column("Identifier")
    table.add_column("Status")
    table.add_column("Engine")
    table.add_column("Class")

    for instance in instances:
        table.add_row(instance.identifier, instance.status, instance.engine, instance.instance_class or "-")

    console.print(table)


def _display_snapshots(snapshots: List[DBSnapshot]) -> None:
    table = Table(title="rdstry DB Snapshots", show_header=True, header_style="bold cyan")
    table.add_column("Identifier")
    table.add_column("Source")
    table.add_column("Status")
    table.add_column("Created")

    for snapshot in snapshots:
        created = snapshot.created_at.strftime("%Y-%m-%d %H:%M:%S UTC") if snapshot.created_at else "-"
        table.add_row(snapshot.identifier, snapshot.instance_identifier, snapshot.status, created)

    console.print(table)


def cli_main():
    """Console script entry point."""
    app()


if __name__ == "__main__":
    cli_main()
