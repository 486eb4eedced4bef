"""
Main CLI entry point for OpenStack Reporter.

Shows the saved resource report, or collects a fresh one.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from openstack_reporter import __version__
from openstack_reporter.core.config import ConfigManager
from openstack_reporter.core.exceptions import (
    AuthenticationError, ConfigurationError, DataUnavailableError, ReporterError,
    ServiceError, UserCancelled
)
from openstack_reporter.cli.keyboard import escape_listener, poll_escape, show_escape_hint
from openstack_reporter.services.inventory import InventoryService
from openstack_reporter.services.models import Report, ResourceType
from openstack_reporter.services.progress import (
    CallbackProgressReporter, ProgressEvent, ProgressEventType
)
from openstack_reporter.state.snapshot_manager import serialize_report


console = Console()
err_console = Console(stderr=True)

# Exit codes for different error types
EXIT_SUCCESS = 0
EXIT_GENERAL_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_AUTH_ERROR = 3
EXIT_SERVICE_ERROR = 4
EXIT_USER_CANCELLED = 130

# Display label per resource type
TYPE_LABELS = {
    ResourceType.SERVER: "Servers",
    ResourceType.VOLUME: "Volumes",
    ResourceType.FLOATING_IP: "Floating IPs",
    ResourceType.ROUTER: "Routers",
    ResourceType.NETWORK: "Networks",
    ResourceType.LOAD_BALANCER: "Load Balancers",
    ResourceType.VPN_CONNECTION: "VPN Connections",
    ResourceType.CLUSTER: "K8s Clusters",
}


def setup_logging(verbose: bool) -> None:
    """Route library logging through rich on stderr."""
    handler = RichHandler(console=err_console, rich_tracebacks=True, show_path=verbose)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)

    # keystoneauth and openstacksdk are chatty at debug level
    if verbose:
        logging.getLogger("keystoneauth").setLevel(logging.INFO)
        logging.getLogger("openstack").setLevel(logging.INFO)


def print_progress(event: ProgressEvent) -> None:
    """Render one progress event as a status line and poll for ESC."""
    if event.type == ProgressEventType.PROJECT_START:
        err_console.print(
            f"🔍 [{event.current_step}/{event.total_steps}] [bold]{event.message}[/bold]"
        )
    elif event.type == ProgressEventType.PROJECT_COMPLETE:
        err_console.print(f"✅ [green]{event.message}[/green]")
    elif event.type in (ProgressEventType.PROJECT_ERROR, ProgressEventType.RESOURCE_ERROR):
        prefix = f"{event.project}: " if event.project else ""
        err_console.print(f"❌ [red]{prefix}{event.message}[/red]")
    elif event.type == ProgressEventType.RESOURCE_COMPLETE:
        err_console.print(f"   [dim]{event.message}[/dim]")
    elif event.type == ProgressEventType.ERROR:
        err_console.print(f"❌ [red]{event.message}[/red]")
    elif event.type in (ProgressEventType.START, ProgressEventType.PROGRESS, ProgressEventType.COMPLETE):
        err_console.print(f"[cyan]{event.message}[/cyan]")

    poll_escape()


def render_report(report: Report) -> None:
    """Print the summary table and the per-project breakdown."""
    generated = report.generated_at.strftime('%Y-%m-%d %H:%M:%S %Z')
    console.print(f"☁️  [bold]OpenStack resources[/bold] [dim](generated {generated})[/dim]")
    console.print()

    summary = Table(title="Summary")
    summary.add_column("Resource type", style="cyan")
    summary.add_column("Count", justify="right", style="green")
    summary.add_row("Projects", str(report.summary.total_projects))
    for resource_type, label in TYPE_LABELS.items():
        summary.add_row(label, str(report.summary.count_for(resource_type)))
    summary.add_row("[bold]Total resources[/bold]", f"[bold]{report.summary.total_resources}[/bold]")
    console.print(summary)

    grouped = report.resources_by_project()
    if not grouped:
        console.print("[yellow]No resources found[/yellow]")
        return

    breakdown = Table(title="By project")
    breakdown.add_column("Project", style="cyan", no_wrap=True)
    breakdown.add_column("Total", justify="right", style="bold")
    breakdown.add_column("Resources")

    for project_name in sorted(grouped):
        resources = grouped[project_name]
        counts = [
            f"{label}: {sum(1 for r in resources if r.type == rt)}"
            for rt, label in TYPE_LABELS.items()
            if any(r.type == rt for r in resources)
        ]
        breakdown.add_row(project_name, str(len(resources)), ", ".join(counts))
    console.print(breakdown)


def render_status(status: Dict[str, Any]) -> None:
    table = Table(title="Snapshot status")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Report exists", "yes" if status['report_exists'] else "no")
    table.add_row("Checked at", status['last_check'])
    if 'report_age_human' in status:
        table.add_row("Report age", status['report_age_human'])
    console.print(table)


@click.command()
@click.option(
    "--refresh",
    is_flag=True,
    help="Collect a fresh report from OpenStack",
)
@click.option(
    "--status",
    is_flag=True,
    help="Show the status of the saved report",
)
@click.option(
    "--json", "as_json",
    is_flag=True,
    help="Print JSON instead of tables",
)
@click.option(
    "--project",
    help="Collect a single project (overrides OS_PROJECT_NAME)",
)
@click.option(
    "--insecure",
    is_flag=True,
    help="Disable TLS certificate verification",
)
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory holding saved reports",
)
@click.option(
    "--save-config",
    is_flag=True,
    help="Save the effective settings, without the password, to the config file",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable debug logging",
)
@click.version_option(version=__version__)
def main(
    refresh: bool = False,
    status: bool = False,
    as_json: bool = False,
    project: Optional[str] = None,
    insecure: bool = False,
    data_dir: Optional[Path] = None,
    save_config: bool = False,
    verbose: bool = False,
) -> None:
    """
    ☁️  OpenStack Reporter - resource inventory across projects

    Shows the saved report, collecting one when none exists.
    """
    setup_logging(verbose)

    try:
        config_manager = ConfigManager()
        config = config_manager.load_config(
            project_name=project,
            insecure=True if insecure else None,
            data_dir=data_dir,
        )
        if save_config:
            config_manager.save_config(config)
            console.print(f"✅ [green]Settings saved to {config_manager.get_config_path()}[/green]")
            return

        service = InventoryService(config)

        if status:
            state = service.status()
            if as_json:
                click.echo(json.dumps(state, indent=2))
            else:
                render_status(state)
            return

        if refresh:
            progress = CallbackProgressReporter(print_progress)
            with escape_listener() as cancel_event:
                show_escape_hint(err_console)
                report = service.refresh(progress, cancel_event)
        else:
            report = service.get_report()

        if as_json:
            click.echo(json.dumps(serialize_report(report), indent=2))
        else:
            render_report(report)

    except (KeyboardInterrupt, UserCancelled):
        err_console.print("\n⚠️  [yellow]Operation cancelled by user[/yellow]")
        sys.exit(EXIT_USER_CANCELLED)
    except ConfigurationError as e:
        err_console.print(f"❌ [red]Configuration error: {e}[/red]")
        sys.exit(EXIT_CONFIG_ERROR)
    except AuthenticationError as e:
        err_console.print(f"❌ [red]Authentication error: {e}[/red]")
        sys.exit(EXIT_AUTH_ERROR)
    except (ServiceError, DataUnavailableError) as e:
        err_console.print(f"❌ [red]Service error: {e}[/red]")
        sys.exit(EXIT_SERVICE_ERROR)
    except ReporterError as e:
        err_console.print(f"❌ [red]{e}[/red]")
        sys.exit(EXIT_GENERAL_ERROR)
    except Exception as e:
        err_console.print(f"💥 [red]Unexpected error: {e}[/red]")
        err_console.print("[dim]Please report this issue with the full error message.[/dim]")
        sys.exit(EXIT_GENERAL_ERROR)


if __name__ == "__main__":
    main()
