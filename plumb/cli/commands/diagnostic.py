"""plumb diagnostic: Bundle configuration exports, system facts and logs into one zip."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from plumb.cli.commands import get_run_context
from plumb.exceptions import PlumbError

console = Console()


def diagnostic_export(
    ctx: typer.Context,
    tenant_config: Path = typer.Option(..., "--tenant-config", "-t", help="Tenant configuration export."),
    system_config: Optional[Path] = typer.Option(
        None, "--system-config", "-s", help="System configuration export (default: collected locally)."
    ),
    account_data: Optional[Path] = typer.Option(None, "--account-data", help="Account data export."),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="Directory of log files to include."),
    output_dir: Path = typer.Option(Path("."), "--output-dir", "-o", help="Where to write the archive."),
):
    """Export a diagnostic bundle for support.

    Example:
        plumb diagnostic -t tenant.json --log-dir /var/log/killbill
    """
    from plumb.diagnostics import DiagnosticExporter

    try:
        with get_run_context(ctx) as run_ctx:
            archive = DiagnosticExporter(run_ctx).export(
                tenant_config,
                system_config_file=system_config,
                account_file=account_data,
                log_dir=log_dir,
                output_dir=output_dir,
            )
    except (PlumbError, FileNotFoundError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Diagnostic data exported under [bold]{archive}[/bold]")
