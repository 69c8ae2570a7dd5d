"""plumb config: Show resolved plumb configuration."""

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from plumb.cli.commands import get_run_context
from plumb.exceptions import PlumbError

console = Console()


def config_show(ctx: typer.Context):
    """Show the resolved plumb configuration.

    Values come from CLI options, plumb.yml, PLUMB_* environment variables
    and .env, in that order of precedence.

    Example:
        plumb config
    """
    try:
        run_ctx = get_run_context(ctx)
    except (PlumbError, FileNotFoundError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1)

    with run_ctx:
        cfg = run_ctx.settings
        table = Table(
            box=box.ROUNDED,
            header_style="bold dim",
            show_lines=False,
            title="[bold]plumb Configuration[/bold]",
        )
        table.add_column("Key", style="cyan", width=26)
        table.add_column("Value", width=50)
        table.add_column("Env Var", style="dim", width=32)

        sections = [
            ("Layout", ["bundles_dir", "checksum_file_name"]),
            ("Repository", [
                "repository_url",
                "fetch_timeout",
                "fetch_max_retries",
                "fetch_backoff_seconds",
                "verify_remote_checksum",
            ]),
            ("App", ["log_level"]),
        ]
        for section, keys in sections:
            table.add_row(f"[bold]{section}[/bold]", "", "")
            for key in keys:
                table.add_row(f"  {key}", str(getattr(cfg, key)), f"PLUMB_{key.upper()}")

        table.add_row("[bold]Derived[/bold]", "", "")
        table.add_row("  plugins_dir", str(run_ctx.plugins_dir), "")
        table.add_row("  checksum_file", str(run_ctx.checksum_file), "")
        table.add_row("  identifiers_file", str(run_ctx.identifiers_file), "")
        console.print(table)
