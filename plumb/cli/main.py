"""plumb CLI: Typer application."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from plumb.version import __version__

app = typer.Typer(
    name="plumb",
    help="plumb: install, verify and enable versioned platform plugins.",
    no_args_is_help=True,
    invoke_without_command=True,
)
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", "-V", is_eager=True, help="Show version"),
    config_file: Optional[Path] = typer.Option(
        None, "--config", envvar="PLUMB_CONFIG", help="Path to plumb.yml (default: ./plumb.yml if present)."
    ),
    bundles_dir: Optional[Path] = typer.Option(
        None, "--bundles-dir", "-d", help="Install root. Overrides config file and PLUMB_BUNDLES_DIR."
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR."),
):
    """plumb CLI."""
    if version:
        console.print(f"plumb v{__version__}")
        raise typer.Exit()
    ctx.obj = {
        "config_file": config_file,
        "bundles_dir": str(bundles_dir) if bundles_dir else None,
        "log_level": log_level,
    }
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


# ── Plugin lifecycle ───────────────────────────────────────────────────────────
from plumb.cli.commands import plugin as plugin_cmd  # noqa: E402

app.command(name="install", help="Download, verify and enable a plugin")(plugin_cmd.plugin_install)
app.command(name="install-file", help="Install a plugin from a local artifact file")(plugin_cmd.plugin_install_file)
app.command(name="uninstall", help="Disable a plugin (artifacts stay on disk)")(plugin_cmd.plugin_uninstall)
app.command(name="upgrade", help="Re-install a registered plugin at a newer version")(plugin_cmd.plugin_upgrade)
app.command(name="list", help="List installed plugin versions")(plugin_cmd.plugin_list)
app.command(name="versions", help="List published versions of a plugin")(plugin_cmd.plugin_versions)
app.command(name="verify", help="Verify artifact checksums (tamper detection)")(plugin_cmd.plugin_verify)

# ── Support ────────────────────────────────────────────────────────────────────
from plumb.cli.commands import config, diagnostic  # noqa: E402

app.command(name="config", help="Show resolved configuration")(config.config_show)
app.command(name="diagnostic", help="Export a diagnostic bundle")(diagnostic.diagnostic_export)


if __name__ == "__main__":
    app()
