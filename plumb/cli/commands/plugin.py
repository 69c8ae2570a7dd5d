"""CLI commands for plugin lifecycle.

Accessed via: ``plumb install``, ``plumb uninstall``, ``plumb list`` ...
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from plumb.cli.commands import get_run_context, get_transport
from plumb.exceptions import PlumbError
from plumb.types import LATEST, PluginLanguage, VerificationStatus

console = Console()


def _fail(exc: Exception) -> None:
    console.print(f"[red]Error:[/red] {exc}")
    raise typer.Exit(1)


def _spinner() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        transient=True,
    )


# ─── install ─────────────────────────────────────────────────────────────────


def plugin_install(
    ctx: typer.Context,
    key: str = typer.Argument(
        ..., help="Plugin key (e.g. 'analytics', 'stripe') or any key when coordinates are given."
    ),
    version: str = typer.Argument(LATEST, help="Version to install, or LATEST."),
    group_id: Optional[str] = typer.Option(None, "--group-id", "-g", help="Repository group id."),
    artifact_id: Optional[str] = typer.Option(None, "--artifact-id", "-a", help="Repository artifact id."),
    packaging: Optional[str] = typer.Option(None, "--packaging", "-p", help="Packaging (default: jar)."),
    classifier: Optional[str] = typer.Option(None, "--classifier", "-c", help="Artifact classifier."),
    language: Optional[PluginLanguage] = typer.Option(None, "--language", "-l", help="java or ruby."),
    force: bool = typer.Option(False, "--force", "-f", help="Download again even if a verified copy exists."),
):
    """Download, verify and enable a plugin.

    Examples:

        plumb install analytics 0.7.1

        plumb install stripe

        plumb install acme 1.2.0 -g com.acme -a acme-plugin
    """
    async def _run():
        try:
            with get_run_context(ctx) as run_ctx:
                async with get_transport(run_ctx.settings) as transport:
                    from plumb.plugins import Installer
                    installer = Installer(run_ctx, transport)
                    with _spinner() as progress:
                        progress.add_task(f"Installing {key} {version}...", total=None)
                        result = await installer.install(
                            key,
                            group_id=group_id,
                            artifact_id=artifact_id,
                            packaging=packaging,
                            classifier=classifier,
                            version=version,
                            language=language,
                            force=force,
                        )
        except (PlumbError, FileNotFoundError) as exc:
            _fail(exc)

        verb = "Installed" if result.downloaded else "Re-enabled"
        console.print(
            f"[green]✓[/green] {verb} [bold]{result.plugin_name}[/bold] v{result.version} "
            f"({result.language}) as '{result.key}'"
        )
        console.print(f"  [dim]{result.path}  sha1={result.checksum}[/dim]")

    asyncio.run(_run())


def plugin_install_file(
    ctx: typer.Context,
    file_path: Path = typer.Argument(..., help="Local artifact (jar, war, zip, tar.gz)."),
    key: Optional[str] = typer.Option(None, "--key", "-k", help="Registry key (default: plugin name)."),
    version: Optional[str] = typer.Option(None, "--version", "-v", help="Version (default: parsed from file name)."),
    language: PluginLanguage = typer.Option(PluginLanguage.JAVA, "--language", "-l", help="java or ruby."),
):
    """Install a plugin from a local artifact file.

    Example:
        plumb install-file ./analytics-plugin-0.7.1.jar
    """
    async def _run():
        try:
            with get_run_context(ctx) as run_ctx:
                async with get_transport(run_ctx.settings) as transport:
                    from plumb.plugins import Installer
                    result = await Installer(run_ctx, transport).install_from_file(
                        file_path, key=key, version=version, language=language,
                    )
        except (PlumbError, FileNotFoundError) as exc:
            _fail(exc)

        console.print(
            f"[green]✓[/green] Installed [bold]{result.plugin_name}[/bold] v{result.version} "
            f"from {file_path.name} as '{result.key}'"
        )

    asyncio.run(_run())


# ─── uninstall ───────────────────────────────────────────────────────────────


def plugin_uninstall(
    ctx: typer.Context,
    key_or_name: str = typer.Argument(..., help="Registry key or plugin name."),
    version: Optional[str] = typer.Option(None, "--version", "-v", help="Only this version."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt."),
):
    """Disable an installed plugin. Artifacts stay on disk.

    Example:
        plumb uninstall analytics
    """
    if not yes:
        typer.confirm(f"Uninstall plugin '{key_or_name}'?", abort=True)

    async def _run():
        try:
            with get_run_context(ctx) as run_ctx:
                async with get_transport(run_ctx.settings) as transport:
                    from plumb.plugins import Installer
                    removed = await Installer(run_ctx, transport).uninstall(key_or_name, version=version)
        except (PlumbError, FileNotFoundError) as exc:
            _fail(exc)

        for entry in removed:
            console.print(
                f"[green]✓[/green] Uninstalled [bold]{entry.plugin_name}[/bold] v{entry.version}"
            )

    asyncio.run(_run())


# ─── upgrade ─────────────────────────────────────────────────────────────────


def plugin_upgrade(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Registered plugin key."),
    version: str = typer.Argument(LATEST, help="Target version, or LATEST."),
    force: bool = typer.Option(False, "--force", "-f", help="Download again even if a verified copy exists."),
):
    """Re-install a registered plugin at a newer version.

    Example:
        plumb upgrade analytics
    """
    async def _run():
        try:
            with get_run_context(ctx) as run_ctx:
                async with get_transport(run_ctx.settings) as transport:
                    from plumb.plugins import Installer
                    installer = Installer(run_ctx, transport)
                    current = installer.identifiers.get(key)
                    with _spinner() as progress:
                        progress.add_task(f"Upgrading {key}...", total=None)
                        result = await installer.upgrade(key, version=version, force=force)
        except (PlumbError, FileNotFoundError) as exc:
            _fail(exc)

        if current is not None and current.version == result.version:
            console.print(f"[dim]{key} is already at v{result.version}[/dim]")
        else:
            previous = f"v{current.version} → " if current is not None else ""
            console.print(f"[green]✓[/green] Upgraded [bold]{key}[/bold] {previous}v{result.version}")

    asyncio.run(_run())


# ─── list ────────────────────────────────────────────────────────────────────


def plugin_list(
    ctx: typer.Context,
    show_disabled: bool = typer.Option(False, "--all", "-a", help="Include disabled versions."),
):
    """List installed plugin versions."""
    async def _run():
        try:
            with get_run_context(ctx) as run_ctx:
                async with get_transport(run_ctx.settings) as transport:
                    from plumb.plugins import Installer
                    installed = Installer(run_ctx, transport).list_installed()
        except (PlumbError, FileNotFoundError) as exc:
            _fail(exc)

        rows = [p for p in installed if show_disabled or not p.disabled]
        if not rows:
            console.print("[dim]No plugins installed.[/dim]")
            return

        table = Table("Key", "Plugin", "Version", "Language", "Status", show_header=True)
        for p in rows:
            status = "[yellow]disabled[/yellow]" if p.disabled else "[green]enabled[/green]"
            table.add_row(p.key or "-", p.plugin_name, p.version, p.language, status)
        console.print(table)

    asyncio.run(_run())


# ─── versions ────────────────────────────────────────────────────────────────


def plugin_versions(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Plugin key."),
    group_id: Optional[str] = typer.Option(None, "--group-id", "-g", help="Repository group id."),
    artifact_id: Optional[str] = typer.Option(None, "--artifact-id", "-a", help="Repository artifact id."),
    packaging: Optional[str] = typer.Option(None, "--packaging", "-p", help="Packaging (default: jar)."),
):
    """List versions published in the repository for a plugin."""
    async def _run():
        try:
            with get_run_context(ctx) as run_ctx:
                async with get_transport(run_ctx.settings) as transport:
                    from plumb.plugins import CoordinateResolver
                    resolver = CoordinateResolver(transport)
                    coordinate, _ = resolver.base_coordinate(
                        key, group_id=group_id, artifact_id=artifact_id, packaging=packaging,
                    )
                    versions = await resolver.available_versions(coordinate)
        except (PlumbError, FileNotFoundError) as exc:
            _fail(exc)

        if not versions:
            console.print(f"[dim]No published versions for {coordinate}.[/dim]")
            return
        console.print(f"[bold]{coordinate}[/bold]")
        for v in versions:
            marker = " [green](latest)[/green]" if v == versions[-1] else ""
            console.print(f"  {v}{marker}")

    asyncio.run(_run())


# ─── verify ──────────────────────────────────────────────────────────────────


def plugin_verify(ctx: typer.Context):
    """Recompute SHA-1 of installed artifacts and compare with the checksum store.

    Exits with status 1 when any artifact is missing or tampered with.
    """
    async def _run():
        try:
            with get_run_context(ctx) as run_ctx:
                async with get_transport(run_ctx.settings) as transport:
                    from plumb.plugins import Installer
                    results = Installer(run_ctx, transport).verify()
        except (PlumbError, FileNotFoundError) as exc:
            _fail(exc)

        if not results:
            console.print("[dim]No plugins installed.[/dim]")
            return

        styles = {
            VerificationStatus.OK: "[green]ok[/green]",
            VerificationStatus.MISMATCH: "[red]MISMATCH[/red]",
            VerificationStatus.MISSING: "[red]missing[/red]",
            VerificationStatus.UNTRACKED: "[yellow]untracked[/yellow]",
        }
        table = Table("Key", "Plugin", "Version", "Status", "Details", show_header=True)
        for r in results:
            table.add_row(r.key, r.plugin_name, r.version, styles[r.status], r.details)
        console.print(table)

        bad = [r for r in results if r.status in (VerificationStatus.MISMATCH, VerificationStatus.MISSING)]
        if bad:
            console.print(f"[red]{len(bad)} plugin(s) failed verification.[/red]")
            raise typer.Exit(1)
        console.print("[green]✓[/green] All tracked artifacts verified.")

    asyncio.run(_run())
