"""Shared helpers for plumb subcommands."""

from __future__ import annotations

from typing import Optional

import typer

from plumb.config import PlumbSettings, load_settings
from plumb.context import RunContext
from plumb.log import configure_logging


def _options(ctx: Optional[typer.Context]) -> dict:
    if ctx is None:
        return {}
    return ctx.find_root().obj or {}


def get_settings(ctx: Optional[typer.Context]) -> PlumbSettings:
    """Resolve settings from the global options (explicit > plumb.yml > env > default)."""
    opts = _options(ctx)
    settings = load_settings(
        opts.get("config_file"),
        bundles_dir=opts.get("bundles_dir"),
        log_level=opts.get("log_level"),
    )
    configure_logging(settings.log_level)
    return settings


def get_run_context(ctx: Optional[typer.Context]) -> RunContext:
    """Create the :class:`RunContext` for one command invocation."""
    return RunContext(get_settings(ctx))


def get_transport(settings: PlumbSettings):
    """Create the repository transport for CLI use."""
    from plumb.plugins import MavenTransport
    return MavenTransport.from_settings(settings)
