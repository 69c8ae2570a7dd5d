"""Host facts collected for the system configuration export."""

from __future__ import annotations

import logging
import platform
import subprocess
import sys
from pathlib import Path
from typing import Any, Optional

from plumb.context import RunContext
from plumb.log import log_verbosity
from plumb.plugins.identifiers import IdentifierRegistry
from plumb.plugins.layout import PluginDirectoryManager
from plumb.version import __version__

logger = logging.getLogger(__name__)

_PROC_CPUINFO = Path("/proc/cpuinfo")
_MAC_SYSCTL_KEYS = ("machdep.cpu.brand_string", "hw.ncpu", "hw.physicalcpu", "hw.l2cachesize", "hw.l3cachesize")


def parse_key_value_lines(text: str, separator: str = ":") -> dict[str, dict[str, str]]:
    """``"model name : Xeon"`` lines → ``{"model name": {"cpu_detail": ..., "value": ...}}``.

    Blank keys and the (huge) ``flags`` line are skipped; for repeated keys
    (one block per core) the last one wins.
    """
    info: dict[str, dict[str, str]] = {}
    for line in text.splitlines():
        key, _, value = line.replace("\t", "").partition(separator)
        key = key.strip()
        if not key or key == "flags":
            continue
        info[key] = {"cpu_detail": key, "value": value.strip()}
    return info


def cpu_information(system: Optional[str] = None) -> dict[str, dict[str, str]]:
    """CPU facts for the current host; ``{}`` when the platform is not supported."""
    system = system or platform.system()
    if system == "Linux":
        try:
            return parse_key_value_lines(_PROC_CPUINFO.read_text(errors="replace"))
        except OSError as exc:
            logger.warning("Could not read %s: %s", _PROC_CPUINFO, exc)
            return {}
    if system == "Darwin":
        try:
            proc = subprocess.run(
                ["sysctl", *_MAC_SYSCTL_KEYS],
                capture_output=True,
                text=True,
                timeout=10,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.warning("sysctl failed: %s", exc)
            return {}
        return parse_key_value_lines(proc.stdout)
    logger.debug("CPU information not supported on %s", system)
    return {}


def system_information(context: RunContext) -> dict[str, Any]:
    """JSON-ready snapshot of plumb, host and installed-plugin facts."""
    layout = PluginDirectoryManager(context.bundles_dir)
    # Registry/layout chatter is noise inside a diagnostic export
    with log_verbosity("plumb.plugins", logging.WARNING):
        registry = IdentifierRegistry(context.identifiers_file)
        installations = layout.list_installations()
        identifiers = registry.list_identifiers()

    return {
        "plumb_information": {
            "version": __version__,
            "bundles_dir": str(context.bundles_dir),
            "repository_url": context.settings.repository_url,
        },
        "os_information": {
            "system": platform.system(),
            "release": platform.release(),
            "machine": platform.machine(),
            "python": sys.version.split()[0],
        },
        "cpu_information": cpu_information(),
        "plugin_information": [
            {
                "language": item.language,
                "plugin_name": item.plugin_name,
                "version": item.version,
                "disabled": item.disabled,
            }
            for item in installations
        ],
        "plugin_identifiers": {key: entry.model_dump() for key, entry in identifiers.items()},
    }
