"""PluginDirectoryManager: on-disk layout of installed plugin versions.

Layout::

    <bundles_dir>/plugins/<language>/<plugin_name>/<version>/<artifact-file>
    <bundles_dir>/plugins/<language>/<plugin_name>/<version>/tmp/disabled.txt
"""

import logging
from pathlib import Path
from typing import Union

from plumb.context import PLUGINS_DIR_NAME
from plumb.plugins.storage import write_atomically
from plumb.types import InstalledPlugin, PluginLanguage

logger = logging.getLogger(__name__)

MARKER_DIR_NAME = "tmp"
DISABLED_MARKER_NAME = "disabled.txt"


class PluginDirectoryManager:
    """Computes and manipulates ``plugins/<language>/<name>/<version>/`` trees."""

    def __init__(self, bundles_dir: Path) -> None:
        self._bundles_dir = Path(bundles_dir)

    @property
    def plugins_root(self) -> Path:
        return self._bundles_dir / PLUGINS_DIR_NAME

    def version_dir(self, language: Union[PluginLanguage, str], plugin_name: str, version: str) -> Path:
        return self.plugins_root / _language_value(language) / plugin_name / version

    def artifact_path(self, version_dir: Path, file_name: str) -> Path:
        return Path(version_dir) / file_name

    def exists(self, language: Union[PluginLanguage, str], plugin_name: str, version: str) -> bool:
        return self.version_dir(language, plugin_name, version).is_dir()

    def ensure_version_dir(self, language: Union[PluginLanguage, str], plugin_name: str, version: str) -> Path:
        """Create the version directory (and its marker directory) if missing."""
        path = self.version_dir(language, plugin_name, version)
        (path / MARKER_DIR_NAME).mkdir(parents=True, exist_ok=True)
        return path

    def write_artifact(self, version_dir: Path, file_name: str, data: bytes) -> Path:
        target = self.artifact_path(version_dir, file_name)
        write_atomically(target, data)
        logger.debug("Wrote artifact %s (%d bytes)", target, len(data))
        return target

    # ─── Enable / disable ─────────────────────────────────────────────────────

    def marker_path(self, version_dir: Path) -> Path:
        return Path(version_dir) / MARKER_DIR_NAME / DISABLED_MARKER_NAME

    def is_disabled(self, version_dir: Path) -> bool:
        return self.marker_path(version_dir).is_file()

    def mark_disabled(self, version_dir: Path) -> None:
        """Drop the disabled marker. Re-disabling is a no-op."""
        marker = self.marker_path(version_dir)
        if marker.is_file():
            return
        marker.parent.mkdir(parents=True, exist_ok=True)
        marker.touch()
        logger.info("Disabled %s", version_dir)

    def mark_enabled(self, version_dir: Path) -> None:
        marker = self.marker_path(version_dir)
        if marker.is_file():
            marker.unlink()
            logger.info("Re-enabled %s", version_dir)

    # ─── Discovery ────────────────────────────────────────────────────────────

    def list_installations(self) -> list[InstalledPlugin]:
        """Every ``<language>/<name>/<version>`` directory currently on disk."""
        found: list[InstalledPlugin] = []
        if not self.plugins_root.is_dir():
            return found
        for language_dir in sorted(p for p in self.plugins_root.iterdir() if p.is_dir()):
            for plugin_dir in sorted(p for p in language_dir.iterdir() if p.is_dir()):
                for version_dir in sorted(p for p in plugin_dir.iterdir() if p.is_dir()):
                    found.append(InstalledPlugin(
                        language=language_dir.name,
                        plugin_name=plugin_dir.name,
                        version=version_dir.name,
                        path=version_dir,
                        disabled=self.is_disabled(version_dir),
                    ))
        return found


def _language_value(language: Union[PluginLanguage, str]) -> str:
    return language.value if isinstance(language, PluginLanguage) else str(language)
