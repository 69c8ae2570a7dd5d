"""RunContext: everything one command invocation needs, created once per run.

Replaces module-level constants (temp directories, dates, paths) with an
object that is built by the CLI, handed to each component, and closed at the
end of the run.
"""

from __future__ import annotations

import logging
import tempfile
from datetime import date
from pathlib import Path
from typing import Optional

from plumb.config import PlumbSettings

logger = logging.getLogger(__name__)

PLUGINS_DIR_NAME = "plugins"
IDENTIFIERS_FILE_NAME = "plugin_identifiers.json"


class RunContext:
    """Run-scoped settings, paths and scratch space.

    Args:
        settings: Resolved :class:`PlumbSettings` for this run.
        bundles_dir: Overrides ``settings.bundles_dir`` when given.
        today: Date stamped on run artifacts (diagnostic archive names).

    Use as a context manager so the scratch directory is always removed::

        with RunContext(settings) as ctx:
            installer = Installer(ctx, transport)
    """

    def __init__(
        self,
        settings: Optional[PlumbSettings] = None,
        bundles_dir: Optional[Path] = None,
        today: Optional[date] = None,
    ) -> None:
        self.settings = settings or PlumbSettings()
        self.bundles_dir = Path(bundles_dir or self.settings.bundles_dir)
        self.today = today or date.today()
        self._scratch: Optional[tempfile.TemporaryDirectory] = None

    # ── Paths ──────────────────────────────────────────────────────────────

    @property
    def plugins_dir(self) -> Path:
        return self.bundles_dir / PLUGINS_DIR_NAME

    @property
    def checksum_file(self) -> Path:
        return self.bundles_dir / self.settings.checksum_file_name

    @property
    def identifiers_file(self) -> Path:
        return self.plugins_dir / IDENTIFIERS_FILE_NAME

    @property
    def tmp_dir(self) -> Path:
        """Private scratch directory, created on first use, removed by :meth:`close`."""
        if self._scratch is None:
            self._scratch = tempfile.TemporaryDirectory(prefix="plumb-")
            logger.debug("Created run scratch directory %s", self._scratch.name)
        return Path(self._scratch.name)

    # ── Lifecycle ──────────────────────────────────────────────────────────

    def close(self) -> None:
        if self._scratch is not None:
            self._scratch.cleanup()
            self._scratch = None

    def __enter__(self) -> "RunContext":
        return self

    def __exit__(self, *_) -> None:
        self.close()
