"""DiagnosticExporter: bundle independently produced export files into one dated zip."""

from __future__ import annotations

import json
import logging
import zipfile
from pathlib import Path
from typing import Optional

from plumb.context import RunContext
from plumb.diagnostics.system_info import system_information
from plumb.exceptions import DiagnosticsError

logger = logging.getLogger(__name__)

TENANT_FILE = "tenant_config.data"
SYSTEM_FILE = "system_configuration.data"
ACCOUNT_FILE = "account.data"
LOG_ARCHIVE = "logs.zip"
ARCHIVE_PREFIX = "plumb-diagnostics-"


class DiagnosticExporter:
    """Assembles ``plumb-diagnostics-MM-DD-YY.zip``.

    Entries:
        ``tenant_config.data`` and ``system_configuration.data`` (mandatory),
        ``account.data`` (optional), ``logs.zip`` (optional, every file of
        the log directory).

    Args:
        context: Run context; its scratch directory holds intermediate files
                 and its date stamps the archive name.
    """

    def __init__(self, context: RunContext) -> None:
        self._ctx = context

    @property
    def archive_name(self) -> str:
        return f"{ARCHIVE_PREFIX}{self._ctx.today.strftime('%m-%d-%y')}.zip"

    def write_system_config(self) -> Path:
        """Produce ``system_configuration.data`` from :func:`system_information`."""
        target = self._ctx.tmp_dir / SYSTEM_FILE
        target.write_text(json.dumps(system_information(self._ctx), indent=2))
        return target

    def export(
        self,
        tenant_config_file: Path,
        system_config_file: Optional[Path] = None,
        account_file: Optional[Path] = None,
        log_dir: Optional[Path] = None,
        output_dir: Optional[Path] = None,
    ) -> Path:
        """Write the archive and return its path.

        Args:
            tenant_config_file: Tenant configuration export (mandatory).
            system_config_file: System configuration export; produced with
                                :meth:`write_system_config` when omitted.
            account_file: Optional account data export.
            log_dir: Optional directory whose files go into ``logs.zip``.
            output_dir: Where to put the archive. Defaults to the run's
                        scratch directory, which is removed when the run ends.

        Raises:
            DiagnosticsError: A mandatory export file is missing.
        """
        system_config_file = system_config_file or self.write_system_config()
        missing = [str(p) for p in (tenant_config_file, system_config_file) if not Path(p).is_file()]
        if missing:
            raise DiagnosticsError(
                f"Mandatory export file(s) not found: {', '.join(missing)}",
                details={"missing": missing},
            )
        if account_file is not None and not Path(account_file).is_file():
            raise DiagnosticsError(f"Account export not found: {account_file}")

        log_archive = self._zip_logs(Path(log_dir)) if log_dir is not None else None
        if log_archive is None:
            logger.warning("No log directory given; logs won't be collected.")

        destination = Path(output_dir or self._ctx.tmp_dir)
        destination.mkdir(parents=True, exist_ok=True)
        archive = destination / self.archive_name

        with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.write(tenant_config_file, TENANT_FILE)
            zf.write(system_config_file, SYSTEM_FILE)
            if account_file is not None:
                zf.write(account_file, ACCOUNT_FILE)
            if log_archive is not None:
                zf.write(log_archive, LOG_ARCHIVE)

        logger.info("Diagnostic data exported under %s", archive)
        return archive

    def _zip_logs(self, log_dir: Path) -> Path:
        if not log_dir.is_dir():
            raise DiagnosticsError(f"Log directory not found: {log_dir}")
        logger.info("Collecting log files from %s", log_dir)
        target = self._ctx.tmp_dir / LOG_ARCHIVE
        with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for item in sorted(log_dir.iterdir()):
                if item.is_file():
                    zf.write(item, item.name)
        return target
