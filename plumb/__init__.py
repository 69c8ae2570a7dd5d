"""plumb: package manager for versioned platform plugins.

Usage:
    from plumb import Installer, MavenTransport, RunContext

    with RunContext() as ctx:
        async with MavenTransport.from_settings(ctx.settings) as transport:
            result = await Installer(ctx, transport).install("analytics", version="0.7.1")
"""

from plumb.context import RunContext
from plumb.exceptions import (
    PlumbError, ResolutionError, FetchError, IntegrityError,
    PluginNotFoundError, PersistenceError, DiagnosticsError,
)
from plumb.plugins import (
    ChecksumStore, CoordinateResolver, IdentifierRegistry, Installer,
    MavenTransport, PluginDirectoryManager, derive_plugin_name,
)
from plumb.types import (
    LATEST, ArtifactCoordinate, PluginIdentifier, PluginLanguage,
    InstallResult, InstalledPlugin, VerificationResult, VerificationStatus,
)
from plumb.version import __version__

__all__ = [
    "RunContext",
    "PlumbError", "ResolutionError", "FetchError", "IntegrityError",
    "PluginNotFoundError", "PersistenceError", "DiagnosticsError",
    "ChecksumStore", "CoordinateResolver", "IdentifierRegistry", "Installer",
    "MavenTransport", "PluginDirectoryManager", "derive_plugin_name",
    "LATEST", "ArtifactCoordinate", "PluginIdentifier", "PluginLanguage",
    "InstallResult", "InstalledPlugin", "VerificationResult", "VerificationStatus",
    "__version__",
]
