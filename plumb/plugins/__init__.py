"""Plugin resolution, download, verification and install bookkeeping."""

from plumb.plugins.checksums import ChecksumStore
from plumb.plugins.coordinates import KNOWN_PLUGINS, CoordinateResolver
from plumb.plugins.identifiers import IdentifierRegistry
from plumb.plugins.installer import Installer
from plumb.plugins.layout import PluginDirectoryManager
from plumb.plugins.naming import derive_plugin_name, split_artifact_file_name
from plumb.plugins.transport import ArtifactTransport, MavenTransport

__all__ = [
    "ArtifactTransport",
    "ChecksumStore",
    "CoordinateResolver",
    "IdentifierRegistry",
    "Installer",
    "KNOWN_PLUGINS",
    "MavenTransport",
    "PluginDirectoryManager",
    "derive_plugin_name",
    "split_artifact_file_name",
]
