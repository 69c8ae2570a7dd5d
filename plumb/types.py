"""All shared types, enums, and type aliases. Everything imports from here."""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

# Version token meaning "newest published version"; never persisted.
LATEST = "LATEST"


def is_latest(version: Optional[str]) -> bool:
    """True when *version* asks for the newest published version."""
    return version is None or version.strip() == "" or version.strip().upper() == LATEST


# ── Enums ──────────────────────────────────────────────────────────────

class PluginLanguage(str, Enum):
    JAVA = "java"
    RUBY = "ruby"

class VerificationStatus(str, Enum):
    OK = "ok"
    MISMATCH = "mismatch"      # bytes on disk differ from the trusted checksum
    MISSING = "missing"        # registered but the artifact file is gone
    UNTRACKED = "untracked"    # no checksum recorded (e.g. installed from a local file)


# ── Coordinates ────────────────────────────────────────────────────────

class ArtifactCoordinate(BaseModel):
    """Fully-qualified identity of a fetchable artifact.

    ``str(coordinate)`` is ``group:artifact:packaging[:classifier]:version``,
    which is also the key used by the checksum store.
    """

    model_config = {"frozen": True}

    group_id: str
    artifact_id: str
    packaging: str = "jar"
    classifier: Optional[str] = None
    version: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return not is_latest(self.version)

    @property
    def file_name(self) -> str:
        """Repository file name, e.g. ``analytics-plugin-0.7.1.jar``."""
        suffix = f"-{self.classifier}" if self.classifier else ""
        return f"{self.artifact_id}-{self.version}{suffix}.{self.packaging}"

    def without_version(self) -> "ArtifactCoordinate":
        return self.model_copy(update={"version": None})

    def with_version(self, version: str) -> "ArtifactCoordinate":
        return self.model_copy(update={"version": version})

    def __str__(self) -> str:
        parts = [self.group_id, self.artifact_id, self.packaging]
        if self.classifier:
            parts.append(self.classifier)
        if self.version:
            parts.append(self.version)
        return ":".join(parts)


class KnownPlugin(BaseModel):
    """Row of the built-in plugin key table."""

    model_config = {"frozen": True}

    group_id: str
    artifact_id: str
    packaging: str = "jar"
    language: PluginLanguage = PluginLanguage.JAVA


class ResolvedArtifact(BaseModel):
    """Output of coordinate resolution: a concrete coordinate plus install facts."""
    key: str
    coordinate: ArtifactCoordinate
    language: PluginLanguage
    plugin_name: str


# ── Registry / install shapes ──────────────────────────────────────────

class PluginIdentifier(BaseModel):
    """One entry of the identifier registry (an enabled plugin).

    Field set is exactly the on-disk JSON entry format.
    """
    plugin_name: str
    group_id: Optional[str] = None
    artifact_id: Optional[str] = None
    packaging: Optional[str] = None
    version: str
    language: PluginLanguage = PluginLanguage.JAVA

    model_config = {"use_enum_values": True}


class InstallResult(BaseModel):
    """What the installer reports after a successful install."""
    key: str
    plugin_name: str
    version: str
    language: str
    coordinate: Optional[str] = None     # None for local-file installs
    path: Path                           # artifact file on disk
    size: int                            # bytes
    checksum: str                        # sha1 hex digest of the artifact
    downloaded: bool = True              # False when an existing verified file was reused


class InstalledPlugin(BaseModel):
    """One ``plugins/<language>/<name>/<version>/`` directory found on disk."""
    language: str
    plugin_name: str
    version: str
    path: Path
    disabled: bool
    key: Optional[str] = None            # registry key when enabled


class VerificationResult(BaseModel):
    key: str
    plugin_name: str
    version: str
    status: VerificationStatus
    expected: str = ""
    actual: str = ""
    path: Optional[Path] = None
    details: str = Field(default="")
