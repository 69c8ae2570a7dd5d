"""Installer: install, upgrade, uninstall, list and verify plugins."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

from plumb.context import RunContext
from plumb.exceptions import IntegrityError, PluginNotFoundError, ResolutionError
from plumb.plugins.checksums import ChecksumStore
from plumb.plugins.coordinates import CoordinateResolver
from plumb.plugins.identifiers import IdentifierRegistry
from plumb.plugins.layout import PluginDirectoryManager
from plumb.plugins.naming import split_artifact_file_name
from plumb.plugins.storage import sha1_hexdigest, sha1_of_file
from plumb.plugins.transport import ArtifactTransport
from plumb.types import (
    LATEST,
    ArtifactCoordinate,
    InstalledPlugin,
    InstallResult,
    PluginIdentifier,
    PluginLanguage,
    ResolvedArtifact,
    VerificationResult,
    VerificationStatus,
)

logger = logging.getLogger(__name__)


class Installer:
    """Orchestrates resolver, transport, checksum store, layout and registry.

    Per ``(key, version)`` an install moves through::

        absent → fetched-unverified → verified → installed-enabled ⇄ installed-disabled

    The registry is written last, only after the artifact is on disk and
    enabled. If the process dies between "checksum recorded" and "registry
    updated", the checksum stays durable and the registry is unchanged; the
    next install of the same coordinate picks up from there.

    Both backing stores are opened lazily, so a request that fails
    resolution touches neither the network nor the filesystem.

    Args:
        context: Run-scoped :class:`RunContext` (bundles dir, settings).
        transport: Remote repository implementing :class:`ArtifactTransport`.
        resolver: Optional pre-built resolver (defaults to one over *transport*).
    """

    def __init__(
        self,
        context: RunContext,
        transport: ArtifactTransport,
        resolver: Optional[CoordinateResolver] = None,
    ) -> None:
        self._ctx = context
        self._transport = transport
        self._resolver = resolver or CoordinateResolver(transport)
        self._layout = PluginDirectoryManager(context.bundles_dir)
        self._checksums: Optional[ChecksumStore] = None
        self._identifiers: Optional[IdentifierRegistry] = None

        # Serializes all install/uninstall operations
        self._lock = asyncio.Lock()

    @property
    def resolver(self) -> CoordinateResolver:
        return self._resolver

    @property
    def layout(self) -> PluginDirectoryManager:
        return self._layout

    @property
    def checksums(self) -> ChecksumStore:
        if self._checksums is None:
            self._checksums = ChecksumStore.open(self._ctx.checksum_file)
        return self._checksums

    @property
    def identifiers(self) -> IdentifierRegistry:
        if self._identifiers is None:
            self._identifiers = IdentifierRegistry(self._ctx.identifiers_file)
        return self._identifiers

    # ─── install ──────────────────────────────────────────────────────────────

    async def install(
        self,
        key: str,
        group_id: Optional[str] = None,
        artifact_id: Optional[str] = None,
        packaging: Optional[str] = None,
        classifier: Optional[str] = None,
        version: Optional[str] = None,
        language: Optional[PluginLanguage] = None,
        force: bool = False,
    ) -> InstallResult:
        """Install *key* at *version* (``None``/``LATEST`` = newest published).

        Sequence:
            1. Resolve the coordinate (no I/O unless ``LATEST`` needs a listing)
            2. Fetch the artifact, unless a verified copy is already on disk
            3. Check SHA-1 against the published ``.sha1`` (optional) and the
               checksum store; record it on first install
            4. Create the version directory and write the artifact
            5. Clear any disabled marker; disable the version this one supersedes
            6. Register the key and persist

        Raises:
            ResolutionError: Unknown key without explicit coordinates, or no
                             published versions for ``LATEST``.
            FetchError: Repository returned a non-success response.
            IntegrityError: Bytes do not match the trusted checksum.
            PersistenceError: A backing file is corrupt or unwritable.
        """
        async with self._lock:
            resolved = await self._resolver.resolve(
                key,
                version,
                group_id=group_id,
                artifact_id=artifact_id,
                packaging=packaging,
                classifier=classifier,
                language=language,
            )
            return await self._install_resolved(resolved, force=force)

    async def upgrade(self, key: str, version: Optional[str] = None, force: bool = False) -> InstallResult:
        """Re-install a registered key at *version* (default ``LATEST``).

        The classifier of the installed artifact, if any, is carried over.

        Raises:
            PluginNotFoundError: *key* is not registered.
            ResolutionError: The registered entry has no remote coordinates
                             (it was installed from a local file).
        """
        async with self._lock:
            current = self.identifiers.get(key)
            if current is None:
                raise PluginNotFoundError(f"Plugin '{key}' is not installed", key_or_name=key)
            if not (current.group_id and current.artifact_id):
                raise ResolutionError(
                    f"Plugin '{key}' was installed from a local file and has no repository coordinates",
                    key=key,
                )
            installed, _ = self._installed_coordinate(current)
            resolved = await self._resolver.resolve(
                key,
                version or LATEST,
                group_id=installed.group_id,
                artifact_id=installed.artifact_id,
                packaging=installed.packaging,
                classifier=installed.classifier,
                language=PluginLanguage(current.language),
            )
            return await self._install_resolved(resolved, force=force)

    async def install_from_file(
        self,
        file_path: Union[str, Path],
        key: Optional[str] = None,
        version: Optional[str] = None,
        language: PluginLanguage = PluginLanguage.JAVA,
    ) -> InstallResult:
        """Install a local artifact file.

        The plugin name comes from the file name; the version too unless
        given. No checksum record is kept: there is no remote coordinate to
        key it on.

        Raises:
            ResolutionError: File missing, or no version given nor derivable.
        """
        path = Path(file_path)
        if not path.is_file():
            raise ResolutionError(f"Artifact file not found: {path}", key=key or "")

        plugin_name, parsed_version = split_artifact_file_name(path)
        version = version or parsed_version
        if not version:
            raise ResolutionError(
                f"Cannot derive a version from '{path.name}'; pass one explicitly",
                key=key or plugin_name,
            )
        key = key or plugin_name
        language = PluginLanguage(language)

        async with self._lock:
            data = path.read_bytes()
            version_dir = self._layout.ensure_version_dir(language, plugin_name, version)
            target = self._layout.write_artifact(version_dir, path.name, data)
            self._layout.mark_enabled(version_dir)
            self._disable_superseded(key, version_dir)

            self.identifiers.put(key, PluginIdentifier(
                plugin_name=plugin_name,
                version=version,
                language=language,
            ))
            logger.info("Plugin '%s' (%s v%s) installed from %s.", key, plugin_name, version, path)
            return InstallResult(
                key=key,
                plugin_name=plugin_name,
                version=version,
                language=language.value,
                coordinate=None,
                path=target,
                size=len(data),
                checksum=sha1_hexdigest(data),
                downloaded=False,
            )

    # ─── uninstall ────────────────────────────────────────────────────────────

    async def uninstall(self, key_or_name: str, version: Optional[str] = None) -> list[PluginIdentifier]:
        """Disable every registered entry matching *key_or_name* (key or plugin name).

        Artifacts stay on disk; only the disabled marker is written and the
        registry entry removed. Already-disabled versions are left as they are, and
        a directory another registered key still points at is not disabled.

        Args:
            key_or_name: Registry key (``analytics``) or plugin name (``analytics-plugin``).
            version: Only uninstall entries registered at this version.

        Returns:
            The registry entries that were removed.

        Raises:
            PluginNotFoundError: Nothing registered matches.
        """
        async with self._lock:
            matches = self.identifiers.find_by_key_or_name(key_or_name)
            if version is not None:
                matches = [(k, entry) for k, entry in matches if entry.version == version]
            if not matches:
                suffix = f" at version {version}" if version else ""
                raise PluginNotFoundError(
                    f"Plugin '{key_or_name}'{suffix} is not installed", key_or_name=key_or_name
                )

            removed: list[PluginIdentifier] = []
            for key, entry in matches:
                version_dir = self._entry_dir(entry)
                self.identifiers.remove(key)
                sharing_key = self._registered_elsewhere(version_dir, exclude_key=key)
                if sharing_key is not None:
                    logger.info("%s is still enabled for '%s'; not disabling it", version_dir, sharing_key)
                elif version_dir.is_dir():
                    self._layout.mark_disabled(version_dir)
                else:
                    logger.warning(
                        "Version directory %s is missing; unregistering '%s' anyway", version_dir, key
                    )
                removed.append(entry)
                logger.info("Plugin '%s' (%s v%s) uninstalled.", key, entry.plugin_name, entry.version)
            return removed

    # ─── list / verify ────────────────────────────────────────────────────────

    def list_installed(self) -> list[InstalledPlugin]:
        """Every version directory on disk, tagged with its registry key when enabled."""
        by_location = {
            (str(entry.language), entry.plugin_name, entry.version): key
            for key, entry in self.identifiers.list_identifiers().items()
        }
        return [
            installed.model_copy(update={
                "key": by_location.get((installed.language, installed.plugin_name, installed.version)),
            })
            for installed in self._layout.list_installations()
        ]

    def verify(self) -> list[VerificationResult]:
        """Recompute SHA-1 of every registered artifact and compare with the store."""
        results: list[VerificationResult] = []
        for key, entry in sorted(self.identifiers.list_identifiers().items()):
            base = dict(key=key, plugin_name=entry.plugin_name, version=entry.version)
            if not (entry.group_id and entry.artifact_id):
                results.append(VerificationResult(
                    **base, status=VerificationStatus.UNTRACKED, details="installed from a local file",
                ))
                continue

            coordinate, path = self._installed_coordinate(entry)
            expected = self.checksums.lookup(coordinate) or ""

            if not path.is_file():
                status, actual = VerificationStatus.MISSING, ""
            elif not expected:
                status, actual = VerificationStatus.UNTRACKED, sha1_of_file(path)
            else:
                actual = sha1_of_file(path)
                status = VerificationStatus.OK if actual == expected else VerificationStatus.MISMATCH
            if status == VerificationStatus.MISMATCH:
                logger.warning("Checksum mismatch for %s: stored=%s current=%s", coordinate, expected, actual)
            results.append(VerificationResult(
                **base, status=status, expected=expected, actual=actual, path=path,
            ))
        return results

    # ─── Internals ────────────────────────────────────────────────────────────

    async def _install_resolved(self, resolved: ResolvedArtifact, force: bool) -> InstallResult:
        coordinate = resolved.coordinate
        version = coordinate.version
        version_dir = self._layout.version_dir(resolved.language, resolved.plugin_name, version)
        target = self._layout.artifact_path(version_dir, coordinate.file_name)

        data, checksum = await self._fetch_verified(coordinate, target, force)

        version_dir = self._layout.ensure_version_dir(resolved.language, resolved.plugin_name, version)
        if data is not None:
            target = self._layout.write_artifact(version_dir, coordinate.file_name, data)
        self._layout.mark_enabled(version_dir)
        self._disable_superseded(resolved.key, version_dir)

        self.identifiers.put(resolved.key, PluginIdentifier(
            plugin_name=resolved.plugin_name,
            group_id=coordinate.group_id,
            artifact_id=coordinate.artifact_id,
            packaging=coordinate.packaging,
            version=version,
            language=resolved.language,
        ))

        logger.info("Plugin '%s' (%s v%s) installed.", resolved.key, resolved.plugin_name, version)
        return InstallResult(
            key=resolved.key,
            plugin_name=resolved.plugin_name,
            version=version,
            language=resolved.language.value,
            coordinate=str(coordinate),
            path=target,
            size=target.stat().st_size,
            checksum=checksum,
            downloaded=data is not None,
        )

    async def _fetch_verified(
        self, coordinate: ArtifactCoordinate, target: Path, force: bool
    ) -> tuple[Optional[bytes], str]:
        """Return ``(bytes, sha1)``; bytes is ``None`` when the on-disk copy is reused."""
        if not force and target.is_file():
            trusted = self.checksums.lookup(coordinate)
            if trusted and sha1_of_file(target) == trusted:
                logger.info("%s already downloaded and verified, skipping fetch.", coordinate)
                return None, trusted

        data = await self._transport.fetch(coordinate)
        actual = sha1_hexdigest(data)

        if self._ctx.settings.verify_remote_checksum:
            fetch_published = getattr(self._transport, "fetch_checksum", None)
            if fetch_published is not None:
                published = await fetch_published(coordinate)
                if published and published != actual:
                    raise IntegrityError(
                        f"Downloaded {coordinate} does not match the repository checksum",
                        coordinate=str(coordinate),
                        expected=published,
                        actual=actual,
                    )

        expected = self.checksums.lookup(coordinate)
        if expected is None:
            self.checksums.upsert(coordinate, actual)
        elif expected != actual:
            raise IntegrityError(
                f"Checksum mismatch for {coordinate}: trusted {expected}, downloaded {actual}",
                coordinate=str(coordinate),
                expected=expected,
                actual=actual,
            )
        return data, actual

    def _disable_superseded(self, key: str, new_version_dir: Path) -> None:
        """Disable the version *key* was registered at before, if it differs."""
        previous = self.identifiers.get(key)
        if previous is None:
            return
        previous_dir = self._entry_dir(previous)
        if previous_dir == new_version_dir or not previous_dir.is_dir():
            return
        if self._registered_elsewhere(previous_dir, exclude_key=key) is not None:
            return
        self._layout.mark_disabled(previous_dir)
        logger.info("Disabled superseded %s v%s of '%s'.", previous.plugin_name, previous.version, key)

    def _entry_dir(self, entry: PluginIdentifier) -> Path:
        return self._layout.version_dir(entry.language, entry.plugin_name, entry.version)

    def _registered_elsewhere(self, version_dir: Path, exclude_key: str) -> Optional[str]:
        """Another registry key whose entry lives in *version_dir*, if any."""
        for other_key, entry in self.identifiers.list_identifiers().items():
            if other_key != exclude_key and self._entry_dir(entry) == version_dir:
                return other_key
        return None

    def _installed_coordinate(self, entry: PluginIdentifier) -> tuple[ArtifactCoordinate, Path]:
        """Coordinate and artifact path of a registered remote entry.

        The registry keeps no classifier. When the plain artifact file is
        absent, a single ``<artifact>-<version>-<classifier>.<packaging>``
        file in the version directory supplies it.
        """
        coordinate = ArtifactCoordinate(
            group_id=entry.group_id,
            artifact_id=entry.artifact_id,
            packaging=entry.packaging or "jar",
            version=entry.version,
        )
        version_dir = self._entry_dir(entry)
        path = self._layout.artifact_path(version_dir, coordinate.file_name)
        if path.is_file() or not version_dir.is_dir():
            return coordinate, path

        prefix = f"{coordinate.artifact_id}-{coordinate.version}-"
        suffix = f".{coordinate.packaging}"
        candidates = sorted(
            p for p in version_dir.iterdir()
            if p.is_file()
            and p.name.startswith(prefix)
            and p.name.endswith(suffix)
            and len(p.name) > len(prefix) + len(suffix)
        )
        if len(candidates) != 1:
            return coordinate, path
        classifier = candidates[0].name[len(prefix):-len(suffix)]
        return coordinate.model_copy(update={"classifier": classifier}), candidates[0]
