"""CoordinateResolver: plugin key + version token → concrete artifact coordinate."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from plumb.exceptions import ResolutionError
from plumb.plugins.transport import ArtifactTransport
from plumb.types import (
    ArtifactCoordinate,
    KnownPlugin,
    PluginLanguage,
    ResolvedArtifact,
    is_latest,
)

logger = logging.getLogger(__name__)

_JAVA_GROUP = "org.kill-bill.billing.plugin.java"
_RUBY_GROUP = "org.kill-bill.billing.plugin.ruby"


def _java(artifact_id: str) -> KnownPlugin:
    return KnownPlugin(group_id=_JAVA_GROUP, artifact_id=artifact_id, packaging="jar", language=PluginLanguage.JAVA)


def _ruby(artifact_id: str) -> KnownPlugin:
    return KnownPlugin(group_id=_RUBY_GROUP, artifact_id=artifact_id, packaging="tar.gz", language=PluginLanguage.RUBY)


# Short user-facing key → where the plugin is published
KNOWN_PLUGINS: dict[str, KnownPlugin] = {
    "adyen": _java("adyen-plugin"),
    "analytics": _java("analytics-plugin"),
    "avatax": _java("avatax-plugin"),
    "braintree": _java("braintree-plugin"),
    "email-notifications": _java("email-notifications-plugin"),
    "payment-test": _java("payment-test-plugin"),
    "stripe": _java("stripe-plugin"),
    "paypal": _ruby("paypal-express-plugin"),
}


class CoordinateResolver:
    """Turns ``(key | explicit coordinates, version token)`` into a :class:`ResolvedArtifact`.

    One instance per command run: version listings are cached per
    ``group:artifact:packaging[:classifier]`` for the lifetime of the instance,
    so resolving ``LATEST`` twice costs one remote call.

    Args:
        transport: Anything implementing :class:`ArtifactTransport`.
        known_plugins: Key table; defaults to :data:`KNOWN_PLUGINS`.
    """

    def __init__(
        self,
        transport: ArtifactTransport,
        known_plugins: Optional[Mapping[str, KnownPlugin]] = None,
    ) -> None:
        self._transport = transport
        self._known = dict(KNOWN_PLUGINS if known_plugins is None else known_plugins)
        self._versions_cache: dict[str, list[str]] = {}

    def lookup(self, key: str) -> Optional[KnownPlugin]:
        return self._known.get(key)

    def base_coordinate(
        self,
        key: str,
        group_id: Optional[str] = None,
        artifact_id: Optional[str] = None,
        packaging: Optional[str] = None,
        classifier: Optional[str] = None,
        language: Optional[PluginLanguage] = None,
    ) -> tuple[ArtifactCoordinate, PluginLanguage]:
        """Versionless coordinate for *key*, without touching the network.

        Explicit ``group_id`` + ``artifact_id`` win over the key table.

        Raises:
            ResolutionError: *key* is unknown and no explicit coordinates were given.
        """
        if group_id and artifact_id:
            coordinate = ArtifactCoordinate(
                group_id=group_id,
                artifact_id=artifact_id,
                packaging=packaging or "jar",
                classifier=classifier,
            )
            return coordinate, PluginLanguage(language or PluginLanguage.JAVA)

        known = self._known.get(key)
        if known is None:
            raise ResolutionError(
                f"Unknown plugin key '{key}'. Pass --group-id and --artifact-id "
                f"or use one of: {', '.join(sorted(self._known))}",
                key=key,
            )
        coordinate = ArtifactCoordinate(
            group_id=group_id or known.group_id,
            artifact_id=artifact_id or known.artifact_id,
            packaging=packaging or known.packaging,
            classifier=classifier,
        )
        return coordinate, PluginLanguage(language or known.language)

    async def available_versions(self, coordinate: ArtifactCoordinate) -> list[str]:
        """Published versions for *coordinate*, cached per instance."""
        cache_key = str(coordinate.without_version())
        if cache_key in self._versions_cache:
            logger.debug("Version listing cache hit for %s", cache_key)
            return list(self._versions_cache[cache_key])
        versions = list(await self._transport.list_versions(coordinate.without_version()))
        self._versions_cache[cache_key] = versions
        return list(versions)

    async def resolve(
        self,
        key: str,
        version: Optional[str] = None,
        group_id: Optional[str] = None,
        artifact_id: Optional[str] = None,
        packaging: Optional[str] = None,
        classifier: Optional[str] = None,
        language: Optional[PluginLanguage] = None,
    ) -> ResolvedArtifact:
        """Resolve *key* at *version* (a literal version or ``LATEST``/``None``).

        Raises:
            ResolutionError: Unknown key without explicit coordinates, or
                             ``LATEST`` requested and nothing is published.
        """
        coordinate, resolved_language = self.base_coordinate(
            key, group_id, artifact_id, packaging, classifier, language
        )

        if is_latest(version):
            versions = await self.available_versions(coordinate)
            if not versions:
                raise ResolutionError(
                    f"No published versions for {coordinate}; cannot resolve LATEST", key=key
                )
            concrete = versions[-1]
            logger.info("Resolved %s LATEST → %s", coordinate, concrete)
        else:
            concrete = version.strip()

        return ResolvedArtifact(
            key=key,
            coordinate=coordinate.with_version(concrete),
            language=resolved_language,
            plugin_name=coordinate.artifact_id,
        )
