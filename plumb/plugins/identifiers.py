"""IdentifierRegistry: plugin key → metadata for every currently enabled plugin."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from plumb.exceptions import PersistenceError
from plumb.plugins.storage import write_atomically
from plumb.types import PluginIdentifier

logger = logging.getLogger(__name__)


class IdentifierRegistry:
    """JSON-backed registry of enabled plugins.

    File format (``plugins/plugin_identifiers.json``)::

        {
          "analytics": {
            "plugin_name": "analytics-plugin",
            "group_id": "org.kill-bill.billing.plugin.java",
            "artifact_id": "analytics-plugin",
            "packaging": "jar",
            "version": "0.7.1",
            "language": "java"
          }
        }

    Absence of a key means disabled or never installed; the filesystem, not
    this registry, says whether a version exists on disk. A missing file is an
    empty registry and is only created by the first :meth:`save`.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._entries: dict[str, PluginIdentifier] = {}
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    # ─── Persistence ──────────────────────────────────────────────────────────

    def load(self) -> None:
        """Read the backing file into memory (empty when the file is absent).

        Raises:
            PersistenceError: File exists but is not a JSON object of valid entries.
        """
        if not self._path.exists():
            self._entries = {}
            return
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
            raise PersistenceError(
                f"Could not load plugin identifiers from {self._path}: {exc}", path=str(self._path)
            ) from exc
        if not isinstance(raw, dict):
            raise PersistenceError(
                f"Plugin identifiers file {self._path} must contain a JSON object", path=str(self._path)
            )
        try:
            self._entries = {key: PluginIdentifier.model_validate(value) for key, value in raw.items()}
        except ValidationError as exc:
            raise PersistenceError(
                f"Invalid plugin identifier entry in {self._path}: {exc}", path=str(self._path)
            ) from exc

    def save(self) -> None:
        """Rewrite the whole file atomically, then reload it."""
        state = {key: entry.model_dump() for key, entry in sorted(self._entries.items())}
        write_atomically(self._path, json.dumps(state, indent=2) + "\n")
        self.load()

    # ─── Mutations ────────────────────────────────────────────────────────────

    def put(self, key: str, identifier: PluginIdentifier) -> None:
        self._entries[key] = identifier
        self.save()
        logger.info("Registered '%s' → %s v%s", key, identifier.plugin_name, identifier.version)

    def remove(self, key: str) -> bool:
        """Remove *key* and persist. Returns ``False`` when it was already absent."""
        existed = self._entries.pop(key, None) is not None
        self.save()
        if existed:
            logger.info("Unregistered '%s'", key)
        return existed

    # ─── Queries ──────────────────────────────────────────────────────────────

    def get(self, key: str) -> Optional[PluginIdentifier]:
        return self._entries.get(key)

    def find_by_key_or_name(self, token: str) -> list[tuple[str, PluginIdentifier]]:
        """Entries whose key equals *token* or whose ``plugin_name`` equals *token*."""
        return [
            (key, entry)
            for key, entry in self._entries.items()
            if key == token or entry.plugin_name == token
        ]

    def list_identifiers(self) -> dict[str, PluginIdentifier]:
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
