"""ChecksumStore: persistent coordinate → SHA-1 map of trusted artifacts."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import yaml

from plumb.exceptions import PersistenceError
from plumb.plugins.storage import write_atomically
from plumb.types import ArtifactCoordinate

logger = logging.getLogger(__name__)

# Single top-level key of the on-disk document
_ROOT_KEY = "sha1"

CoordinateLike = Union[ArtifactCoordinate, str]


class ChecksumStore:
    """Source of truth for "is this artifact the one we trust".

    Backed by a YAML document::

        sha1:
          org.kill-bill.billing.plugin.java:analytics-plugin:jar:0.7.1: 3f2a...

    Every mutation rewrites the whole file atomically and reloads it from disk
    before returning, so a corrupt write surfaces immediately as a
    :class:`PersistenceError` instead of being trusted from memory.

    Args:
        path: Location of the backing file. Created (with parents) when absent.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._records: dict[str, str] = {}
        self._init()

    @classmethod
    def open(cls, path: Path) -> "ChecksumStore":
        return cls(path)

    @property
    def path(self) -> Path:
        return self._path

    # ─── Public API ───────────────────────────────────────────────────────────

    def lookup(self, coordinate: CoordinateLike) -> Optional[str]:
        """Return the trusted checksum for *coordinate*, or ``None``."""
        return self._records.get(str(coordinate))

    def list_checksums(self) -> dict[str, str]:
        """Snapshot of all records; mutating it does not touch the store."""
        return dict(self._records)

    def upsert(self, coordinate: CoordinateLike, checksum: str) -> None:
        self._save({**self._records, str(coordinate): checksum})
        logger.info("Recorded checksum for %s", coordinate)

    def remove(self, coordinate: CoordinateLike) -> None:
        """Drop *coordinate* if present. Removing an absent entry is a no-op write."""
        records = dict(self._records)
        records.pop(str(coordinate), None)
        self._save(records)

    def reload(self) -> None:
        """Re-read the backing file into memory.

        Raises:
            PersistenceError: File is unreadable, not valid UTF-8, or not a
                              ``sha1:`` mapping of string to string.
        """
        try:
            document = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            raise PersistenceError(
                f"Could not load checksum store {self._path}: {exc}", path=str(self._path)
            ) from exc

        if document is None:
            document = {_ROOT_KEY: None}
        records = document.get(_ROOT_KEY) if isinstance(document, dict) else []
        if records is None:
            records = {}
        if not isinstance(records, dict):
            raise PersistenceError(
                f"Checksum store {self._path} must be a mapping with a '{_ROOT_KEY}' key",
                path=str(self._path),
            )
        invalid = [k for k, v in records.items() if not isinstance(k, str) or not isinstance(v, str)]
        if invalid:
            raise PersistenceError(
                f"Checksum store {self._path} has non-string entries: {', '.join(map(str, invalid))}",
                path=str(self._path),
            )
        self._records = dict(records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, coordinate: object) -> bool:
        return str(coordinate) in self._records

    # ─── Persistence ──────────────────────────────────────────────────────────

    def _init(self) -> None:
        if not self._path.exists():
            logger.debug("Initialising empty checksum store at %s", self._path)
            write_atomically(self._path, self._serialize({}))
        self.reload()

    def _save(self, records: dict[str, str]) -> None:
        # Memory only changes through reload, after the write succeeded
        write_atomically(self._path, self._serialize(records))
        self.reload()

    @staticmethod
    def _serialize(records: dict[str, str]) -> str:
        return yaml.safe_dump({_ROOT_KEY: dict(records)}, default_flow_style=False, sort_keys=True)
