"""Crash-safe file replacement shared by the checksum store and identifier registry."""

import hashlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from plumb.exceptions import PersistenceError

logger = logging.getLogger(__name__)


def write_atomically(path: Path, content: Union[str, bytes]) -> None:
    """Write *content* to *path* so readers see either the old or the new file.

    A private temp directory is created next to *path* (same filesystem, so
    the final ``os.replace`` is a true atomic rename), the payload is written
    and fsynced there, then moved over *path*. The temp directory is removed
    on every exit path.

    Not safe against a second process writing the same *path* concurrently:
    the later replace wins.

    Raises:
        PersistenceError: The file could not be written.
    """
    path = Path(path)
    data = content.encode("utf-8") if isinstance(content, str) else content
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(prefix=f".{path.name}-", dir=path.parent) as tmp_dir:
            tmp_file = Path(tmp_dir) / path.name
            with open(tmp_file, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_file, path)
    except OSError as exc:
        raise PersistenceError(f"Could not write {path}: {exc}", path=str(path)) from exc
    logger.debug("Wrote %d bytes to %s", len(data), path)


def sha1_hexdigest(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def sha1_of_file(path: Path) -> str:
    """Stream *path* through SHA-1 and return the hex digest."""
    digest = hashlib.sha1()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()
