"""Derive a bare plugin name (and version) from an artifact file name.

Grammar, applied to the file name after directory and extension are removed
and the rest is split on ``-``::

    name-segment    := anything
    version-token   := DIGITS ( "." DIGITS )*
    prerelease      := "SNAPSHOT"
    artifact-stem   := name-segment+ version-token* prerelease?
                     | name-segment+ qualifier prerelease?

Trailing ``SNAPSHOT`` segments are dropped first, then trailing version
tokens. When the file carries no numeric version at all, exactly one trailing
segment is treated as a qualifier and dropped (``xxx-foo-abc.jar`` →
``xxx-foo``). That last rule is a heuristic and can cut a legitimate final
word off a name with no version; it is kept narrow on purpose.
"""

import re
from pathlib import PurePath
from typing import Optional, Union

VERSION_TOKEN = re.compile(r"^\d+(\.\d+)*$")
PRERELEASE_MARKER = "SNAPSHOT"

# Longest first so ".tar.gz" wins over ".gz"
_KNOWN_EXTENSIONS = (".tar.gz", ".tgz", ".jar", ".war", ".zip")


def strip_extension(file_name: str) -> str:
    lowered = file_name.lower()
    for ext in _KNOWN_EXTENSIONS:
        if lowered.endswith(ext):
            return file_name[: -len(ext)]
    return PurePath(file_name).stem


def tokenize(file_path: Union[str, PurePath]) -> list[str]:
    """``/a/b/xxx-foo-1.0.0-SNAPSHOT.jar`` → ``['xxx', 'foo', '1.0.0', 'SNAPSHOT']``."""
    stem = strip_extension(PurePath(file_path).name)
    return [segment for segment in stem.split("-") if segment]


def is_version_token(segment: str) -> bool:
    return bool(VERSION_TOKEN.match(segment))


def split_artifact_file_name(file_path: Union[str, PurePath]) -> tuple[str, Optional[str]]:
    """Split an artifact file name into ``(plugin_name, version)``.

    ``version`` is the numeric version (with ``-SNAPSHOT`` re-attached when
    present) or ``None`` when the name carries no numeric version.

    Examples::

        split_artifact_file_name("xxx-foo-1.0.0-SNAPSHOT.jar")  → ("xxx-foo", "1.0.0-SNAPSHOT")
        split_artifact_file_name("xxx-foo-1.jar")               → ("xxx-foo", "1")
        split_artifact_file_name("xxx-foo-abc.jar")             → ("xxx-foo", None)
    """
    segments = tokenize(file_path)

    snapshot = False
    while len(segments) > 1 and segments[-1] == PRERELEASE_MARKER:
        segments.pop()
        snapshot = True

    version_tokens: list[str] = []
    while len(segments) > 1 and is_version_token(segments[-1]):
        version_tokens.insert(0, segments.pop())

    if not version_tokens and len(segments) > 1:
        # No numeric version: the last segment is a qualifier
        segments.pop()

    name = "-".join(segments)
    if not version_tokens:
        return name, None
    version = "-".join(version_tokens)
    if snapshot:
        version = f"{version}-{PRERELEASE_MARKER}"
    return name, version


def derive_plugin_name(file_path: Union[str, PurePath]) -> str:
    """Bare plugin name for an artifact path, e.g. ``xxx-foo-1.0.jar`` → ``xxx-foo``."""
    return split_artifact_file_name(file_path)[0]
