"""Load plumb.yml and merge it with explicit arguments and environment settings.

Precedence per field, highest first:
  1. Explicit argument (CLI option or keyword passed by the caller)
  2. Value in the config file (``plumb:`` mapping of plumb.yml)
  3. Environment variable ``PLUMB_<FIELD>`` / .env
  4. Built-in default on :class:`PlumbSettings`

Config file resolution: explicit path > ./plumb.yml in cwd > none.
"""

from pathlib import Path
from typing import Any, Optional, TypeVar

import yaml
from pydantic import ValidationError

from plumb.config.schema import PlumbConfigFile
from plumb.exceptions import PersistenceError

T = TypeVar("T")

CONFIG_FILE_NAME = "plumb.yml"


def first_set(*candidates: Optional[T]) -> Optional[T]:
    """Return the first candidate that is not ``None``."""
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None


def _find_config_file(explicit: Optional[Path]) -> Optional[Path]:
    """Locate config file: explicit > cwd > none."""
    if explicit is not None:
        p = Path(explicit)
        if not p.exists():
            raise FileNotFoundError(f"Config file not found: {p}")
        return p

    cwd_path = Path.cwd() / CONFIG_FILE_NAME
    if cwd_path.exists():
        return cwd_path
    return None


def load_config_file(path: Optional[Path] = None) -> dict[str, Any]:
    """Read plumb.yml → dict of the fields it actually sets.

    Returns an empty dict when no config file is found.

    Raises:
        PersistenceError: File exists but is not valid YAML or fails the schema.
    """
    resolved = _find_config_file(path)
    if resolved is None:
        return {}
    try:
        raw = yaml.safe_load(resolved.read_text(encoding="utf-8"))
        parsed = PlumbConfigFile.model_validate(raw or {})
    except (OSError, UnicodeDecodeError, yaml.YAMLError, ValidationError) as exc:
        raise PersistenceError(f"Invalid config file {resolved}: {exc}", path=str(resolved)) from exc
    return parsed.plumb.model_dump(exclude_none=True)


def load_settings(config_file: Optional[Path] = None, **explicit: Any):
    """Build :class:`PlumbSettings` applying explicit > file > env > default.

    Args:
        config_file: Path to a plumb.yml. If None, ./plumb.yml is used when present.
        **explicit: Field overrides; ``None`` values mean "not given".
    """
    from plumb.config import PlumbSettings

    file_values = load_config_file(config_file)
    base = PlumbSettings()
    merged = {
        name: first_set(explicit.get(name), file_values.get(name), getattr(base, name))
        for name in PlumbSettings.model_fields
    }
    return PlumbSettings(**merged)
