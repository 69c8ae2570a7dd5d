"""Pydantic schema for the optional plumb.yml config file."""

from typing import Optional

from pydantic import BaseModel


class PlumbFileSettings(BaseModel):
    """Every field optional: absent keys fall through to env/defaults."""
    bundles_dir: Optional[str] = None
    repository_url: Optional[str] = None
    fetch_timeout: Optional[float] = None
    fetch_max_retries: Optional[int] = None
    fetch_backoff_seconds: Optional[float] = None
    verify_remote_checksum: Optional[bool] = None
    checksum_file_name: Optional[str] = None
    log_level: Optional[str] = None

    model_config = {"extra": "ignore"}


class PlumbConfigFile(BaseModel):
    plumb: PlumbFileSettings = PlumbFileSettings()

    model_config = {"extra": "ignore"}
