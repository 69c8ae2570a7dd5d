"""Application configuration + plumb.yml loader.

All env vars defined here with PLUMB_ prefix.
"""

from pydantic_settings import BaseSettings

from plumb.config.loader import first_set, load_config_file, load_settings
from plumb.config.schema import PlumbConfigFile, PlumbFileSettings


class PlumbSettings(BaseSettings):
    # ── Layout ──
    bundles_dir: str = "/var/tmp/bundles"
    checksum_file_name: str = "sha1.yml"          # relative to bundles_dir

    # ── Repository ──
    repository_url: str = "https://repo1.maven.org/maven2"
    fetch_timeout: float = 60.0                    # seconds per request
    fetch_max_retries: int = 3                     # extra attempts on 5xx / connection errors
    fetch_backoff_seconds: float = 1.0             # doubled on every retry
    verify_remote_checksum: bool = True            # compare against <artifact>.sha1 when published

    # ── App ──
    log_level: str = "INFO"

    model_config = {"env_prefix": "PLUMB_", "env_file": ".env", "extra": "ignore"}


config = PlumbSettings()


__all__ = [
    "PlumbSettings",
    "config",
    "first_set",
    "load_config_file",
    "load_settings",
    "PlumbConfigFile",
    "PlumbFileSettings",
]
