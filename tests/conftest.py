"""Test fixtures: in-memory transport, isolated bundles dir, run context, installer.

All tests should use these fixtures for consistency.
"""

import logging

import pytest

from plumb.config import PlumbSettings
from plumb.context import RunContext
from plumb.exceptions import FetchError
from plumb.plugins import Installer
from plumb.plugins.storage import sha1_hexdigest
from plumb.types import ArtifactCoordinate

JAVA_GROUP = "org.kill-bill.billing.plugin.java"
ANALYTICS = ArtifactCoordinate(group_id=JAVA_GROUP, artifact_id="analytics-plugin", packaging="jar")
ANALYTICS_071 = b"analytics-plugin 0.7.1 bytes"
ANALYTICS_072 = b"analytics-plugin 0.7.2 bytes"


class FakeTransport:
    """In-memory repository that records every call.

    Args:
        artifacts: ``str(coordinate)`` → bytes served by :meth:`fetch`.
        versions: ``str(versionless coordinate)`` → published versions.
        published: ``str(coordinate)`` → digest served by :meth:`fetch_checksum`.
    """

    def __init__(self, artifacts=None, versions=None, published=None):
        self.artifacts = dict(artifacts or {})
        self.versions = dict(versions or {})
        self.published = dict(published or {})
        self.fetch_calls: list[str] = []
        self.list_calls: list[str] = []
        self.checksum_calls: list[str] = []

    @property
    def calls(self) -> int:
        return len(self.fetch_calls) + len(self.list_calls) + len(self.checksum_calls)

    async def fetch(self, coordinate):
        self.fetch_calls.append(str(coordinate))
        try:
            return self.artifacts[str(coordinate)]
        except KeyError:
            raise FetchError(f"GET {coordinate} failed with HTTP 404", url=str(coordinate), status_code=404)

    async def list_versions(self, coordinate):
        self.list_calls.append(str(coordinate))
        return list(self.versions.get(str(coordinate), []))

    async def fetch_checksum(self, coordinate):
        self.checksum_calls.append(str(coordinate))
        return self.published.get(str(coordinate))

    async def __aenter__(self):
        return self

    async def __aexit__(self, *_):
        return None


@pytest.fixture(autouse=True)
def _reset_plumb_logger():
    """The CLI attaches a handler and stops propagation; undo it between tests."""
    yield
    logger = logging.getLogger("plumb")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def bundles_dir(tmp_path):
    return tmp_path / "bundles"


@pytest.fixture
def settings(bundles_dir):
    """Test settings: isolated bundles dir, no retry delays."""
    return PlumbSettings(
        bundles_dir=str(bundles_dir),
        repository_url="https://repo.example.test/maven2",
        fetch_backoff_seconds=0.0,
        verify_remote_checksum=True,
        log_level="DEBUG",
    )


@pytest.fixture
def run_context(settings):
    with RunContext(settings) as ctx:
        yield ctx


@pytest.fixture
def transport():
    """Repository publishing analytics-plugin 0.7.1 and 0.7.2."""
    return FakeTransport(
        artifacts={
            str(ANALYTICS.with_version("0.7.1")): ANALYTICS_071,
            str(ANALYTICS.with_version("0.7.2")): ANALYTICS_072,
        },
        versions={str(ANALYTICS): ["0.7.0", "0.7.1", "0.7.2"]},
        published={
            str(ANALYTICS.with_version("0.7.1")): sha1_hexdigest(ANALYTICS_071),
        },
    )


@pytest.fixture
def installer(run_context, transport):
    return Installer(run_context, transport)
