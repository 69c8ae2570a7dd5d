"""Remote repository access: the transport contract and a Maven-layout HTTP client."""

from __future__ import annotations

import asyncio
import logging
import xml.etree.ElementTree as ET
from typing import Optional, Protocol, runtime_checkable

import httpx

from plumb.exceptions import FetchError
from plumb.types import ArtifactCoordinate
from plumb.version import __version__

logger = logging.getLogger(__name__)

# Status codes worth another attempt
_RETRY_STATUS = frozenset({429, 500, 502, 503, 504})


@runtime_checkable
class ArtifactTransport(Protocol):
    """What the installer needs from a remote repository."""

    async def fetch(self, coordinate: ArtifactCoordinate) -> bytes:
        """Return the artifact bytes for a resolved coordinate.

        Raises:
            FetchError: non-success response or network failure.
        """
        ...

    async def list_versions(self, coordinate: ArtifactCoordinate) -> list[str]:
        """Published versions for ``coordinate`` (version ignored), oldest first."""
        ...


class MavenTransport:
    """Async HTTP client for a Maven-layout repository.

    URLs::

        <repo>/<group/as/path>/<artifact>/<version>/<artifact>-<version>[-<classifier>].<packaging>
        <artifact url>.sha1
        <repo>/<group/as/path>/<artifact>/maven-metadata.xml

    Every request carries a timeout and is retried with exponential backoff
    on connection errors and 429/5xx responses. Other 4xx responses fail
    immediately.

    Args:
        base_url: Repository root, e.g. ``https://repo1.maven.org/maven2``.
        timeout: Per-request timeout in seconds.
        max_retries: Extra attempts after the first one.
        backoff_seconds: First retry delay; doubled on every further retry.
        client: Pre-built ``httpx.AsyncClient`` (tests pass one backed by
                ``httpx.MockTransport``). Owned by the caller when given.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max(0, max_retries)
        self._backoff = backoff_seconds
        self._owns_client = client is None
        self._http = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": f"plumb/{__version__}"},
        )

    @classmethod
    def from_settings(cls, settings) -> "MavenTransport":
        return cls(
            base_url=settings.repository_url,
            timeout=settings.fetch_timeout,
            max_retries=settings.fetch_max_retries,
            backoff_seconds=settings.fetch_backoff_seconds,
        )

    # ── Lifecycle ──────────────────────────────────────────────────────────

    async def __aenter__(self) -> "MavenTransport":
        return self

    async def __aexit__(self, *_) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    # ── URLs ───────────────────────────────────────────────────────────────

    def artifact_directory_url(self, coordinate: ArtifactCoordinate) -> str:
        group_path = coordinate.group_id.replace(".", "/")
        return f"{self.base_url}/{group_path}/{coordinate.artifact_id}"

    def artifact_url(self, coordinate: ArtifactCoordinate) -> str:
        if not coordinate.is_resolved:
            raise ValueError(f"Coordinate {coordinate} has no concrete version")
        return f"{self.artifact_directory_url(coordinate)}/{coordinate.version}/{coordinate.file_name}"

    def metadata_url(self, coordinate: ArtifactCoordinate) -> str:
        return f"{self.artifact_directory_url(coordinate)}/maven-metadata.xml"

    # ── Contract ───────────────────────────────────────────────────────────

    async def fetch(self, coordinate: ArtifactCoordinate) -> bytes:
        url = self.artifact_url(coordinate)
        logger.info("Downloading %s", url)
        response = await self._get(url)
        return response.content

    async def fetch_checksum(self, coordinate: ArtifactCoordinate) -> Optional[str]:
        """Published SHA-1 of the artifact, or ``None`` when the repository has none."""
        url = self.artifact_url(coordinate) + ".sha1"
        try:
            response = await self._get(url)
        except FetchError as exc:
            if exc.status_code == 404:
                logger.debug("No published checksum at %s", url)
                return None
            raise
        # Some repositories append the file name after the digest
        text = response.text.strip()
        return text.split()[0].lower() if text else None

    async def list_versions(self, coordinate: ArtifactCoordinate) -> list[str]:
        url = self.metadata_url(coordinate)
        response = await self._get(url)
        return parse_maven_metadata(response.text, url=url)

    # ── HTTP ───────────────────────────────────────────────────────────────

    async def _get(self, url: str) -> httpx.Response:
        attempts = self._max_retries + 1
        last_error: Optional[Exception] = None
        for attempt in range(attempts):
            try:
                response = await self._http.get(url, timeout=self._timeout)
            except (httpx.ConnectError, httpx.TimeoutException, httpx.RemoteProtocolError) as exc:
                last_error = exc
                if attempt == attempts - 1:
                    break
                await self._sleep_before_retry(attempt, url, str(exc))
                continue

            if response.status_code in _RETRY_STATUS and attempt < attempts - 1:
                await self._sleep_before_retry(attempt, url, f"HTTP {response.status_code}")
                continue
            if response.is_success:
                return response
            raise FetchError(
                f"GET {url} failed with HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        raise FetchError(f"GET {url} failed after {attempts} attempts: {last_error}", url=url)

    async def _sleep_before_retry(self, attempt: int, url: str, reason: str) -> None:
        delay = self._backoff * (2 ** attempt)
        logger.debug("Retrying %s in %.1fs (%s)", url, delay, reason)
        await asyncio.sleep(delay)


def parse_maven_metadata(xml_text: str, url: str = "") -> list[str]:
    """Extract ``versioning/versions/version`` entries in published order.

    Raises:
        FetchError: Document is not parseable XML.
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise FetchError(f"Invalid maven-metadata.xml at {url}: {exc}", url=url) from exc
    return [
        (node.text or "").strip()
        for node in root.findall("./versioning/versions/version")
        if (node.text or "").strip()
    ]
