"""Download and cache the FriendsOfPHP advisory archive."""

import asyncio
import io
import os
import shutil
import ssl
import tempfile
import time
import zipfile
from pathlib import Path
from typing import Any, Optional

import aiohttp
import certifi
from aiohttp import ClientTimeout

from ..config import CheckerOptions
from ..errors import AdvisoryFetchError
from ..utils.logging import get_logger
from ..utils.performance import PerformanceMonitor

# Files come from a source we don't control, so nothing is left executable.
FILE_PERMISSIONS = 0o666


class AdvisoryFetcher:
    """Keeps a local copy of the advisories archive fresh."""

    def __init__(
        self,
        options: Optional[CheckerOptions] = None,
        session: Optional[aiohttp.ClientSession] = None
    ) -> None:
        """Initialize the fetcher.

        Args:
            options: Checker options (directory, staleness window, URL, timeout)
            session: Optional aiohttp session for connection reuse
        """
        self.options = options or CheckerOptions()
        self.logger = get_logger("AdvisoryFetcher")
        self.performance_monitor = PerformanceMonitor()
        self._session = session
        self._ssl_context = ssl.create_default_context(cafile=certifi.where())

    @property
    def database_path(self) -> Path:
        return self.options.database_path

    def last_fetched(self) -> Optional[int]:
        """Unix time of the last successful fetch, if recorded."""
        try:
            return int(self.options.timestamp_file.read_text().strip())
        except (OSError, ValueError):
            return None

    def is_stale(self, now: Optional[float] = None) -> bool:
        """Check whether the cached archive is missing or too old.

        Args:
            now: Current unix time (defaults to time.time())

        Returns:
            True if a new download is needed
        """
        fetched = self.last_fetched()
        if fetched is None or not self.database_path.is_dir():
            return True
        now = time.time() if now is None else now
        return fetched < now - self.options.stale_after

    async def fetch(self, force: bool = False) -> bool:
        """Download and extract the archive if the cache is stale.

        Args:
            force: Download even if the cache is fresh

        Returns:
            True if a download happened

        Raises:
            AdvisoryFetchError: On HTTP errors, transport errors or a bad archive
        """
        if not force and not self.is_stale():
            self.logger.debug(f"Advisories in {self.options.advisories_dir} are fresh")
            return False

        with self.performance_monitor.measure("fetch_advisories"):
            self.logger.info(f"Downloading advisories from {self.options.advisories_url}")
            payload = await self._download()

            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self.extract, payload)

        return True

    def fetch_sync(self, force: bool = False) -> bool:
        """Blocking wrapper around fetch() for synchronous callers."""
        return asyncio.run(self.fetch(force=force))

    async def _download(self) -> bytes:
        url = self.options.advisories_url
        timeout = ClientTimeout(total=self.options.http_timeout)
        try:
            if self._session is not None and not self._session.closed:
                return await self._read(self._session, url, timeout=timeout, ssl=self._ssl_context)

            connector = aiohttp.TCPConnector(ssl=self._ssl_context)
            async with aiohttp.ClientSession(timeout=timeout, connector=connector) as session:
                return await self._read(session, url)
        except asyncio.TimeoutError as e:
            raise AdvisoryFetchError(f"Timed out requesting advisories from {url}") from e
        except aiohttp.ClientError as e:
            raise AdvisoryFetchError(f"Failed to request advisories from {url}: {e}") from e

    async def _read(self, session: aiohttp.ClientSession, url: str, **request_options: Any) -> bytes:
        async with session.get(url, **request_options) as response:
            if response.status >= 300:
                raise AdvisoryFetchError(
                    f"Got status code {response.status} when requesting advisories.",
                    status=response.status,
                )
            return await response.read()

    def extract(self, payload: bytes) -> None:
        """Replace the local database with the contents of a zip archive.

        The archive is unpacked into a staging directory first. The existing
        database is only replaced once extraction has fully succeeded.

        Args:
            payload: Raw zip archive bytes

        Raises:
            AdvisoryFetchError: If the archive is invalid or unsafe
        """
        target = self.options.advisories_dir
        target.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=".extract-", dir=target))

        try:
            members = self._extract_to(payload, staging)
            extracted = staging / self.database_path.name
            if not extracted.is_dir():
                raise AdvisoryFetchError(
                    f"Advisories archive does not contain '{self.database_path.name}'"
                )
            self._set_permissions(extracted)
            self._replace_database(extracted)
        finally:
            shutil.rmtree(staging, ignore_errors=True)

        self.options.timestamp_file.write_text(str(int(time.time())))
        self.logger.info(f"Extracted {members} archive entries into {self.database_path}")

    def _extract_to(self, payload: bytes, staging: Path) -> int:
        root = staging.resolve()
        try:
            with zipfile.ZipFile(io.BytesIO(payload)) as archive:
                members = archive.infolist()
                for member in members:
                    destination = (staging / member.filename).resolve()
                    if destination != root and root not in destination.parents:
                        raise AdvisoryFetchError(f"Unsafe path in advisories archive: {member.filename}")
                archive.extractall(staging)
        except zipfile.BadZipFile as e:
            raise AdvisoryFetchError(f"Advisories archive is not a valid zip file: {e}") from e
        return len(members)

    def _replace_database(self, extracted: Path) -> None:
        # Directory renames can't overwrite a non-empty target, so the old tree is moved aside first.
        previous = self.database_path.with_name(f".{self.database_path.name}.previous")
        if previous.exists():
            shutil.rmtree(previous)
        if self.database_path.exists():
            os.replace(self.database_path, previous)
        os.replace(extracted, self.database_path)
        if previous.exists():
            shutil.rmtree(previous)

    def _set_permissions(self, directory: Path) -> None:
        for dirpath, _, filenames in os.walk(directory):
            for filename in filenames:
                os.chmod(os.path.join(dirpath, filename), FILE_PERMISSIONS)
