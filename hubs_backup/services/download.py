"""
Download service: streams remote assets to disk and owns the small set of
filesystem operations the exporters need.
"""

import asyncio
import json
import shutil
from pathlib import Path
from typing import Any, Optional, Union
from urllib.parse import urlparse

import aiofiles
import aiofiles.os
import httpx

from ..infrastructure.error_handler import AssetDownloadError
from ..infrastructure.logger import logger
from ..models import BackupConfig


PathLike = Union[str, Path]

PARTIAL_SUFFIX = ".part"


def file_name_from_url(url: str) -> Optional[str]:
    """
    Return the final path segment of an absolute URL.

    Raises:
        ValueError: If ``url`` is not an absolute URL

    Returns:
        The file name, or None when the path has no final segment
    """
    if not isinstance(url, str):
        raise ValueError(f"Invalid URL: {url!r}")

    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Invalid URL: {url!r}")

    name = parsed.path.split("/")[-1]
    return name or None


class DownloadService:
    """Asset fetcher with skip-if-exists / overwrite-if-requested policy."""

    def __init__(
        self,
        config: Optional[BackupConfig] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.config = config or BackupConfig()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=self.config.timeout,
            verify=self.config.verify_ssl,
            follow_redirects=True,
            headers={"user-agent": self.config.user_agent},
        )

    async def __aenter__(self) -> "DownloadService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def ensure_directory(self, path: PathLike) -> Path:
        path = Path(path)
        await aiofiles.os.makedirs(path, exist_ok=True)
        return path

    async def remove(self, path: PathLike) -> None:
        """Delete a file or a whole directory tree."""
        path = Path(path)
        if path.is_dir() and not path.is_symlink():
            await asyncio.to_thread(shutil.rmtree, path)
        else:
            await aiofiles.os.remove(path)

    async def _claim(self, destination: Path, override: bool) -> bool:
        """Apply the overwrite policy; True when ``destination`` should be written."""

        if not await aiofiles.os.path.exists(destination):
            return True

        if override:
            logger.debug(f"Removing existing {destination}")
            await self.remove(destination)
            return True

        logger.info(f"{destination} already downloaded, skipping")
        return False

    async def fetch(self, url: str, destination: PathLike, override: bool = False) -> bool:
        """
        Stream ``url`` to ``destination``.

        The body is written to a sibling ``.part`` file that is renamed into
        place only once the stream completed, so an interrupted transfer never
        leaves a file that a later run would skip as finished.

        Returns:
            True if the file was downloaded, False if it was skipped

        Raises:
            AssetDownloadError: If the request or the write fails
        """
        destination = Path(destination)
        if not await self._claim(destination, override):
            return False

        partial = destination.with_name(destination.name + PARTIAL_SUFFIX)
        logger.info(f"Downloading {url} => {destination}")

        try:
            async with self.client.stream("GET", url) as response:
                response.raise_for_status()
                async with aiofiles.open(partial, "wb") as f:
                    async for chunk in response.aiter_bytes(self.config.chunk_size):
                        await f.write(chunk)
            await aiofiles.os.replace(partial, destination)
        except (httpx.HTTPError, OSError) as e:
            if await aiofiles.os.path.exists(partial):
                await aiofiles.os.remove(partial)
            raise AssetDownloadError(f"Failed to download {url} to {destination}", e) from e

        logger.debug(f"Downloaded {destination.name}")
        return True

    async def fetch_into(self, url: str, directory: PathLike, override: bool = False) -> Optional[Path]:
        """
        Download ``url`` into ``directory`` under its own file name.

        Returns:
            Local path of the file, or None when the URL has no file name

        Raises:
            ValueError: If ``url`` is not a valid absolute URL
            AssetDownloadError: If the transfer fails
        """
        name = file_name_from_url(url)
        if not name:
            logger.warning(f"{url} has no file name, skipping")
            return None

        path = Path(directory) / name
        await self.fetch(url, path, override)
        return path

    async def copy_file(self, source: PathLike, destination: PathLike, override: bool = False) -> bool:
        """Copy a local file, honoring the same skip / overwrite policy as downloads."""

        source, destination = Path(source), Path(destination)
        if source.resolve() == destination.resolve():
            return False
        if not await self._claim(destination, override):
            return False

        async with aiofiles.open(source, "rb") as src, aiofiles.open(destination, "wb") as dst:
            while True:
                chunk = await src.read(self.config.chunk_size)
                if not chunk:
                    break
                await dst.write(chunk)

        logger.debug(f"Copied {source.name} => {destination.name}")
        return True

    async def read_json(self, path: PathLike) -> Any:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            return json.loads(await f.read())

    async def write_json(self, path: PathLike, data: Any) -> None:
        """Write ``data`` as pretty printed JSON, replacing any previous content."""
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data, indent=2, ensure_ascii=False))


__all__ = [
    "DownloadService",
    "file_name_from_url",
]
