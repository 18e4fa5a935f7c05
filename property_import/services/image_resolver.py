from __future__ import annotations

import asyncio
import logging
import re
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import httpx

from ..models.config_models import ImageConfig

"""Remote image resolver.

Rewrites Google Drive share links into direct-download URLs, downloads the
bytes and stores them under the public media directory.

Per-property processing is sequential and never raises for an image: a
failed download keeps the original URL at that position so that one bad
image does not fail the listing.
"""

__all__ = [
    "ImageDownloadError",
    "ImageStats",
    "ImageResolver",
    "extract_file_id",
    "convert_share_url",
    "is_share_link",
]

logger = logging.getLogger(__name__)

DEFAULT_SHARE_HOSTS: tuple[str, ...] = ("drive.google.com",)
DEFAULT_DOWNLOAD_TEMPLATE = "https://drive.google.com/uc?export=download&id={file_id}"
REDIRECT_STATUSES = (301, 302)

# https://drive.google.com/file/d/FILE_ID/view
_FILE_PATH_RE = re.compile(r"/file/d/([a-zA-Z0-9_-]+)")
# https://drive.google.com/open?id=FILE_ID , .../uc?id=FILE_ID
_QUERY_ID_RE = re.compile(r"[?&]id=([a-zA-Z0-9_-]+)")


class ImageDownloadError(Exception):
    """A single image could not be resolved or stored."""


@dataclass
class ImageStats:
    downloaded: int = 0
    passed_through: int = 0
    fallback: int = 0


def extract_file_id(url: str) -> str | None:
    file_id: str | None = None
    m = _FILE_PATH_RE.search(url)
    if m:
        file_id = m.group(1)
    # query form wins when both shapes are present
    m = _QUERY_ID_RE.search(url)
    if m:
        file_id = m.group(1)
    return file_id


def convert_share_url(url: str, template: str = DEFAULT_DOWNLOAD_TEMPLATE) -> str | None:
    """Convert a share link into a direct download URL (None if no file id)."""
    file_id = extract_file_id(url)
    if file_id is None:
        logger.warning(f"could not extract file id from share link: {url}")
        return None
    return template.format(file_id=file_id)


def is_share_link(url: str, hosts: Sequence[str] = DEFAULT_SHARE_HOSTS) -> bool:
    return any(host in url for host in hosts)


class ImageResolver:
    """Downloads listing images into the local media directory.

    Use as an async context manager; the underlying httpx.AsyncClient is
    created lazily unless one is passed in.
    """

    DEFAULT_HEADERS = {
        "User-Agent": "property-import/1.0 (+image fetcher)",
        "Accept": "image/*,*/*;q=0.8",
    }

    def __init__(self, config: ImageConfig, client: httpx.AsyncClient | None = None):
        self.config = config
        self.media_dir = Path(config.media_directory)
        self.client = client
        self._owns_client = client is None
        self.stats = ImageStats()

    async def _get_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self.client = httpx.AsyncClient(
                headers=self.DEFAULT_HEADERS,
                timeout=self.config.download_timeout_seconds,
                follow_redirects=False,
            )
            self._owns_client = True
        return self.client

    async def close(self) -> None:
        if self.client is not None and self._owns_client:
            await self.client.aclose()
            self.client = None

    async def __aenter__(self) -> ImageResolver:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def is_share_link(self, url: str) -> bool:
        return is_share_link(url, self.config.share_hosts)

    def _new_file_path(self) -> Path:
        self.media_dir.mkdir(parents=True, exist_ok=True)
        return self.media_dir / f"{uuid.uuid4().hex}{self.config.image_extension}"

    @staticmethod
    async def _write_body(response: httpx.Response, file_path: Path) -> None:
        response.raise_for_status()
        with file_path.open("wb") as fh:
            async for chunk in response.aiter_bytes():
                fh.write(chunk)

    async def download_image(self, url: str) -> str:
        """Download one image and return its public path (e.g. /uploads/properties/<id>.jpg).

        Share links are converted first; an unconvertible share link fails
        without any network call. A 301/302 answer is followed for exactly
        one hop.

        Raises:
            ImageDownloadError: conversion, HTTP, timeout or write failure.
                Any partially written file is removed.
        """
        download_url = url
        if self.is_share_link(url):
            converted = convert_share_url(url, self.config.download_url_template)
            if converted is None:
                raise ImageDownloadError(f"Invalid share link: {url}")
            download_url = converted

        client = await self._get_client()
        file_path: Path | None = None
        try:
            file_path = self._new_file_path()
            async with client.stream("GET", download_url, follow_redirects=False) as response:
                if response.status_code in REDIRECT_STATUSES:
                    location = response.headers.get("location")
                    if not location:
                        raise ImageDownloadError("Redirect without location header")
                    redirect_url = str(response.url.join(location))
                    async with client.stream("GET", redirect_url, follow_redirects=False) as redirected:
                        await self._write_body(redirected, file_path)
                else:
                    await self._write_body(response, file_path)
        except ImageDownloadError:
            if file_path is not None:
                file_path.unlink(missing_ok=True)
            raise
        except (httpx.HTTPError, OSError) as e:
            if file_path is not None:
                file_path.unlink(missing_ok=True)
            raise ImageDownloadError(f"{type(e).__name__}: {e}") from e

        return f"{self.config.media_url_prefix}/{file_path.name}"

    async def process_property_images(
        self, image_urls: Sequence[str], cache: dict[str, str] | None = None
    ) -> list[str]:
        """Resolve a property's images one at a time, keeping their order.

        Share links are downloaded, anything else is kept as-is. A failed
        download keeps the original URL. ``cache`` (URL → stored path) is
        consulted and filled when given.
        """
        local_paths: list[str] = []
        for url in image_urls:
            if not self.is_share_link(url):
                local_paths.append(url)
                self.stats.passed_through += 1
                logger.debug(f"keeping direct URL: {url}")
                continue
            if cache is not None and url in cache:
                local_paths.append(cache[url])
                continue
            try:
                local_path = await self.download_image(url)
            except ImageDownloadError as e:
                logger.warning(f"image download failed, keeping original URL: {url} ({e})")
                local_paths.append(url)
                self.stats.fallback += 1
                continue
            local_paths.append(local_path)
            self.stats.downloaded += 1
            if cache is not None:
                cache[url] = local_path
            logger.debug(f"downloaded: {url} -> {local_path}")
        return local_paths

    async def download_images(self, urls: Sequence[str], concurrency: int = 4) -> list[str]:
        """Download many URLs concurrently (not used on the per-property path).

        Results keep the input order; failures fall back to the original URL.
        """
        semaphore = asyncio.Semaphore(max(1, concurrency))

        async def _one(url: str) -> str:
            async with semaphore:
                try:
                    path = await self.download_image(url)
                except ImageDownloadError as e:
                    logger.warning(f"failed to download image from {url}: {e}")
                    self.stats.fallback += 1
                    return url
                self.stats.downloaded += 1
                return path

        return list(await asyncio.gather(*(_one(u) for u in urls)))
