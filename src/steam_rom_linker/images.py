"""Locate or download cover art for ROM files."""

from __future__ import annotations

import asyncio
from pathlib import Path
from pathlib import PurePosixPath

import httpx
from PIL import Image
from PIL import UnidentifiedImageError
from tqdm import tqdm

IMAGE_EXTENSIONS = ("png", "jpg", "jpeg")
HTTP_SCHEMES = ("http://", "https://")
LOCAL_IMAGE_DIR = "images"


def find_local_image(rom_path: Path) -> Path | None:
    """Return ``images/<rom-stem>.<ext>`` beside the ROM, if one exists.

    Args:
        rom_path: Full path of the ROM file.

    Returns:
        Path | None: The first existing image in extension priority order.
    """
    images_dir = rom_path.parent / LOCAL_IMAGE_DIR
    for ext in IMAGE_EXTENSIONS:
        candidate = images_dir / f"{rom_path.stem}.{ext}"
        if candidate.exists():
            return candidate
    return None


def detect_image_format(path: Path) -> str | None:
    """Identify an image file while swallowing unreadable files.

    Returns:
        str | None: Pillow's format name (``"PNG"``, ``"JPEG"``...) or ``None``.
    """
    try:
        with Image.open(path) as img:
            return img.format
    except (
        OSError,
        UnidentifiedImageError,
        ValueError,
        Image.DecompressionBombError,
    ):
        return None


class ImageResolver:
    """Resolve a cover image for a ROM, locally first and then remotely.

    Remote requests share one ``httpx.AsyncClient`` and are bounded by a
    semaphore. Network and filesystem failures never escape ``resolve``.
    """

    def __init__(
        self, client: httpx.AsyncClient, endpoint: str, max_downloads: int = 8
    ) -> None:
        self.client = client
        self.endpoint = endpoint
        self._limit = asyncio.Semaphore(max_downloads)

    async def resolve(
        self, console: str, title: str, rom_path: Path, destination: Path
    ) -> Path | None:
        """Return a usable image path for the ROM, or ``None``.

        Args:
            console: Console label sent to the lookup endpoint.
            title: Display title sent to the lookup endpoint.
            rom_path: Full path of the ROM file.
            destination: Directory downloaded images are cached in.

        Returns:
            Path | None: A local or freshly downloaded image.
        """
        local = find_local_image(rom_path)
        if local is not None:
            return local

        tqdm.write(f"Downloading image: {console}, {rom_path.stem}")
        try:
            async with self._limit:
                url = await self.lookup(console, title)
                if url is None:
                    return None
                return await self.download(url, destination, rom_path.stem, title)
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as exc:
            tqdm.write(f"⚠ Image lookup failed for '{title}': {exc}")
            return None

    async def lookup(self, console: str, title: str) -> str | None:
        """Ask the endpoint for an image URL.

        Returns:
            str | None: The URL, or ``None`` for an empty or non-HTTP body.

        Raises:
            httpx.HTTPError: On transport failures or error statuses.
        """
        response = await self.client.get(
            self.endpoint, params={"console": console, "game": title}
        )
        response.raise_for_status()
        url = response.text.strip()
        if not url.startswith(HTTP_SCHEMES):
            return None
        return url

    async def download(
        self, url: str, destination: Path, stem: str, title: str
    ) -> Path | None:
        """Stream ``url`` into ``destination/<stem><suffix>``.

        The body lands in a ``.part`` file that only takes its final name once
        the stream completes and Pillow accepts it; an interrupted download
        leaves nothing in ``destination``. The suffix comes from the final URL;
        when it has none, the format Pillow detects is used instead.

        Returns:
            Path | None: The written image, or ``None`` if it is not an image.

        Raises:
            httpx.HTTPError: On transport failures or error statuses.
            OSError: If the file cannot be written.
        """
        destination.mkdir(parents=True, exist_ok=True)
        async with self.client.stream("GET", url) as response:
            response.raise_for_status()
            suffix = PurePosixPath(response.url.path).suffix
            partial = destination / f"{stem}{suffix}.part"
            try:
                with partial.open("wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
            except BaseException:
                partial.unlink(missing_ok=True)
                raise

        image_format = detect_image_format(partial)
        if image_format is None:
            partial.unlink(missing_ok=True)
            tqdm.write(f"⚠ Downloaded file for '{title}' is not an image")
            return None
        if not suffix:
            suffix = f".{image_format.lower()}"
        return partial.replace(destination / f"{stem}{suffix}")
