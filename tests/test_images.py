from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from steam_rom_linker.images import ImageResolver
from steam_rom_linker.images import find_local_image

LOOKUP = "http://lookup.test/api/top_picture"


class FakeCoverSite:
    """Mock transport answering lookups and serving image downloads."""

    def __init__(self, lookup_body: str = "", files: dict[str, bytes] | None = None):
        self.lookup_body = lookup_body
        self.files = files or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "lookup.test":
            return httpx.Response(200, text=self.lookup_body)
        body = self.files.get(request.url.path)
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body)


def make_resolver(handler) -> ImageResolver:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ImageResolver(client, LOOKUP, max_downloads=2)


@pytest.fixture
def rom(tmp_path: Path) -> Path:
    path = tmp_path / "Sonic (USA).bin"
    path.write_bytes(b"\x00")
    return path


def test_find_local_image_priority(rom: Path) -> None:
    images = rom.parent / "images"
    images.mkdir()
    assert find_local_image(rom) is None

    (images / "Sonic (USA).jpeg").write_bytes(b"jpeg")
    assert find_local_image(rom) == images / "Sonic (USA).jpeg"

    (images / "Sonic (USA).jpg").write_bytes(b"jpg")
    assert find_local_image(rom) == images / "Sonic (USA).jpg"

    (images / "Sonic (USA).png").write_bytes(b"png")
    assert find_local_image(rom) == images / "Sonic (USA).png"


@pytest.mark.asyncio
async def test_local_image_skips_network(rom: Path) -> None:
    local = rom.parent / "images" / "Sonic (USA).png"
    local.parent.mkdir()
    local.write_bytes(b"png")
    site = FakeCoverSite("http://cdn.test/sonic.png")
    resolver = make_resolver(site)

    result = await resolver.resolve("Genesis", "Sonic", rom, rom.parent / "images")

    assert result == local
    assert site.requests == []


@pytest.mark.asyncio
async def test_empty_lookup_resolves_to_none(rom: Path) -> None:
    site = FakeCoverSite("")
    resolver = make_resolver(site)
    destination = rom.parent / "images"

    assert await resolver.resolve("Genesis", "Sonic", rom, destination) is None
    assert len(site.requests) == 1
    assert site.requests[0].url.params["console"] == "Genesis"
    assert site.requests[0].url.params["game"] == "Sonic"


@pytest.mark.asyncio
async def test_non_http_lookup_is_treated_as_empty(rom: Path) -> None:
    site = FakeCoverSite("No picture for this game")
    resolver = make_resolver(site)

    assert await resolver.resolve("Genesis", "Sonic", rom, rom.parent / "images") is None
    assert len(site.requests) == 1


@pytest.mark.asyncio
async def test_downloads_into_destination(rom: Path, png_bytes: bytes) -> None:
    site = FakeCoverSite(
        "  https://cdn.test/covers/sonic.png\n", {"/covers/sonic.png": png_bytes}
    )
    resolver = make_resolver(site)
    destination = rom.parent / "cache" / "images"

    result = await resolver.resolve("Genesis", "Sonic", rom, destination)

    assert result == destination / "Sonic (USA).png"
    assert result.read_bytes() == png_bytes


@pytest.mark.asyncio
async def test_download_without_suffix_uses_detected_format(
    rom: Path, png_bytes: bytes
) -> None:
    site = FakeCoverSite("http://cdn.test/cover", {"/cover": png_bytes})
    resolver = make_resolver(site)
    destination = rom.parent / "images"

    result = await resolver.resolve("Genesis", "Sonic", rom, destination)

    assert result == destination / "Sonic (USA).png"
    assert sorted(p.name for p in destination.iterdir()) == ["Sonic (USA).png"]


@pytest.mark.asyncio
async def test_non_image_download_is_discarded(rom: Path, capsys) -> None:
    site = FakeCoverSite("http://cdn.test/sonic.png", {"/sonic.png": b"<html>"})
    resolver = make_resolver(site)
    destination = rom.parent / "images"

    assert await resolver.resolve("Genesis", "Sonic", rom, destination) is None
    assert list(destination.iterdir()) == []
    assert "is not an image" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_missing_download_resolves_to_none(rom: Path, capsys) -> None:
    site = FakeCoverSite("http://cdn.test/gone.png")
    resolver = make_resolver(site)

    assert await resolver.resolve("Genesis", "Sonic", rom, rom.parent / "images") is None
    assert "Image lookup failed for 'Sonic'" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_network_error_resolves_to_none(rom: Path, capsys) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        msg = "connection refused"
        raise httpx.ConnectError(msg, request=request)

    resolver = make_resolver(handler)

    assert await resolver.resolve("Genesis", "Sonic", rom, rom.parent / "images") is None
    assert "connection refused" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_lookup_error_status_resolves_to_none(rom: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="http://cdn.test/sonic.png")

    resolver = make_resolver(handler)

    assert await resolver.resolve("Genesis", "Sonic", rom, rom.parent / "images") is None


class InterruptedStream(httpx.AsyncByteStream):
    """Body that yields a few bytes and then drops the connection."""

    def __init__(self, head: bytes, request: httpx.Request) -> None:
        self.head = head
        self.request = request

    async def __aiter__(self):
        yield self.head
        msg = "connection reset by peer"
        raise httpx.ReadError(msg, request=self.request)


@pytest.mark.asyncio
async def test_interrupted_download_leaves_no_cached_file(
    rom: Path, png_bytes: bytes, capsys
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "lookup.test":
            return httpx.Response(200, text="http://cdn.test/sonic.png")
        return httpx.Response(200, stream=InterruptedStream(png_bytes[:17], request))

    resolver = make_resolver(handler)
    destination = rom.parent / "images"

    assert await resolver.resolve("Genesis", "Sonic", rom, destination) is None
    assert find_local_image(rom) is None
    assert list(destination.iterdir()) == []
    assert "connection reset by peer" in capsys.readouterr().out
