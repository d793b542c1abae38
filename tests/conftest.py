from __future__ import annotations

import json
from io import BytesIO
from pathlib import Path
from typing import Any

import pytest
from PIL import Image

from steam_rom_linker.config import EmulatorProfile
from steam_rom_linker.config import LinkerConfig


@pytest.fixture
def png_bytes() -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (8, 12), (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def write_config(tmp_path: Path):
    """Write a JSON config into ``tmp_path`` and return its path."""

    def _write(data: Any, name: str = "config.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def nes_profile(tmp_path: Path) -> EmulatorProfile:
    directory = tmp_path / "roms" / "nes"
    directory.mkdir(parents=True)
    return EmulatorProfile(
        directory=directory,
        console="NES",
        exe="$EMU$/retroarch",
        opts='-L nestopia "%r"',
        dir_exe="$EMU$",
        extensions=frozenset({"nes"}),
        tags=("Emulated", "NES"),
    )


@pytest.fixture
def linker_config(tmp_path: Path, nes_profile: EmulatorProfile) -> LinkerConfig:
    return LinkerConfig(
        path=tmp_path / "config.json",
        rom_root=tmp_path / "roms",
        substitutions=((r"\$EMU\$", "/opt/emu"),),
        emulators=(nes_profile,),
        image_api="http://lookup.test/api/top_picture",
    )
