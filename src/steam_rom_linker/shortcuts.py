"""Shortcut records and their serialization for Steam and for review."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING
from typing import Any
from typing import cast

import vdf
import yaml

from steam_rom_linker.naming import rom_title
from steam_rom_linker.naming import substitute

if TYPE_CHECKING:  # pragma: no cover - import-time typing helpers only
    from collections.abc import Sequence

    from steam_rom_linker.config import EmulatorProfile
    from steam_rom_linker.config import LinkerConfig

ShortcutDict = dict[str, Any]
YAML_WIDTH = 120


@dataclass(frozen=True)
class ShortcutRecord:
    """A single non-Steam shortcut entry."""

    app_name: str
    exe: str
    start_dir: str
    launch_options: str
    tags: tuple[str, ...] = ()
    is_hidden: bool = False
    allow_desktop_config: bool = True
    open_vr: bool = False

    def to_dict(self) -> ShortcutDict:
        """Return the record keyed the way ``shortcuts.vdf`` names its fields."""
        return {
            "AppName": self.app_name,
            "exe": self.exe,
            "StartDir": self.start_dir,
            "IsHidden": self.is_hidden,
            "AllowDesktopConfig": self.allow_desktop_config,
            "OpenVR": self.open_vr,
            "tags": list(self.tags),
            "LaunchOptions": self.launch_options,
        }

    def to_vdf(self) -> ShortcutDict:
        """Return the record with flags as integers and tags index-keyed."""
        entry = self.to_dict()
        for flag in ("IsHidden", "AllowDesktopConfig", "OpenVR"):
            entry[flag] = int(entry[flag])
        entry["tags"] = {str(idx): tag for idx, tag in enumerate(self.tags)}
        return entry


def build_shortcut(
    emulator: EmulatorProfile, rom_path: Path, config: LinkerConfig
) -> ShortcutRecord:
    """Resolve an emulator's templates for one ROM file.

    Args:
        emulator: Profile owning the ROM.
        rom_path: Full path of the ROM file.
        config: Run configuration holding the substitution table.

    Returns:
        ShortcutRecord: The resolved shortcut.
    """

    def resolve(template: str) -> str:
        return substitute(
            template, rom_path, config.substitutions, config.substitution_mode
        )

    return ShortcutRecord(
        app_name=rom_title(rom_path),
        exe=resolve(emulator.exe),
        start_dir=resolve(emulator.dir_exe),
        launch_options=resolve(emulator.opts),
        tags=emulator.tags,
    )


def write_shortcuts(path: Path, records: Sequence[ShortcutRecord]) -> None:
    """Write ``records`` to a binary ``shortcuts.vdf`` file in list order."""
    payload = {
        "shortcuts": {str(idx): record.to_vdf() for idx, record in enumerate(records)}
    }
    with Path(path).open("wb") as f:
        vdf.binary_dump(payload, f)


class _QuotedDumper(yaml.SafeDumper):
    """YAML dumper that forces every string to be double-quoted."""


def _quoted_str_representer(dumper: yaml.SafeDumper, data: str) -> yaml.nodes.Node:
    represent_scalar = cast("Any", dumper.represent_scalar)
    return represent_scalar("tag:yaml.org,2002:str", data, style='"')


_QuotedDumper.add_representer(str, _quoted_str_representer)


def dump_manifest(path: Path, records: Sequence[ShortcutRecord]) -> None:
    """Serialize ``records`` to a readable YAML manifest at ``path``."""
    with Path(path).open("w", encoding="utf-8") as f:
        yaml.dump(
            [record.to_dict() for record in records],
            f,
            sort_keys=False,
            allow_unicode=True,
            width=YAML_WIDTH,
            Dumper=_QuotedDumper,
        )
