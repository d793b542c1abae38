"""Walk emulator directories, emit shortcuts and place their grid artwork."""

from __future__ import annotations

import asyncio
import shutil
from dataclasses import dataclass
from dataclasses import field
from typing import TYPE_CHECKING

from tqdm import tqdm

from steam_rom_linker.grid import grid_filename
from steam_rom_linker.images import LOCAL_IMAGE_DIR
from steam_rom_linker.shortcuts import ShortcutRecord
from steam_rom_linker.shortcuts import build_shortcut
from steam_rom_linker.shortcuts import dump_manifest
from steam_rom_linker.shortcuts import write_shortcuts

if TYPE_CHECKING:  # pragma: no cover - import-time typing helpers only
    from pathlib import Path

    from steam_rom_linker.config import EmulatorProfile
    from steam_rom_linker.config import LinkerConfig
    from steam_rom_linker.images import ImageResolver


@dataclass
class RunSummary:
    """Outcome of one pipeline run."""

    shortcuts: list[ShortcutRecord] = field(default_factory=list)
    placed: int = 0
    missing: list[tuple[str, str]] = field(default_factory=list)


class PipelineRunner:
    """Build one shortcut per ROM and resolve its artwork concurrently."""

    def __init__(
        self,
        config: LinkerConfig,
        resolver: ImageResolver,
        *,
        show_progress: bool = True,
    ) -> None:
        self.config = config
        self.resolver = resolver
        self.show_progress = show_progress

    def collect_roms(self, emulator: EmulatorProfile) -> list[Path]:
        """List the emulator's ROM files in name order.

        Returns:
            list[Path]: Regular files whose extension the emulator accepts.
        """
        if not emulator.directory.is_dir():
            tqdm.write(f"⚠ Emulator directory not found: {emulator.directory}")
            return []
        roms = [
            path
            for path in sorted(emulator.directory.iterdir())
            if path.is_file() and emulator.accepts(path)
        ]
        tqdm.write(f"Found {len(roms)} ROMs for {emulator.console}")
        return roms

    def copy_to_grid(self, image: Path, shortcut: ShortcutRecord) -> Path | None:
        """Copy ``image`` into the grid folder under its Steam identifier.

        Returns:
            Path | None: The grid file, or ``None`` if the copy failed.
        """
        grid_dir = self.config.grid_dir
        dest = grid_dir / grid_filename(shortcut.exe, shortcut.app_name, image.suffix)
        try:
            grid_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(image, dest)
        except OSError as exc:
            tqdm.write(f"⚠ Failed to copy grid image for '{shortcut.app_name}': {exc}")
            return None
        return dest

    async def place_artwork(
        self,
        emulator: EmulatorProfile,
        rom_path: Path,
        shortcut: ShortcutRecord,
        summary: RunSummary,
    ) -> None:
        image = await self.resolver.resolve(
            emulator.console,
            shortcut.app_name,
            rom_path,
            emulator.directory / LOCAL_IMAGE_DIR,
        )
        if image is None:
            tqdm.write(f"No image found for: {emulator.console} / {shortcut.app_name}")
            summary.missing.append((emulator.console, shortcut.app_name))
            return
        if self.copy_to_grid(image, shortcut) is not None:
            summary.placed += 1

    async def run(self, manifest: Path | None = None) -> RunSummary:
        """Process every configured emulator and wait for all artwork.

        Shortcuts are written as soon as enumeration ends; artwork tasks keep
        running until they settle.

        Args:
            manifest: Optional YAML file receiving a readable copy of the list.

        Returns:
            RunSummary: Shortcuts in enumeration order plus artwork counts.
        """
        summary = RunSummary()
        tasks: list[asyncio.Task[None]] = []

        for emulator in self.config.emulators:
            for rom_path in self.collect_roms(emulator):
                shortcut = build_shortcut(emulator, rom_path, self.config)
                summary.shortcuts.append(shortcut)
                tasks.append(
                    asyncio.create_task(
                        self.place_artwork(emulator, rom_path, shortcut, summary)
                    )
                )

        shortcuts_path = self.config.shortcuts_path
        write_shortcuts(shortcuts_path, summary.shortcuts)
        tqdm.write(f"✔ Shortcut VDF written → {shortcuts_path}")

        if manifest is not None:
            dump_manifest(manifest, summary.shortcuts)
            tqdm.write(f"✔ Manifest written → {manifest}")

        with tqdm(
            total=len(tasks),
            desc="Artwork",
            unit="image",
            disable=not self.show_progress,
        ) as artwork_bar:
            for task in tasks:
                task.add_done_callback(lambda _task: artwork_bar.update(1))
            await asyncio.gather(*tasks)

        tqdm.write(
            f"✔ Grid images loaded and copied "
            f"({summary.placed} placed, {len(summary.missing)} missing)"
        )
        return summary
