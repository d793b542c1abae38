"""Link emulated games into Steam as non-Steam shortcuts with grid artwork."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
from tqdm import tqdm

from steam_rom_linker.config import load_config
from steam_rom_linker.images import ImageResolver
from steam_rom_linker.pipeline import PipelineRunner

if TYPE_CHECKING:  # pragma: no cover - import-time typing helpers only
    from collections.abc import Sequence

    from steam_rom_linker.config import LinkerConfig
    from steam_rom_linker.pipeline import RunSummary


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="steam-rom-linker",
        description=(
            "Generate a Steam shortcuts.vdf and grid artwork for every ROM "
            "found in the configured emulator directories."
        ),
    )
    parser.add_argument("config", help="Path to the JSON or YAML config file.")
    parser.add_argument(
        "--endpoint",
        help="Override the image lookup endpoint from the config.",
    )
    parser.add_argument(
        "--max-downloads",
        type=int,
        help="Override how many image requests may run at once.",
    )
    parser.add_argument(
        "--manifest",
        type=Path,
        help="Also write the generated shortcuts to this YAML file.",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Hide the artwork progress bar.",
    )
    return parser.parse_args(argv)


async def link_roms(
    config: LinkerConfig,
    manifest: Path | None = None,
    *,
    show_progress: bool = True,
) -> RunSummary:
    """Run the pipeline with a shared HTTP client.

    Returns:
        RunSummary: The generated shortcuts and artwork counts.
    """
    async with httpx.AsyncClient(follow_redirects=True) as client:
        resolver = ImageResolver(client, config.image_api, config.max_downloads)
        runner = PipelineRunner(config, resolver, show_progress=show_progress)
        return await runner.run(manifest)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the ``steam-rom-linker`` command.

    Raises:
        SystemExit: If the config is unreadable or an override is invalid.
    """
    args = parse_args(argv)
    config = load_config(args.config)
    if args.endpoint:
        config = replace(config, image_api=args.endpoint)
    if args.max_downloads is not None:
        if args.max_downloads < 1:
            msg = "--max-downloads must be a positive integer"
            raise SystemExit(msg)
        config = replace(config, max_downloads=args.max_downloads)

    summary = asyncio.run(
        link_roms(config, args.manifest, show_progress=not args.no_progress)
    )
    tqdm.write(
        f"✔ Exported {len(summary.shortcuts)} shortcuts → {config.shortcuts_path}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
