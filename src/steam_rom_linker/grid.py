"""Steam grid artwork identifiers for non-Steam shortcuts."""

from __future__ import annotations

import zlib

SHORTCUT_ID_FLAG = 0x80000000
GRID_ASSET_TAG = 0x02000000
CRC_MASK = 0xFFFFFFFF


def grid_id(exe: str, app_name: str) -> int:
    """Compute the 64-bit identifier Steam uses to name a shortcut's artwork.

    The CRC-32 of ``exe + app_name`` gets its top bit set, moves to the high
    word, and the low word carries the grid asset tag.

    Args:
        exe: The shortcut's resolved executable command.
        app_name: The shortcut's display title.

    Returns:
        int: An unsigned 64-bit identifier.
    """
    checksum = zlib.crc32(f"{exe}{app_name}".encode()) & CRC_MASK
    return ((checksum | SHORTCUT_ID_FLAG) << 32) | GRID_ASSET_TAG


def grid_filename(exe: str, app_name: str, suffix: str) -> str:
    """Return the grid artwork filename, e.g. ``"1234...5678.png"``."""
    return f"{grid_id(exe, app_name)}{suffix}"
