"""Display titles and launch-command templates for ROM files."""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - import-time typing helpers only
    from steam_rom_linker.config import SubstitutionTable

ROM_PLACEHOLDER = "%r"

_PAREN_GROUP = re.compile(r"\([^(]*\)")
_BRACKET_GROUP = re.compile(r"\[[^[]*\]")


def rom_title(rom: str | Path) -> str:
    """Return the human-readable title for a ROM file.

    Strips the directory and extension, then drops every ``(...)`` and
    ``[...]`` annotation, e.g. ``"Game (USA) [!].nes"`` becomes ``"Game"``.
    Reapplying it is a no-op only for titles without a dot: the
    ``". Mario"`` tail of ``"Dr. Mario"`` is read as an extension and dropped.

    Args:
        rom: ROM filename or full path.

    Returns:
        str: The cleaned title, possibly empty.
    """
    stem = Path(rom).stem
    stem = _PAREN_GROUP.sub("", stem)
    stem = _BRACKET_GROUP.sub("", stem)
    return stem.strip()


def substitute(
    template: str,
    rom_path: str | Path,
    substitutions: SubstitutionTable,
    mode: str = "pattern",
) -> str:
    """Apply the substitution table, then expand ``%r`` to ``rom_path``.

    Table entries run in declared order, so later entries see earlier
    results, and a value may itself contain ``%r``. In ``pattern`` mode keys
    are regular expressions; in ``literal`` mode they are plain text. Values
    are always inserted verbatim.

    Args:
        template: Command, argument or working-directory template.
        rom_path: Path substituted for every ``%r``.
        substitutions: Ordered ``(key, value)`` pairs.
        mode: ``"pattern"`` or ``"literal"``.

    Returns:
        str: The resolved string.
    """
    result = template
    for key, value in substitutions:
        if mode == "literal":
            result = result.replace(key, value)
        else:
            result = re.sub(key, lambda _m, v=value: v, result)
    return result.replace(ROM_PLACEHOLDER, str(rom_path))
