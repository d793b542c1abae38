"""Load and validate the linker configuration file."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from typing import cast

from naay import loads as naay_loads

ConfigDict = dict[str, Any]
SubstitutionTable = tuple[tuple[str, str], ...]

DEFAULT_IMAGE_API = "http://consolegrid.com/api/top_picture"
DEFAULT_MAX_DOWNLOADS = 8
SUBSTITUTION_MODES = ("pattern", "literal")
YAML_SUFFIXES = (".yaml", ".yml")


@dataclass(frozen=True)
class EmulatorProfile:
    """A single emulator entry: where its ROMs live and how to launch them."""

    directory: Path
    console: str
    exe: str
    opts: str
    dir_exe: str
    extensions: frozenset[str]
    tags: tuple[str, ...]

    def accepts(self, path: Path) -> bool:
        """Return ``True`` when ``path`` carries one of the accepted extensions."""
        return path.suffix.lstrip(".").lower() in self.extensions


@dataclass(frozen=True)
class LinkerConfig:
    """Immutable run configuration passed to every pipeline component."""

    path: Path
    rom_root: Path
    substitutions: SubstitutionTable
    emulators: tuple[EmulatorProfile, ...]
    substitution_mode: str = "pattern"
    image_api: str = DEFAULT_IMAGE_API
    max_downloads: int = DEFAULT_MAX_DOWNLOADS

    @property
    def config_dir(self) -> Path:
        """Directory that relative paths and outputs are anchored at."""
        return self.path.parent

    @property
    def grid_dir(self) -> Path:
        return self.config_dir / "grid"

    @property
    def shortcuts_path(self) -> Path:
        return self.config_dir / "shortcuts.vdf"


def read_config_data(path: Path) -> ConfigDict:
    """Read ``path`` as JSON, or as YAML through the strict naay parser.

    Returns:
        ConfigDict: The parsed top-level mapping.

    Raises:
        SystemExit: If the file is missing, unreadable or malformed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        msg = f"Config file not found: {path}"
        raise SystemExit(msg) from exc
    except OSError as exc:
        msg = f"Config file could not be read: {path} ({exc})"
        raise SystemExit(msg) from exc

    if path.suffix.lower() in YAML_SUFFIXES:
        try:
            data = naay_loads(text)
        except Exception as exc:  # noqa: BLE001
            msg = f"Failed to parse YAML config {path}: {exc}"
            raise SystemExit(msg) from exc
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            msg = f"Failed to parse JSON config {path}: {exc}"
            raise SystemExit(msg) from exc

    if not isinstance(data, dict):
        msg = f"{path.name} must contain a top-level mapping"
        raise SystemExit(msg)
    return cast("ConfigDict", data)


def require_str(config: ConfigDict, key: str, where: str = "config") -> str:
    """Return a string value for ``key`` from the config.

    Raises:
        SystemExit: If the key is missing or the value is not a string.
    """
    if key not in config:
        msg = f"Missing '{key}' in {where}"
        raise SystemExit(msg)
    value = config[key]
    if not isinstance(value, str):
        msg = f"Config value '{key}' in {where} must be a string"
        raise SystemExit(msg)
    return value


def optional_str(config: ConfigDict, key: str, default: str) -> str:
    if key not in config:
        return default
    return require_str(config, key)


def require_mapping(config: ConfigDict, key: str) -> ConfigDict:
    """Fetch a nested mapping from the config file.

    Raises:
        SystemExit: If the key is missing or not a mapping.
    """
    if key not in config:
        msg = f"Missing '{key}' mapping in config"
        raise SystemExit(msg)
    value = config[key]
    if not isinstance(value, dict):
        msg = f"Config value '{key}' must be a mapping"
        raise SystemExit(msg)
    return cast("ConfigDict", value)


def require_str_list(
    config: ConfigDict, key: str, where: str = "config"
) -> tuple[str, ...]:
    """Return a tuple of strings for iterable config values.

    Raises:
        SystemExit: If the key is missing or contains non-strings.
    """
    if key not in config:
        msg = f"Missing '{key}' in {where}"
        raise SystemExit(msg)
    value = config[key]
    if not isinstance(value, list):
        msg = f"Config value '{key}' in {where} must be a list"
        raise SystemExit(msg)
    value_list = cast("list[Any]", value)
    cleaned: list[str] = []
    for idx, item in enumerate(value_list):
        if not isinstance(item, str):
            msg = f"Config list '{key}' in {where} must contain only strings (index {idx})"
            raise SystemExit(msg)
        cleaned.append(item)
    return tuple(cleaned)


def optional_positive_int(config: ConfigDict, key: str, default: int) -> int:
    """Return a positive integer, coercing numeric strings when needed.

    Raises:
        SystemExit: If the value is present but not a positive integer.
    """
    if key not in config:
        return default
    value = config[key]
    if isinstance(value, bool):
        msg = f"Config value '{key}' must be an integer"
        raise SystemExit(msg)
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError as exc:
            msg = f"Config value '{key}' must be an integer string"
            raise SystemExit(msg) from exc
    if not isinstance(value, int) or value < 1:
        msg = f"Config value '{key}' must be a positive integer"
        raise SystemExit(msg)
    return value


def require_substitutions(config: ConfigDict, mode: str) -> SubstitutionTable:
    """Return the substitution table in declared order.

    Raises:
        SystemExit: If a value is not a string or a pattern key does not compile.
    """
    table = require_mapping(config, "substitutions")
    pairs: list[tuple[str, str]] = []
    for key, value in table.items():
        if not isinstance(value, str):
            msg = f"Substitution for '{key}' must be a string"
            raise SystemExit(msg)
        if mode == "pattern":
            try:
                re.compile(key)
            except re.error as exc:
                msg = f"Substitution key '{key}' is not a valid pattern: {exc}"
                raise SystemExit(msg) from exc
        pairs.append((str(key), value))
    return tuple(pairs)


def parse_emulator(raw: Any, index: int, config_dir: Path) -> EmulatorProfile:
    """Validate one ``emulators`` entry and resolve its directory.

    Raises:
        SystemExit: If the entry is not a mapping or lacks a required key.
    """
    where = f"emulators[{index}]"
    if not isinstance(raw, dict):
        msg = f"Config value '{where}' must be a mapping"
        raise SystemExit(msg)
    entry = cast("ConfigDict", raw)
    directory = Path(require_str(entry, "directory", where)).expanduser()
    if not directory.is_absolute():
        directory = config_dir / directory
    extensions = frozenset(
        ext.lstrip(".").lower()
        for ext in require_str_list(entry, "extensions", where)
    )
    return EmulatorProfile(
        directory=directory,
        console=require_str(entry, "console", where),
        exe=require_str(entry, "exe", where),
        opts=require_str(entry, "opts", where),
        dir_exe=require_str(entry, "dirExe", where),
        extensions=extensions,
        tags=require_str_list(entry, "tags", where),
    )


def load_config(path: str | Path) -> LinkerConfig:
    """Load the configuration file at ``path`` into a ``LinkerConfig``.

    Args:
        path: Config file location; a leading ``~`` is expanded.

    Returns:
        LinkerConfig: The validated, immutable configuration.

    Raises:
        SystemExit: If the file is missing or malformed.
    """
    config_path = Path(path).expanduser().resolve()
    data = read_config_data(config_path)

    mode = optional_str(data, "substitutionMode", "pattern")
    if mode not in SUBSTITUTION_MODES:
        msg = f"Config value 'substitutionMode' must be one of {SUBSTITUTION_MODES}"
        raise SystemExit(msg)

    if "emulators" not in data:
        msg = "Missing 'emulators' in config"
        raise SystemExit(msg)
    raw_emulators = data["emulators"]
    if not isinstance(raw_emulators, list):
        msg = "Config value 'emulators' must be a list"
        raise SystemExit(msg)

    emulators = tuple(
        parse_emulator(raw, idx, config_path.parent)
        for idx, raw in enumerate(cast("list[Any]", raw_emulators))
    )

    return LinkerConfig(
        path=config_path,
        rom_root=Path(require_str(data, "romRoot")).expanduser(),
        substitutions=require_substitutions(data, mode),
        emulators=emulators,
        substitution_mode=mode,
        image_api=optional_str(data, "imageApi", DEFAULT_IMAGE_API),
        max_downloads=optional_positive_int(
            data, "maxDownloads", DEFAULT_MAX_DOWNLOADS
        ),
    )
