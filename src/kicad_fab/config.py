"""
Configuration file support for kicad-fab.

Provides hierarchical configuration loading from:
1. Project config: .kicad-fab.toml or kicad-fab.toml in the board directory
   or any parent up to the repository root
2. User config: ~/.config/kicad-fab/config.toml

CLI arguments override config file values, and project config overrides user config.
"""

import sys
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

# Config file names to search for in project directories
CONFIG_FILENAMES = [".kicad-fab.toml", "kicad-fab.toml"]

# User-level config path
USER_CONFIG_PATH = Path.home() / ".config" / "kicad-fab" / "config.toml"

# All known config keys for validation
KNOWN_KEYS = {
    "export": {"output_dir", "board"},
    "bom": {"part_number_field"},
    "fixups": {"table"},
}


@dataclass
class ExportConfig:
    """Export-specific configuration."""

    output_dir: str = "production"
    board: str = "mainboard"


@dataclass
class BomConfig:
    """BOM conversion configuration."""

    part_number_field: str = "PartNumber"


@dataclass
class FixupsConfig:
    """Fixup table location (None = table shipped with kicad-fab)."""

    table: str | None = None


@dataclass
class Config:
    """Merged configuration from all sources."""

    export: ExportConfig = field(default_factory=ExportConfig)
    bom: BomConfig = field(default_factory=BomConfig)
    fixups: FixupsConfig = field(default_factory=FixupsConfig)

    # Track which file each setting came from (for --show)
    _sources: dict = field(default_factory=dict, repr=False)

    @classmethod
    def load(cls, start_dir: Path | None = None) -> "Config":
        """
        Load configuration with precedence: project > user > defaults.

        Relative paths in a config file (the fixup table) are resolved
        against the directory containing that file.

        Args:
            start_dir: Directory to start searching from (default: current directory)

        Returns:
            Merged configuration object
        """
        if start_dir is None:
            start_dir = Path.cwd()

        config = cls()
        sources: dict[str, str] = {}

        # Load user config first (lower precedence)
        if USER_CONFIG_PATH.exists():
            user_data = _load_toml_file(USER_CONFIG_PATH)
            _merge_config(config, user_data, USER_CONFIG_PATH, sources)

        # Load project config (higher precedence)
        project_config = _find_project_config(start_dir)
        if project_config:
            project_data = _load_toml_file(project_config)
            _merge_config(config, project_data, project_config, sources)

        config._sources = sources
        return config

    def get_source(self, key: str) -> str:
        """Get the source file for a config key."""
        return self._sources.get(key, "default")

    def items(self) -> list[tuple[str, Any]]:
        """Flattened (section.key, value) pairs, in declaration order."""
        result = []
        for section in KNOWN_KEYS:
            section_config = getattr(self, section)
            for key in sorted(KNOWN_KEYS[section]):
                result.append((f"{section}.{key}", getattr(section_config, key)))
        return result


class ConfigError(Exception):
    """Configuration-related errors."""

    pass


def _find_project_config(start_dir: Path) -> Path | None:
    """
    Find project config by walking up the directory tree.

    Stops at .git directory or filesystem root.
    """
    current = start_dir.resolve()

    while True:
        for filename in CONFIG_FILENAMES:
            config_path = current / filename
            if config_path.is_file():
                return config_path

        # Stop at .git directory (project root)
        if (current / ".git").exists():
            break

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def _load_toml_file(path: Path) -> dict[str, Any]:
    """
    Load a TOML file.

    Raises:
        ConfigError: If the file cannot be read or is not valid TOML
    """
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e


def _merge_config(config: Config, data: dict[str, Any], path: Path, sources: dict[str, str]) -> None:
    """
    Merge loaded config data into Config object.

    Args:
        config: Config object to update
        data: Raw config data from TOML
        path: Source file path (for tracking and relative paths)
        sources: Dict to update with source info
    """
    source = str(path)

    for key in data:
        if key not in KNOWN_KEYS:
            warnings.warn(f"Unknown config key '{key}' in {source}", stacklevel=3)

    if "export" in data:
        export_data = data["export"]
        _warn_unknown_keys(export_data, KNOWN_KEYS["export"], "export", source)

        if "output_dir" in export_data:
            config.export.output_dir = str(export_data["output_dir"])
            sources["export.output_dir"] = source
        if "board" in export_data:
            config.export.board = str(export_data["board"])
            sources["export.board"] = source

    if "bom" in data:
        bom_data = data["bom"]
        _warn_unknown_keys(bom_data, KNOWN_KEYS["bom"], "bom", source)

        if "part_number_field" in bom_data:
            config.bom.part_number_field = str(bom_data["part_number_field"])
            sources["bom.part_number_field"] = source

    if "fixups" in data:
        fixups_data = data["fixups"]
        _warn_unknown_keys(fixups_data, KNOWN_KEYS["fixups"], "fixups", source)

        if "table" in fixups_data:
            table = Path(str(fixups_data["table"])).expanduser()
            if not table.is_absolute():
                table = path.parent / table
            config.fixups.table = str(table)
            sources["fixups.table"] = source


def _warn_unknown_keys(data: dict[str, Any], known: set[str], section: str, source: str) -> None:
    """Warn about unknown keys in a config section."""
    for key in data:
        if key not in known:
            warnings.warn(f"Unknown config key '{section}.{key}' in {source}", stacklevel=4)


def generate_template() -> str:
    """
    Generate a template config file with all options documented.

    Returns:
        Template TOML string
    """
    return """# kicad-fab configuration file
# Place as .kicad-fab.toml in the board directory or ~/.config/kicad-fab/config.toml for user defaults

[export]
# Output directory for the converted BOM, CPL and gerber archive
# output_dir = "production"

# Board name: reads <board>.kicad_pcb and <board>.kicad_sch
# board = "mainboard"

[bom]
# Schematic field holding the assembly house part number
# part_number_field = "PartNumber"

[fixups]
# Fixup table (.yaml or .csv), relative to this file
# table = "fixups.yaml"
"""


def get_config_paths() -> dict[str, Path | None]:
    """
    Get paths to config files that would be loaded.

    Returns:
        Dict with 'user' and 'project' keys
    """
    return {
        "user": USER_CONFIG_PATH if USER_CONFIG_PATH.exists() else None,
        "project": _find_project_config(Path.cwd()),
    }
