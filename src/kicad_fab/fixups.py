"""
Per-part corrective transforms for pick-and-place output.

Footprints are not always authored with the origin and orientation the
assembly house uses for a part. A fixup table maps a manufacturer part number
to the rotation and offset error of its footprint, expressed in the
footprint's own unrotated frame.

Tables are loaded once at startup and passed explicitly to the converters.

Example YAML format:
    fixups:
      C2040:
        rotation: 90
      C7519:
        rotation: -90
        offset_x: 0.0
        offset_y: -0.5

Example CSV format:
    PartNumber,Rotation,OffsetX,OffsetY
    C2040,90,0,0
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

__all__ = [
    "CorrectiveTransform",
    "FixupSet",
    "FixupTable",
    "FIXUP_CSV_HEADER",
    "DEFAULT_FIXUPS_PATH",
    "default_fixup_table",
    "load_fixup_table",
    "save_fixup_table",
]

FIXUP_CSV_HEADER = ["PartNumber", "Rotation", "OffsetX", "OffsetY"]

DEFAULT_FIXUPS_PATH = Path(__file__).parent / "data" / "fixups.yaml"

_YAML_FIELDS = {"rotation", "offset_x", "offset_y"}


@dataclass(frozen=True)
class CorrectiveTransform:
    """Footprint origin error for one part number."""

    rotation: float = 0.0  # degrees
    offset_x: float = 0.0  # mm, footprint frame
    offset_y: float = 0.0  # mm, footprint frame

    @property
    def is_identity(self) -> bool:
        return self.rotation == 0 and self.offset_x == 0 and self.offset_y == 0


# Designator -> transform, built by the BOM pass and read by the CPL pass.
FixupSet = dict[str, CorrectiveTransform]


class FixupTable(Mapping[str, CorrectiveTransform]):
    """
    Immutable mapping from part number to CorrectiveTransform.

    Lookups are exact string matches.
    """

    def __init__(
        self,
        entries: Mapping[str, CorrectiveTransform] | None = None,
        source: str = "<memory>",
    ):
        self._entries = dict(entries or {})
        self.source = source

    def __getitem__(self, part_number: str) -> CorrectiveTransform:
        return self._entries[part_number]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"FixupTable({len(self)} entries from {self.source})"


def load_fixup_table(path: str | Path) -> FixupTable:
    """
    Load a fixup table from a YAML or CSV file.

    Args:
        path: Path to a .yaml, .yml or .csv file

    Returns:
        FixupTable with one entry per part number

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigurationError: If the file format is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Fixup table not found: {path}")

    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        entries = _load_yaml(path)
    elif suffix == ".csv":
        entries = _load_csv(path)
    else:
        raise ConfigurationError(
            "Unsupported fixup table format",
            context={"file": str(path), "suffix": suffix or "(none)"},
            suggestions=["Use a .yaml or .csv file"],
        )

    logger.debug(f"Loaded {len(entries)} fixups from {path}")
    return FixupTable(entries, source=str(path))


def default_fixup_table() -> FixupTable:
    """Load the fixup table shipped with kicad-fab."""
    return load_fixup_table(DEFAULT_FIXUPS_PATH)


def save_fixup_table(table: Mapping[str, CorrectiveTransform], path: str | Path) -> None:
    """
    Save a fixup table as YAML.

    Args:
        table: Part number to transform mapping
        path: Output file path
    """
    data = {
        "fixups": {
            part: {
                "rotation": fixup.rotation,
                "offset_x": fixup.offset_x,
                "offset_y": fixup.offset_y,
            }
            for part, fixup in table.items()
        }
    }
    with open(path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def _load_yaml(path: Path) -> dict[str, CorrectiveTransform]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError("Invalid YAML in fixup table", context={"file": str(path), "error": e}) from e

    if not data:
        return {}
    if not isinstance(data, dict) or not isinstance(data.get("fixups", {}), dict):
        raise ConfigurationError(
            "Fixup table must contain a 'fixups' mapping",
            context={"file": str(path)},
        )

    entries = {}
    for part, fields in (data.get("fixups") or {}).items():
        if not isinstance(part, str):
            logger.warning(
                f"Fixup part number {part!r} in {path} is not a string; quote it if YAML changed its spelling"
            )
        entries[str(part)] = _parse_yaml_entry(path, str(part), fields)
    return entries


def _parse_yaml_entry(path: Path, part: str, fields: Any) -> CorrectiveTransform:
    """Parse a single part entry from the YAML table."""
    if fields is None:
        fields = {}
    if not isinstance(fields, dict):
        raise ConfigurationError(
            "Fixup entry must be a mapping",
            context={"file": str(path), "part": part},
        )

    unknown = set(fields) - _YAML_FIELDS
    if unknown:
        raise ConfigurationError(
            "Unknown fixup field",
            context={"file": str(path), "part": part, "fields": ", ".join(sorted(unknown))},
            suggestions=[f"Valid fields: {', '.join(sorted(_YAML_FIELDS))}"],
        )

    values = {}
    for name in _YAML_FIELDS:
        value = fields.get(name, 0.0)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigurationError(
                "Fixup field must be a number",
                context={"file": str(path), "part": part, "field": name, "value": value},
            )
        values[name] = float(value)
    return CorrectiveTransform(**values)


def _load_csv(path: Path) -> dict[str, CorrectiveTransform]:
    entries = {}
    with open(path, newline="") as f:
        reader = csv.reader(f)
        header = next(reader, None)
        if header != FIXUP_CSV_HEADER:
            raise ConfigurationError(
                "Unexpected fixup table header",
                context={
                    "file": str(path),
                    "expected": ",".join(FIXUP_CSV_HEADER),
                    "got": ",".join(header or []),
                },
            )
        for rec in reader:
            if not rec:
                continue
            if len(rec) != len(FIXUP_CSV_HEADER):
                raise ConfigurationError(
                    "Wrong number of fields in fixup table",
                    context={"file": str(path), "line": reader.line_num},
                )
            part, rotation, offset_x, offset_y = rec
            try:
                entries[part] = CorrectiveTransform(
                    rotation=float(rotation or 0),
                    offset_x=float(offset_x or 0),
                    offset_y=float(offset_y or 0),
                )
            except ValueError as e:
                raise ConfigurationError(
                    "Fixup field must be a number",
                    context={"file": str(path), "line": reader.line_num, "part": part},
                ) from e
    return entries
