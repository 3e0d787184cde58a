"""
Pick-and-place (CPL) conversion for JLCPCB assembly.

Rewrites the placement file exported by ``kicad-cli pcb export pos`` into the
JLCPCB column layout and corrects parts whose footprint origin or orientation
differs from the assembly house's reference.
"""

from __future__ import annotations

import csv
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import List, Optional, TextIO

from ..exceptions import ParseError, SchemaError
from ..fixups import CorrectiveTransform

logger = logging.getLogger(__name__)

__all__ = [
    "CPL_INPUT_HEADER",
    "CPL_OUTPUT_HEADER",
    "CplConversionResult",
    "PlacementRow",
    "Side",
    "compensate",
    "convert_cpl",
    "convert_cpl_stream",
]

CPL_INPUT_HEADER = ["Ref", "Val", "Package", "PosX", "PosY", "Rot", "Side"]
CPL_OUTPUT_HEADER = ["Designator", "Val", "Package", "Mid X", "Mid Y", "Rotation", "Layer"]


class Side(Enum):
    """Board face a part is mounted on."""

    TOP = "top"
    BOTTOM = "bottom"


@dataclass
class PlacementRow:
    """One component placement."""

    designator: str
    value: str
    package: str
    x: float  # mm
    y: float  # mm
    rotation: float  # degrees
    side: Side

    def to_row(self) -> List[str]:
        return [
            self.designator,
            self.value,
            self.package,
            f"{self.x:f}",
            f"{self.y:f}",
            f"{self.rotation:f}",
            self.side.value,
        ]


@dataclass
class CplConversionResult:
    """Counts from a CPL conversion."""

    rows: int = 0
    compensated: int = 0


def compensate(row: PlacementRow, fixup: CorrectiveTransform) -> PlacementRow:
    """
    Apply a corrective transform to a placement.

    The fixup offset is given in the footprint's unrotated frame, so it is
    rotated by the part's final rotation before being subtracted from the
    position. Bottom-side parts are seen through the board: their rotation is
    mirrored as 180 - rot and the X component of the offset is negated.

    Args:
        row: Placement as exported by KiCad
        fixup: Footprint error for the row's part number

    Returns:
        New PlacementRow with corrected position and rotation
    """
    bottom = row.side is Side.BOTTOM

    rotation = row.rotation
    if bottom:
        rotation = 180 - rotation
    rotation -= fixup.rotation

    theta = math.radians(rotation)
    sin_rot, cos_rot = math.sin(theta), math.cos(theta)
    dx = cos_rot * fixup.offset_x - sin_rot * fixup.offset_y
    dy = sin_rot * fixup.offset_x + cos_rot * fixup.offset_y
    if bottom:
        dx = -dx

    return replace(row, x=row.x - dx, y=row.y - dy, rotation=rotation)


def convert_cpl_stream(
    src: TextIO,
    dst: TextIO,
    fixup_set: Mapping[str, CorrectiveTransform],
    *,
    source_name: Optional[str] = None,
) -> CplConversionResult:
    """
    Convert a KiCad placement file to JLCPCB format.

    Rows are written in input order. Empty numeric fields are read as 0.
    The first malformed row aborts the conversion; anything already written
    to ``dst`` must be discarded.

    Args:
        src: Text stream with the raw placement file
        dst: Text stream receiving the converted file
        fixup_set: Designator to transform mapping from the BOM pass
        source_name: Name of the source used in error messages

    Returns:
        CplConversionResult with row counts

    Raises:
        SchemaError: If the header is not the expected one
        ParseError: If a row is malformed
    """
    reader = csv.reader(src)
    header = next(reader, [])
    if header != CPL_INPUT_HEADER:
        raise SchemaError(
            "cpl: unexpected header",
            expected=CPL_INPUT_HEADER,
            got=header,
            file_path=source_name,
            suggestions=["Export placements with kicad-cli pcb export pos --format csv"],
        )

    writer = csv.writer(dst, lineterminator="\n")
    writer.writerow(CPL_OUTPUT_HEADER)

    result = CplConversionResult()
    for rec in reader:
        if not rec:
            continue
        row = _parse_row(rec, reader.line_num, source_name)

        fixup = fixup_set.get(row.designator)
        if fixup is not None:
            row = compensate(row, fixup)
            result.compensated += 1
            logger.debug(
                f"{row.designator}: compensated to ({row.x:f}, {row.y:f}) @ {row.rotation:f}"
            )

        writer.writerow(row.to_row())
        result.rows += 1

    return result


def convert_cpl(
    dst_path: str | Path,
    src_path: str | Path,
    fixup_set: Mapping[str, CorrectiveTransform],
) -> CplConversionResult:
    """
    Convert a KiCad placement file to a JLCPCB CPL file.

    Args:
        dst_path: Output CPL path
        src_path: Raw placement path from kicad-cli
        fixup_set: Designator to transform mapping from the BOM pass

    Returns:
        CplConversionResult with row counts
    """
    with open(src_path, newline="") as src, open(dst_path, "w", newline="") as dst:
        result = convert_cpl_stream(src, dst, fixup_set, source_name=str(src_path))

    logger.info(f"Generated CPL: {dst_path} ({result.compensated}/{result.rows} compensated)")
    return result


def _parse_row(rec: List[str], line: int, source_name: Optional[str]) -> PlacementRow:
    """Parse one raw placement record."""
    if len(rec) != len(CPL_INPUT_HEADER):
        raise ParseError(
            "cpl: wrong number of fields",
            context={"expected": len(CPL_INPUT_HEADER), "got": len(rec)},
            line=line,
            file_path=source_name,
        )

    ref, val, pkg, posx, posy, rot, side = rec
    try:
        x = _parse_float(posx)
        y = _parse_float(posy)
        rotation = _parse_float(rot)
    except ValueError:
        raise ParseError(
            f"cpl: invalid position: {posx}, {posy}, {rot}",
            context={"designator": ref},
            line=line,
            file_path=source_name,
        ) from None

    try:
        placement_side = Side(side)
    except ValueError:
        raise ParseError(
            f"cpl: invalid side: {side}",
            context={"designator": ref},
            suggestions=["Side must be 'top' or 'bottom'"],
            line=line,
            file_path=source_name,
        ) from None

    return PlacementRow(
        designator=ref,
        value=val,
        package=pkg,
        x=x,
        y=y,
        rotation=rotation,
        side=placement_side,
    )


def _parse_float(value: str) -> float:
    """Parse a numeric field; empty means 0."""
    if not value:
        return 0.0
    # float() also takes digit separators and surrounding whitespace
    if "_" in value or value != value.strip():
        raise ValueError(value)
    return float(value)
