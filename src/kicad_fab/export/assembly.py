"""
Assembly package generator.

Runs the BOM pass and then the CPL pass, handing the fixups collected from the
BOM to the placement conversion. ``build_package`` additionally drives
kicad-cli to produce the raw files and the gerber archive.
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..fixups import CorrectiveTransform
from .bom import DEFAULT_PART_NUMBER_FIELD, convert_bom
from .cpl import convert_cpl
from .kicad_cli import KiCadExporter, git_describe, zip_dir

logger = logging.getLogger(__name__)


@dataclass
class AssemblyConfig:
    """Configuration for assembly package generation."""

    # Output settings
    output_dir: Path = field(default_factory=lambda: Path("production"))
    board: str = "mainboard"
    board_dir: Path = field(default_factory=lambda: Path("."))

    # Output file names
    bom_filename: str = "{board}-bom.csv"
    cpl_filename: str = "{board}-cpl.csv"
    zip_filename: str = "{board}.zip"

    # BOM column holding the part number
    part_number_field: str = DEFAULT_PART_NUMBER_FIELD

    @property
    def bom_path(self) -> Path:
        return self.output_dir / self.bom_filename.format(board=self.board)

    @property
    def cpl_path(self) -> Path:
        return self.output_dir / self.cpl_filename.format(board=self.board)

    @property
    def zip_path(self) -> Path:
        return self.output_dir / self.zip_filename.format(board=self.board)


@dataclass
class AssemblyResult:
    """Result of assembly package generation."""

    output_dir: Path
    bom_path: Path
    cpl_path: Path
    gerber_path: Optional[Path] = None
    version: str = ""
    fixup_designators: int = 0
    placements: int = 0
    compensated: int = 0

    def __str__(self) -> str:
        lines = [f"Assembly Package: {self.output_dir}"]
        if self.version:
            lines.append(f"  Version: {self.version}")
        if self.gerber_path:
            lines.append(f"  Gerbers: {self.gerber_path.name}")
        lines.append(f"  BOM: {self.bom_path.name}")
        lines.append(f"  CPL: {self.cpl_path.name}")
        lines.append(f"  Placements: {self.placements} ({self.compensated} compensated)")
        return "\n".join(lines)


def convert_outputs(
    bom_src: str | Path,
    cpl_src: str | Path,
    config: AssemblyConfig,
    fixups: Mapping[str, CorrectiveTransform],
) -> AssemblyResult:
    """
    Convert raw KiCad BOM and placement files to JLCPCB format.

    The BOM is converted first; the designator fixups it yields are applied
    to the placement file. Any error aborts the run and leaves the outputs
    undefined.

    Args:
        bom_src: Raw BOM from kicad-cli
        cpl_src: Raw placement file from kicad-cli
        config: Output locations and BOM options
        fixups: Part number to transform table

    Returns:
        AssemblyResult with output paths and counts
    """
    config.output_dir.mkdir(parents=True, exist_ok=True)

    fixup_set = convert_bom(
        config.bom_path,
        bom_src,
        fixups,
        part_number_field=config.part_number_field,
    )
    cpl_result = convert_cpl(config.cpl_path, cpl_src, fixup_set)

    return AssemblyResult(
        output_dir=config.output_dir,
        bom_path=config.bom_path,
        cpl_path=config.cpl_path,
        fixup_designators=len(fixup_set),
        placements=cpl_result.rows,
        compensated=cpl_result.compensated,
    )


def build_package(
    config: AssemblyConfig,
    fixups: Mapping[str, CorrectiveTransform],
    exporter: Optional[KiCadExporter] = None,
) -> AssemblyResult:
    """
    Export a board with kicad-cli and convert it for JLCPCB assembly.

    Gerbers and drill files are zipped to ``<board>.zip``; the BOM and
    placement file are converted with ``convert_outputs``. Intermediate files
    live in a temporary directory that is removed afterwards.

    Args:
        config: Board, output locations and BOM options
        fixups: Part number to transform table
        exporter: kicad-cli wrapper (default: one for ``config.board``)

    Returns:
        AssemblyResult with output paths and counts
    """
    exporter = exporter or KiCadExporter(config.board, config.board_dir)
    config.output_dir.mkdir(parents=True, exist_ok=True)

    version = git_describe(config.board_dir)
    logger.info(f"Building {config.board} {version}")

    with tempfile.TemporaryDirectory(prefix="kicad-fab") as tmp:
        tmp_dir = Path(tmp)
        gerber_dir = tmp_dir / "gerbers"
        gerber_dir.mkdir()

        exporter.export_gerbers(gerber_dir, version=version)
        exporter.export_drill(gerber_dir)
        gerber_path = zip_dir(config.zip_path, gerber_dir)

        bom_src = tmp_dir / "bom.csv"
        exporter.export_bom(bom_src, config.part_number_field)
        cpl_src = tmp_dir / "cpl.csv"
        exporter.export_pos(cpl_src)

        result = convert_outputs(bom_src, cpl_src, config, fixups)

    result.gerber_path = gerber_path
    result.version = version
    return result
