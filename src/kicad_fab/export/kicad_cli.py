"""
Raw manufacturing exports using kicad-cli.

Produces the gerbers, drill files, BOM and placement file that the converters
post-process, and packages the gerber directory into a zip archive.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import zipfile
from pathlib import Path
from typing import List, Optional

from ..exceptions import ExportError

logger = logging.getLogger(__name__)


def find_kicad_cli() -> Optional[Path]:
    """Find kicad-cli executable."""
    # Check PATH first
    cli = shutil.which("kicad-cli")
    if cli:
        return Path(cli)

    common_paths = [
        # macOS
        Path("/Applications/KiCad/KiCad.app/Contents/MacOS/kicad-cli"),
        # Linux
        Path("/usr/bin/kicad-cli"),
        Path("/usr/local/bin/kicad-cli"),
        # Windows
        Path("C:/Program Files/KiCad/9.0/bin/kicad-cli.exe"),
        Path("C:/Program Files/KiCad/8.0/bin/kicad-cli.exe"),
    ]

    for path in common_paths:
        if path.exists():
            return path

    return None


def _run(cmd: List[str], what: str, cwd: Optional[Path] = None) -> str:
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=True,
            cwd=cwd,
        )
    except FileNotFoundError as e:
        raise ExportError(f"{what} failed", context={"command": cmd[0], "reason": str(e)}) from e
    except subprocess.CalledProcessError as e:
        logger.error(f"{cmd[0]} failed: {e.stderr}")
        raise ExportError(
            f"{what} failed",
            context={"command": " ".join(cmd), "stderr": (e.stderr or "").strip()},
        ) from e
    return result.stdout


def git_describe(cwd: Optional[str | Path] = None) -> str:
    """Return ``git describe --dirty`` for the board's repository."""
    out = _run(
        ["git", "describe", "--dirty", "--abbrev=10", "--tags", "--always"],
        "git describe",
        cwd=Path(cwd) if cwd else None,
    )
    return out.strip()


class KiCadExporter:
    """
    Run kicad-cli exports for one board.

    Example::

        exporter = KiCadExporter("mainboard")
        exporter.export_gerbers("out/", version="v1.2")
        exporter.export_drill("out/")
        exporter.export_bom("out/bom.csv", part_number_field="LCSC")
        exporter.export_pos("out/cpl.csv")
    """

    def __init__(
        self,
        board: str,
        board_dir: str | Path = ".",
        kicad_cli: Optional[str | Path] = None,
    ):
        """
        Initialize the exporter.

        Args:
            board: Board name; reads <board>.kicad_pcb and <board>.kicad_sch
            board_dir: Directory containing the board files
            kicad_cli: Path to kicad-cli (default: search PATH)

        Raises:
            ExportError: If kicad-cli is not found
        """
        self.board = board
        self.board_dir = Path(board_dir)
        cli = Path(kicad_cli) if kicad_cli else find_kicad_cli()
        if cli is None:
            raise ExportError(
                "kicad-cli not found",
                suggestions=["Install KiCad 8.0+", "Add kicad-cli to your PATH"],
            )
        self.kicad_cli = cli

    @property
    def pcb_path(self) -> Path:
        return self.board_dir / f"{self.board}.kicad_pcb"

    @property
    def schematic_path(self) -> Path:
        return self.board_dir / f"{self.board}.kicad_sch"

    def export_gerbers(self, output_dir: str | Path, version: str = "") -> None:
        """Export gerbers, with VERSION set for text variables on the board."""
        cmd = [str(self.kicad_cli), "pcb", "export", "gerbers"]
        if version:
            cmd.extend(["-D", f"VERSION={version}"])
        cmd.extend(["-o", str(output_dir), "--subtract-soldermask", str(self.pcb_path)])
        _run(cmd, "Gerber export")

    def export_drill(self, output_dir: str | Path) -> None:
        """Export Excellon drill files and drill map in mm."""
        cmd = [
            str(self.kicad_cli),
            "pcb",
            "export",
            "drill",
            # drill export expects a trailing separator
            "-o", str(output_dir).rstrip("/\\") + "/",
            "--excellon-oval-format",
            "--excellon-zeros-format", "decimal",
            "--drill-origin", "absolute",
            "--generate-map",
            "-u", "mm",
            str(self.pcb_path),
        ]
        _run(cmd, "Drill export")

    def export_bom(self, output_path: str | Path, part_number_field: str) -> None:
        """Export the BOM grouped by part number, without DNP parts."""
        cmd = [
            str(self.kicad_cli),
            "sch",
            "export",
            "bom",
            "-o", str(output_path),
            "--exclude-dnp",
            "--group-by", part_number_field,
            "--fields", f"Reference,Value,Footprint,{part_number_field}",
            str(self.schematic_path),
        ]
        _run(cmd, "BOM export")

    def export_pos(self, output_path: str | Path) -> None:
        """Export the placement file as CSV in mm, without DNP parts."""
        cmd = [
            str(self.kicad_cli),
            "pcb",
            "export",
            "pos",
            "-o", str(output_path),
            "--format", "csv",
            "--exclude-dnp",
            "--units", "mm",
            str(self.pcb_path),
        ]
        _run(cmd, "Placement export")


def zip_dir(zip_path: str | Path, source_dir: str | Path) -> Path:
    """
    Create a zip archive from the files directly inside a directory.

    Entries are added in name order so the archive listing is stable.

    Returns:
        Path to the archive
    """
    zip_path = Path(zip_path)
    source_dir = Path(source_dir)

    if zip_path.exists():
        zip_path.unlink()

    with zipfile.ZipFile(zip_path, "w", zipfile.ZIP_DEFLATED) as zf:
        for file in sorted(source_dir.iterdir()):
            if file.is_file() and file != zip_path:
                zf.write(file, file.name)

    logger.info(f"Created {zip_path}")
    return zip_path
