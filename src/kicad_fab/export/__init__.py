"""
Manufacturing export tools.

Convert KiCad BOM and placement exports for JLCPCB assembly:
- BOM with designator ranges expanded
- CPL with per-part rotation and offset fixups applied
- Gerber/drill archive via kicad-cli

Example::

    from pathlib import Path

    from kicad_fab.export import AssemblyConfig, convert_outputs
    from kicad_fab.fixups import load_fixup_table

    config = AssemblyConfig(output_dir=Path("production"), board="mainboard")
    result = convert_outputs("bom.csv", "pos.csv", config, load_fixup_table("fixups.yaml"))
    print(result)
"""

from .assembly import (
    AssemblyConfig,
    AssemblyResult,
    build_package,
    convert_outputs,
)
from .bom import (
    BOM_INPUT_HEADER,
    BOM_OUTPUT_HEADER,
    MIXED_VALUES,
    convert_bom,
    convert_bom_stream,
)
from .cpl import (
    CPL_INPUT_HEADER,
    CPL_OUTPUT_HEADER,
    CplConversionResult,
    PlacementRow,
    Side,
    compensate,
    convert_cpl,
    convert_cpl_stream,
)
from .kicad_cli import KiCadExporter, find_kicad_cli, git_describe, zip_dir

__all__ = [
    # Assembly package
    "AssemblyConfig",
    "AssemblyResult",
    "build_package",
    "convert_outputs",
    # BOM
    "BOM_INPUT_HEADER",
    "BOM_OUTPUT_HEADER",
    "MIXED_VALUES",
    "convert_bom",
    "convert_bom_stream",
    # Pick-and-place
    "CPL_INPUT_HEADER",
    "CPL_OUTPUT_HEADER",
    "CplConversionResult",
    "PlacementRow",
    "Side",
    "compensate",
    "convert_cpl",
    "convert_cpl_stream",
    # kicad-cli
    "KiCadExporter",
    "find_kicad_cli",
    "git_describe",
    "zip_dir",
]
