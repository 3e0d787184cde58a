"""
kicad-fab: KiCad manufacturing outputs for JLCPCB assembly.

Converts the BOM and placement files exported by kicad-cli into the JLCPCB
upload format. Designator ranges in the BOM are expanded, and parts whose
footprints are authored with a different origin or orientation than the
assembly house expects are corrected using a fixup table.

Modules:
    designators: Designator range expansion
    fixups: Part number to corrective transform tables
    export: BOM and CPL conversion, kicad-cli driver, assembly pipeline
    config: Project and user configuration
    cli: The kicad-fab command

Quick Start::

    from pathlib import Path

    from kicad_fab import AssemblyConfig, convert_outputs, load_fixup_table

    fixups = load_fixup_table("fixups.yaml")
    config = AssemblyConfig(output_dir=Path("production"), board="mainboard")
    result = convert_outputs("bom.csv", "mainboard-pos.csv", config, fixups)
"""

__version__ = "0.1.0"

from kicad_fab.designators import expand_ranges, split_designator
from kicad_fab.exceptions import (
    ConfigurationError,
    DesignatorError,
    ExportError,
    KiCadFabError,
    MissingPartNumberError,
    ParseError,
    SchemaError,
)
from kicad_fab.export import (
    AssemblyConfig,
    AssemblyResult,
    build_package,
    compensate,
    convert_bom,
    convert_cpl,
    convert_outputs,
)
from kicad_fab.fixups import (
    CorrectiveTransform,
    FixupSet,
    FixupTable,
    default_fixup_table,
    load_fixup_table,
)

__all__ = [
    # Version
    "__version__",
    # Designators
    "expand_ranges",
    "split_designator",
    # Fixups
    "CorrectiveTransform",
    "FixupSet",
    "FixupTable",
    "default_fixup_table",
    "load_fixup_table",
    # Export
    "AssemblyConfig",
    "AssemblyResult",
    "build_package",
    "compensate",
    "convert_bom",
    "convert_cpl",
    "convert_outputs",
    # Errors
    "KiCadFabError",
    "SchemaError",
    "ParseError",
    "DesignatorError",
    "MissingPartNumberError",
    "ConfigurationError",
    "ExportError",
]
