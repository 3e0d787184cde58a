"""
Command-line interface for kicad-fab.

    kicad-fab convert <bom> <pos>    - Convert KiCad BOM and CPL exports for JLCPCB
    kicad-fab build                  - Export a board with kicad-cli and convert it
    kicad-fab fixups                 - Show the fixup table in use
    kicad-fab config                 - Show or create the configuration file

Examples:
    kicad-fab convert bom.csv mainboard-pos.csv -o production --board mainboard
    kicad-fab build --board mainboard --fixups fixups.yaml
    kicad-fab fixups --fixups cpl_rotations_db.csv
    kicad-fab config --init > .kicad-fab.toml
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from kicad_fab import __version__
from kicad_fab.config import Config, ConfigError, generate_template, get_config_paths
from kicad_fab.exceptions import KiCadFabError
from kicad_fab.fixups import FixupTable, default_fixup_table, load_fixup_table

from .utils import configure_logging, print_error

__all__ = ["main"]


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for kicad-fab CLI."""
    parser = argparse.ArgumentParser(
        prog="kicad-fab",
        description="Prepare KiCad manufacturing outputs for JLCPCB assembly",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--version", action="version", version=f"kicad-fab {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug output and tracebacks")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only report warnings and errors")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Convert subcommand
    convert_parser = subparsers.add_parser("convert", help="Convert exported BOM and CPL files")
    convert_parser.add_argument("bom", help="BOM exported by kicad-cli sch export bom")
    convert_parser.add_argument("pos", help="Placement file exported by kicad-cli pcb export pos")
    _add_output_args(convert_parser)

    # Build subcommand
    build_parser = subparsers.add_parser("build", help="Export with kicad-cli and convert")
    build_parser.add_argument("--board-dir", default=".", help="Directory containing the board files")
    build_parser.add_argument("--kicad-cli", help="Path to kicad-cli (default: search PATH)")
    _add_output_args(build_parser)

    # Fixups subcommand
    fixups_parser = subparsers.add_parser("fixups", help="Show the fixup table")
    fixups_parser.add_argument("--fixups", help="Fixup table (.yaml or .csv)")

    # Config subcommand
    config_parser = subparsers.add_parser("config", help="Show or create configuration")
    config_group = config_parser.add_mutually_exclusive_group()
    config_group.add_argument("--init", action="store_true", help="Print a config template")
    config_group.add_argument("--show", action="store_true", help="Show effective configuration")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    configure_logging(verbose=args.verbose, quiet=args.quiet)

    try:
        if args.command == "config":
            return _run_config(args)

        # build looks for config next to the board it exports
        start_dir = Path(args.board_dir) if args.command == "build" else None
        config = Config.load(start_dir)
        if args.command == "fixups":
            return _run_fixups(args, config)
        if args.command == "convert":
            return _run_convert(args, config)
        if args.command == "build":
            return _run_build(args, config)
    except (KiCadFabError, ConfigError, OSError) as e:
        print_error(e, verbose=args.verbose)
        return 1

    return 0


def _add_output_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-o", "--output-dir", help="Output directory (default: production)")
    parser.add_argument("--board", help="Board name used for output files (default: mainboard)")
    parser.add_argument("--fixups", help="Fixup table (.yaml or .csv)")
    parser.add_argument(
        "--part-number-field",
        help="BOM column holding the part number (default: PartNumber)",
    )


def _load_fixups(path: Optional[str], config: Config) -> FixupTable:
    """Fixup table from --fixups, then config, then the packaged default."""
    path = path or config.fixups.table
    if path:
        return load_fixup_table(path)
    return default_fixup_table()


def _assembly_config(args: argparse.Namespace, config: Config):
    from kicad_fab.export import AssemblyConfig

    return AssemblyConfig(
        output_dir=Path(args.output_dir or config.export.output_dir),
        board=args.board or config.export.board,
        board_dir=Path(getattr(args, "board_dir", ".")),
        part_number_field=args.part_number_field or config.bom.part_number_field,
    )


def _run_convert(args: argparse.Namespace, config: Config) -> int:
    from kicad_fab.export import convert_outputs

    fixups = _load_fixups(args.fixups, config)
    result = convert_outputs(args.bom, args.pos, _assembly_config(args, config), fixups)
    if not args.quiet:
        print(result)
    return 0


def _run_build(args: argparse.Namespace, config: Config) -> int:
    from kicad_fab.export import KiCadExporter, build_package

    fixups = _load_fixups(args.fixups, config)
    assembly_config = _assembly_config(args, config)
    exporter = KiCadExporter(
        assembly_config.board,
        assembly_config.board_dir,
        kicad_cli=args.kicad_cli,
    )
    result = build_package(assembly_config, fixups, exporter)
    if not args.quiet:
        print(result)
    return 0


def _run_fixups(args: argparse.Namespace, config: Config) -> int:
    from rich.console import Console
    from rich.table import Table

    fixups = _load_fixups(args.fixups, config)
    console = Console()

    if not fixups:
        console.print(f"[yellow]No fixups in {fixups.source}[/yellow]")
        return 0

    table = Table(title=f"Fixups ({fixups.source})")
    table.add_column("Part Number")
    table.add_column("Rotation", justify="right")
    table.add_column("Offset X", justify="right")
    table.add_column("Offset Y", justify="right")
    for part, fixup in sorted(fixups.items()):
        table.add_row(
            part,
            f"{fixup.rotation:g}",
            f"{fixup.offset_x:g}",
            f"{fixup.offset_y:g}",
        )
    console.print(table)
    return 0


def _run_config(args: argparse.Namespace) -> int:
    if args.init:
        print(generate_template(), end="")
        return 0

    config = Config.load()
    paths = get_config_paths()
    print(f"User config:    {paths['user'] or '(none)'}")
    print(f"Project config: {paths['project'] or '(none)'}")
    print()
    for key, value in config.items():
        print(f"{key} = {value!r}  # {config.get_source(key)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
