"""
BOM conversion for JLCPCB assembly.

Rewrites the grouped BOM exported by ``kicad-cli sch export bom`` into the
JLCPCB column layout, expanding designator ranges, and collects the fixups
that apply to each designator for the placement pass.
"""

from __future__ import annotations

import csv
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import List, Optional, TextIO

from ..designators import expand_ranges, iter_designators
from ..exceptions import DesignatorError, MissingPartNumberError, ParseError, SchemaError
from ..fixups import CorrectiveTransform, FixupSet

logger = logging.getLogger(__name__)

__all__ = [
    "BOM_INPUT_HEADER",
    "BOM_OUTPUT_HEADER",
    "DEFAULT_PART_NUMBER_FIELD",
    "MIXED_VALUES",
    "bom_input_header",
    "bom_output_header",
    "convert_bom",
    "convert_bom_stream",
]

DEFAULT_PART_NUMBER_FIELD = "PartNumber"

BOM_INPUT_HEADER = ["Reference", "Value", "Footprint", DEFAULT_PART_NUMBER_FIELD]
BOM_OUTPUT_HEADER = ["Comment", "Designator", "Footprint", DEFAULT_PART_NUMBER_FIELD]

# Written by kicad-cli when grouped parts carry different values.
MIXED_VALUES = "-- mixed values --"


def bom_input_header(part_number_field: str = DEFAULT_PART_NUMBER_FIELD) -> List[str]:
    return BOM_INPUT_HEADER[:-1] + [part_number_field]


def bom_output_header(part_number_field: str = DEFAULT_PART_NUMBER_FIELD) -> List[str]:
    return BOM_OUTPUT_HEADER[:-1] + [part_number_field]


def convert_bom_stream(
    src: TextIO,
    dst: TextIO,
    fixups: Mapping[str, CorrectiveTransform],
    *,
    part_number_field: str = DEFAULT_PART_NUMBER_FIELD,
    source_name: Optional[str] = None,
) -> FixupSet:
    """
    Convert a KiCad BOM to JLCPCB format.

    Rows are written in input order. The first malformed row aborts the
    conversion; anything already written to ``dst`` must be discarded.

    Args:
        src: Text stream with the raw BOM
        dst: Text stream receiving the converted BOM
        fixups: Part number to transform table
        part_number_field: Name of the part number column
        source_name: Name of the source used in error messages

    Returns:
        Mapping from each designator with a fixup to its transform

    Raises:
        SchemaError: If the header is not the expected one
        ParseError: If a row has the wrong number of fields
        MissingPartNumberError: If a row has no part number
        DesignatorError: If a reference range is malformed
    """
    reader = csv.reader(src)
    expected = bom_input_header(part_number_field)
    header = next(reader, [])
    if header != expected:
        raise SchemaError(
            "bom: unexpected header",
            expected=expected,
            got=header,
            file_path=source_name,
            suggestions=[f"Export the BOM with --fields {','.join(expected)}"],
        )

    writer = csv.writer(dst, lineterminator="\n")
    writer.writerow(bom_output_header(part_number_field))

    fixup_set: FixupSet = {}
    for rec in reader:
        if not rec:
            continue
        if len(rec) != len(expected):
            raise ParseError(
                "bom: wrong number of fields",
                context={"expected": len(expected), "got": len(rec)},
                line=reader.line_num,
                file_path=source_name,
            )

        refs, value, footprint, part_number = rec
        if value == MIXED_VALUES:
            value = "~"
        if not part_number:
            raise MissingPartNumberError(
                refs,
                context=_location(source_name, reader.line_num),
                suggestions=[
                    f"Set the {part_number_field} field on {refs}",
                    "Mark parts that are not assembled as DNP",
                ],
            )

        try:
            refs = expand_ranges(refs)
        except DesignatorError as e:
            e.context.update(_location(source_name, reader.line_num))
            raise

        fixup = fixups.get(part_number)
        if fixup is not None:
            for ref in iter_designators(refs):
                fixup_set[ref] = fixup
            logger.debug(f"{part_number}: fixup applies to {refs}")

        writer.writerow([value, refs, footprint, part_number])

    return fixup_set


def convert_bom(
    dst_path: str | Path,
    src_path: str | Path,
    fixups: Mapping[str, CorrectiveTransform],
    *,
    part_number_field: str = DEFAULT_PART_NUMBER_FIELD,
) -> FixupSet:
    """
    Convert a KiCad BOM file to a JLCPCB BOM file.

    Args:
        dst_path: Output BOM path
        src_path: Raw BOM path from kicad-cli
        fixups: Part number to transform table
        part_number_field: Name of the part number column

    Returns:
        Mapping from each designator with a fixup to its transform
    """
    with open(src_path, newline="") as src, open(dst_path, "w", newline="") as dst:
        fixup_set = convert_bom_stream(
            src,
            dst,
            fixups,
            part_number_field=part_number_field,
            source_name=str(src_path),
        )

    logger.info(f"Generated BOM: {dst_path} ({len(fixup_set)} designators with fixups)")
    return fixup_set


def _location(source_name: Optional[str], line: int) -> dict:
    if source_name:
        return {"file": source_name, "line": line}
    return {"line": line}
