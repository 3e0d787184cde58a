"""
Exception hierarchy for kicad-fab.

Every error carries enough context (file, line, offending text) for an
operator to fix the upstream design file. All of them are fatal: a run that
raises leaves its output files undefined.

Example::

    from kicad_fab.exceptions import ParseError

    raise ParseError(
        "Invalid position",
        context={"values": "12.5, abc, 90"},
        line=7,
        file_path="board-pos.csv",
    )
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union


class KiCadFabError(Exception):
    """
    Base exception for all kicad-fab errors.

    Attributes:
        context: Dictionary of contextual information (file, line, etc.)
        suggestions: List of actionable suggestions for fixing the error
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.message = message
        self.context = context or {}
        self.suggestions = suggestions or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with context and suggestions."""
        parts = [self.message]

        if self.context:
            parts.append("\n\nContext:")
            for key, value in self.context.items():
                parts.append(f"\n  {key}: {value}")

        if self.suggestions:
            parts.append("\n\nSuggestions:")
            for suggestion in self.suggestions:
                parts.append(f"\n  - {suggestion}")

        return "".join(parts)

    def __str__(self) -> str:
        return self._format_message()


class SchemaError(KiCadFabError):
    """
    A CSV header does not match the expected column sequence.

    Example::

        raise SchemaError(
            "bom: unexpected header",
            expected=["Reference", "Value", "Footprint", "PartNumber"],
            got=["Ref", "Value"],
            file_path="bom.csv",
        )
    """

    def __init__(
        self,
        message: str,
        expected: List[str],
        got: List[str],
        file_path: Optional[Union[str, Path]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.expected = list(expected)
        self.got = list(got)
        ctx: Dict[str, Any] = {}
        if file_path:
            ctx["file"] = str(file_path)
        ctx["expected"] = ",".join(self.expected)
        ctx["got"] = ",".join(self.got)
        super().__init__(message, ctx, suggestions)


class ParseError(KiCadFabError):
    """
    A data row could not be parsed.

    Raised for malformed numeric fields, rows with the wrong number of
    columns and unknown placement sides.
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        line: Optional[int] = None,
        file_path: Optional[Union[str, Path]] = None,
    ):
        ctx = context or {}
        if file_path and "file" not in ctx:
            ctx["file"] = str(file_path)
        if line is not None and "line" not in ctx:
            ctx["line"] = line
        self.line = line
        super().__init__(message, ctx, suggestions)


class DesignatorError(KiCadFabError):
    """
    A designator or designator range is malformed.

    Attributes:
        designator: The offending text, exactly as found in the input
    """

    def __init__(
        self,
        designator: str,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.designator = designator
        super().__init__(f"invalid designator: {designator}", context, suggestions)


class MissingPartNumberError(KiCadFabError):
    """A parts-list row that will be placed has no part number."""

    def __init__(
        self,
        references: str,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.references = references
        super().__init__(f"{references}: missing part number", context, suggestions)


class ConfigurationError(KiCadFabError):
    """
    Configuration or fixup table error.

    Example::

        raise ConfigurationError(
            "Invalid fixup entry",
            context={"file": "fixups.yaml", "part": "C2040", "field": "rotation"},
            suggestions=["Use a number of degrees, e.g. rotation: 90"],
        )
    """

    pass


class ExportError(KiCadFabError):
    """
    An external export step failed.

    Raised when kicad-cli or git cannot be run or exits with an error.
    """

    pass


__all__ = [
    "KiCadFabError",
    "SchemaError",
    "ParseError",
    "DesignatorError",
    "MissingPartNumberError",
    "ConfigurationError",
    "ExportError",
]
