"""
Reference designator ranges.

KiCad groups BOM references into compact ranges such as ``C1-C5``; assembly
houses want every designator spelled out.

Example::

    >>> expand_ranges("R5,C1-C3,R7")
    'R5,C1,C2,C3,R7'
"""

from __future__ import annotations

import string
from typing import Iterator, List, Tuple

from .exceptions import DesignatorError

__all__ = ["expand_ranges", "iter_designators", "split_designator"]


def split_designator(ref: str) -> Tuple[str, int]:
    """
    Split a designator into its prefix and numeric suffix.

    The prefix ends at the first digit; everything after it must be an
    integer.

    Args:
        ref: Single designator, e.g. "C12"

    Returns:
        Tuple of (prefix, number), e.g. ("C", 12)

    Raises:
        DesignatorError: If there is no numeric suffix or it is not an integer
    """
    for n, c in enumerate(ref):
        if c in string.digits:
            suffix = ref[n:]
            if not (suffix.isascii() and suffix.isdigit()):
                raise DesignatorError(ref)
            return ref[:n], int(suffix)
    raise DesignatorError(ref)


def expand_ranges(refs: str) -> str:
    """
    Expand designator ranges in a comma-separated reference list.

    Elements without a dash pass through unchanged. A range must use the same
    prefix on both sides and must not run backwards.

    Args:
        refs: Reference list, e.g. "R5,C1-C3"

    Returns:
        Comma-separated list with every range spelled out

    Raises:
        DesignatorError: If a range is malformed
    """
    expanded: List[str] = []
    for element in refs.split(","):
        low, sep, high = element.partition("-")
        if not sep:
            expanded.append(element)
            continue

        prefix1, num1 = split_designator(low)
        prefix2, num2 = split_designator(high)
        if prefix1 != prefix2:
            raise DesignatorError(element, context={"reason": "range prefixes differ"})
        if num1 > num2:
            raise DesignatorError(element, context={"reason": "range is descending"})

        expanded.extend(f"{prefix1}{i}" for i in range(num1, num2 + 1))

    return ",".join(expanded)


def iter_designators(refs: str) -> Iterator[str]:
    """Yield the individual designators of an expanded reference list."""
    for ref in refs.split(","):
        if ref:
            yield ref
