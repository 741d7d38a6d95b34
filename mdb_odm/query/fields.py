"""
Sort and select field parsing.

Sort fields are written as "age" or "age asc" for ascending order and
"age desc" for descending order. Select fields are written as "age" to
include a field and "!age" to exclude it.
"""

from typing import Tuple

from pymongo import ASCENDING, DESCENDING


def parse_sort_field(field: str) -> Tuple[str, int]:
    """
    Parse a sort field into a (key, direction) pair.

    The direction is descending only when the field is exactly two
    space-separated tokens and the second one is "desc" in any case.

    Example:
        parse_sort_field("age")       # ("age", 1)
        parse_sort_field("age desc")  # ("age", -1)
    """
    direction = ASCENDING
    key = field

    if field:
        parts = field.split(" ")
        if len(parts) == 2 and parts[1].lower() == "desc":
            direction = DESCENDING
        key = parts[0]

    return key, direction


def parse_select_field(field: str) -> Tuple[str, int]:
    """
    Parse a select field into a (key, visibility) pair.

    A leading "!" excludes the field (visibility 0); anything else
    includes it (visibility 1).
    """
    if field and field.startswith("!"):
        return field.replace("!", ""), 0
    return field, 1
