"""
Filter / sort / projection compiler and the query executor.
"""

from .builder import Query
from .change import Change
from .cursor import Cursor
from .fields import parse_select_field, parse_sort_field
from .filters import (combine_filters, compile_filter, filter_depth,
                      merge_filters, parse_filter_key)

__all__ = [
    "Query",
    "Change",
    "Cursor",
    "parse_sort_field",
    "parse_select_field",
    "parse_filter_key",
    "compile_filter",
    "merge_filters",
    "combine_filters",
    "filter_depth",
]
