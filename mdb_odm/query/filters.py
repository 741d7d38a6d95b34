"""
Filter compilation.

Turns condition maps with operator suffixes into MongoDB filter documents:

    compile_filter({"age >=": 18, "status in": ["a", "b"], "name": "x"})
    # {"age": {"$gte": 18}, "status": {"$in": ["a", "b"]}, "name": {"$eq": "x"}}

Recognised suffixes: " <", " <=", " >", " >=", " in"/" IN",
" not in"/" NOT IN", " !="/" <>". A key without a suffix means equality.

Conditions compiled in a single call are ANDed at the top level. Their order
follows the map's iteration order and carries no meaning.
"""

from typing import Any, Dict, Mapping, Optional, Tuple

from ..constants import FILTER_SUFFIXES, OP_AND, OP_EQ, OP_OR, OPERATOR_PREFIX

Filter = Dict[str, Any]


def parse_filter_key(key: str) -> Tuple[str, str]:
    """
    Split a condition key into its field name and operator.

    Example:
        parse_filter_key("age >=")     # ("age", "$gte")
        parse_filter_key(" name ")     # ("name", "$eq")
    """
    for markers, operator in FILTER_SUFFIXES:
        for marker in markers:
            if key.endswith(marker):
                return key[: -len(marker)].strip(" "), operator
    return key.strip(" "), OP_EQ


def compile_filter(conditions: Optional[Mapping[str, Any]]) -> Filter:
    """
    Compile a condition map into a flat filter document.

    Several conditions on one field share its operator document, so
    {"age >": 1, "age <": 9} compiles to {"age": {"$gt": 1, "$lt": 9}}.

    Args:
        conditions: Mapping of "field [suffix]" keys to values

    Returns:
        A new dict of field -> {operator: value}
    """
    compiled: Filter = {}
    for key, value in (conditions or {}).items():
        field, operator = parse_filter_key(key)
        compiled.setdefault(field, {})[operator] = value
    return compiled


def is_operator_document(value: Any) -> bool:
    """Whether `value` is a non-empty dict whose keys are all operators."""
    return (
        isinstance(value, dict)
        and bool(value)
        and all(isinstance(k, str) and k.startswith(OPERATOR_PREFIX) for k in value)
    )


def merge_filters(current: Optional[Filter], new: Filter) -> Filter:
    """
    Add compiled conditions to a filter at its top level (implicit AND).

    Returns a new dict; neither argument is modified. A condition on a field
    already present joins that field's operator document when their operators
    differ; a plain value already there is read as {"$eq": value}. Any other
    condition on the field is appended to a top-level $and so no restriction
    is lost.
    """
    merged: Filter = dict(current or {})
    for field, condition in new.items():
        if field not in merged:
            merged[field] = condition
            continue

        existing = merged[field]
        if not is_operator_document(existing):
            existing = {OP_EQ: existing}
        if is_operator_document(condition) and not existing.keys() & condition.keys():
            merged[field] = {**existing, **condition}
        else:
            merged[OP_AND] = list(merged.get(OP_AND, [])) + [{field: condition}]
    return merged


def combine_filters(combinator: str, previous: Filter, new: Filter) -> Filter:
    """
    Nest two filters as the children of a new combinator node.

    The previous filter is kept whole as the left child, so repeated calls
    grow a left-leaning tree rather than a flat list.
    """
    if combinator not in (OP_AND, OP_OR):
        raise ValueError(f"Unsupported combinator '{combinator}'")
    return {combinator: [previous, new]}


def filter_depth(clause: Filter) -> int:
    """Return the number of nested $and/$or levels of a filter."""
    for combinator in (OP_AND, OP_OR):
        children = clause.get(combinator)
        if isinstance(children, list) and children:
            return 1 + max(filter_depth(child) for child in children)
    return 0
