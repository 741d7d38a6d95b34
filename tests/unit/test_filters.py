"""
Unit tests for the filter compiler.

Tests suffix parsing, flat compilation and combinator nesting.
"""

import pytest

from mdb_odm.query.filters import (combine_filters, compile_filter,
                                   filter_depth, is_operator_document,
                                   merge_filters, parse_filter_key)


@pytest.mark.unit
class TestParseFilterKey:
    """Test operator suffix recognition."""

    @pytest.mark.parametrize(
        "key, expected",
        [
            ("age <", ("age", "$lt")),
            ("age <=", ("age", "$lte")),
            ("age >", ("age", "$gt")),
            ("age >=", ("age", "$gte")),
            ("age !=", ("age", "$ne")),
            ("age <>", ("age", "$ne")),
            ("status in", ("status", "$in")),
            ("status IN", ("status", "$in")),
            ("status not in", ("status", "$nin")),
            ("status NOT IN", ("status", "$nin")),
            ("name", ("name", "$eq")),
        ],
    )
    def test_suffixes(self, key, expected):
        assert parse_filter_key(key) == expected

    def test_not_in_is_not_read_as_in(self):
        """" not in" also ends with " in"; the longer marker must win."""
        assert parse_filter_key("role not in") == ("role", "$nin")

    def test_lte_is_not_read_as_lt(self):
        field, operator = parse_filter_key("score <=")
        assert field == "score"
        assert operator == "$lte"

    def test_field_name_is_trimmed(self):
        assert parse_filter_key("  age   >=") == ("age", "$gte")
        assert parse_filter_key(" name ") == ("name", "$eq")

    def test_suffix_needs_leading_space(self):
        """"login" ends with "in" but not with " in"."""
        assert parse_filter_key("login") == ("login", "$eq")


@pytest.mark.unit
class TestCompileFilter:
    """Test compilation of condition maps."""

    def test_equality_uses_operator_form(self):
        assert compile_filter({"name": "x"}) == {"name": {"$eq": "x"}}

    def test_mixed_conditions(self):
        compiled = compile_filter({"age >=": 18, "status in": ["a", "b"], "name": "x"})
        assert compiled == {
            "age": {"$gte": 18},
            "status": {"$in": ["a", "b"]},
            "name": {"$eq": "x"},
        }

    def test_same_field_conditions_share_operator_document(self):
        compiled = compile_filter({"age >": 1, "age <": 9})
        assert compiled == {"age": {"$gt": 1, "$lt": 9}}

    def test_empty_and_none(self):
        assert compile_filter({}) == {}
        assert compile_filter(None) == {}

    def test_no_combinator_node(self):
        compiled = compile_filter({"a": 1, "b <": 2})
        assert "$and" not in compiled
        assert "$or" not in compiled
        assert filter_depth(compiled) == 0


@pytest.mark.unit
class TestMergeAndCombine:
    """Test merging and nesting of compiled filters."""

    def test_merge_does_not_mutate_inputs(self):
        current = {"a": {"$eq": 1}}
        new = {"b": {"$eq": 2}}
        merged = merge_filters(current, new)
        assert merged == {"a": {"$eq": 1}, "b": {"$eq": 2}}
        assert current == {"a": {"$eq": 1}}

    def test_merge_same_field(self):
        merged = merge_filters({"age": {"$gt": 1}}, {"age": {"$lt": 9}})
        assert merged == {"age": {"$gt": 1, "$lt": 9}}

    def test_merge_keeps_plain_equality(self):
        merged = merge_filters({"name": "x"}, {"name": {"$ne": "y"}})
        assert merged == {"name": {"$eq": "x", "$ne": "y"}}

    def test_merge_keeps_embedded_document_equality(self):
        merged = merge_filters({"address": {"city": "x"}}, {"address": {"$exists": True}})
        assert merged == {"address": {"$eq": {"city": "x"}, "$exists": True}}

    def test_merge_same_operator_goes_to_and(self):
        merged = merge_filters({"age": {"$gt": 1}}, {"age": {"$gt": 5}})
        assert merged == {"age": {"$gt": 1}, "$and": [{"age": {"$gt": 5}}]}

    def test_merge_appends_to_existing_and(self):
        current = {"$and": [{"a": {"$eq": 1}}, {"b": {"$eq": 2}}], "a": {"$eq": 1}}
        merged = merge_filters(current, {"a": {"$eq": 3}})
        assert merged["$and"] == [{"a": {"$eq": 1}}, {"b": {"$eq": 2}}, {"a": {"$eq": 3}}]
        assert len(current["$and"]) == 2

    def test_is_operator_document(self):
        assert is_operator_document({"$gt": 1, "$lt": 2})
        assert not is_operator_document({"city": "x"})
        assert not is_operator_document({"$gt": 1, "city": "x"})
        assert not is_operator_document({})
        assert not is_operator_document("x")

    def test_merge_next_to_combinator(self):
        current = {"$or": [{"a": {"$eq": 1}}, {"b": {"$eq": 2}}]}
        merged = merge_filters(current, {"c": {"$eq": 3}})
        assert merged["$or"] == current["$or"]
        assert merged["c"] == {"$eq": 3}

    def test_combine_keeps_previous_as_left_child(self):
        previous = {"a": {"$eq": 1}}
        combined = combine_filters("$or", previous, {"b": {"$eq": 2}})
        assert combined == {"$or": [{"a": {"$eq": 1}}, {"b": {"$eq": 2}}]}
        assert combined["$or"][0] is previous

    def test_repeated_combination_is_left_leaning(self):
        clause = {"a": {"$eq": 1}}
        clause = combine_filters("$and", clause, {"b": {"$eq": 2}})
        clause = combine_filters("$or", clause, {"c": {"$eq": 3}})
        assert clause == {
            "$or": [
                {"$and": [{"a": {"$eq": 1}}, {"b": {"$eq": 2}}]},
                {"c": {"$eq": 3}},
            ]
        }
        assert filter_depth(clause) == 2

    def test_unknown_combinator(self):
        with pytest.raises(ValueError, match="Unsupported combinator"):
            combine_filters("$nor", {}, {})
