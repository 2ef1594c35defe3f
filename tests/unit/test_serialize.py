"""
tests/unit/test_serialize.py

Unit tests for harness.golden.serialize.

All functions are pure, so every test is synchronous and needs no server.

Coverage
--------
  to_json_one_line: scalars, BSON types (DBRef included), empty containers, nested containers,
                    key order kept by default, sort_keys sorts at every depth
  to_json_multi_line: tab indentation, empty containers inline, keys sorted
                      by default, sort_keys=False keeps insertion order
  normalize_array: sorted by default, order kept when should_sort=False,
                   permutation-independent when sorted, keys sorted per doc
"""
from __future__ import annotations

import re
from datetime import datetime, timezone

import pytest
from bson.dbref import DBRef
from bson.decimal128 import Decimal128
from bson.int64 import Int64
from bson.max_key import MaxKey
from bson.min_key import MinKey
from bson.objectid import ObjectId
from bson.regex import Regex
from bson.timestamp import Timestamp

from harness.golden.serialize import normalize_array, to_json_multi_line, to_json_one_line


# ---------------------------------------------------------------------------
# Tests: scalars
# ---------------------------------------------------------------------------

class TestScalars:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, "null"),
            (True, "true"),
            (False, "false"),
            (42, "42"),
            (-3, "-3"),
            (1.5, "1.5"),
            (2.0, "2.0"),
            (float("nan"), "NaN"),
            (float("inf"), "Infinity"),
            (float("-inf"), "-Infinity"),
            ("abc", '"abc"'),
            ('say "hi"', '"say \\"hi\\""'),
            ("café", '"café"'),
        ],
    )
    def test_plain_scalars(self, value: object, expected: str) -> None:
        assert to_json_one_line(value) == expected

    def test_bool_is_not_rendered_as_int(self) -> None:
        assert to_json_one_line([True, 1]) == "[ true, 1 ]"

    def test_int64(self) -> None:
        assert to_json_one_line(Int64(7)) == "NumberLong(7)"

    def test_object_id(self) -> None:
        oid = ObjectId("5f1d7a3e9d1e8b3a4c2b1a00")
        assert to_json_one_line(oid) == 'ObjectId("5f1d7a3e9d1e8b3a4c2b1a00")'

    def test_datetime_without_millis(self) -> None:
        dt = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert to_json_one_line(dt) == 'ISODate("2024-01-02T03:04:05Z")'

    def test_datetime_with_millis(self) -> None:
        dt = datetime(2024, 1, 2, 3, 4, 5, 123000)
        assert to_json_one_line(dt) == 'ISODate("2024-01-02T03:04:05.123Z")'

    def test_decimal128(self) -> None:
        assert to_json_one_line(Decimal128("1.10")) == 'NumberDecimal("1.10")'

    def test_timestamp(self) -> None:
        assert to_json_one_line(Timestamp(10, 2)) == "Timestamp(10, 2)"

    def test_bytes(self) -> None:
        assert to_json_one_line(b"\x00\x01") == 'BinData(0, "AAE=")'

    def test_bson_regex(self) -> None:
        assert to_json_one_line(Regex("^a", "i")) == "/^a/i"

    def test_compiled_pattern(self) -> None:
        assert to_json_one_line(re.compile("x+", re.IGNORECASE | re.MULTILINE)) == "/x+/im"

    def test_min_max_key(self) -> None:
        assert to_json_one_line([MinKey(), MaxKey()]) == "[ MinKey, MaxKey ]"

    def test_dbref(self) -> None:
        ref = DBRef("users", ObjectId("5f1d7a3e9d1e8b3a4c2b1a00"))
        assert to_json_one_line(ref) == 'DBRef("users", ObjectId("5f1d7a3e9d1e8b3a4c2b1a00"))'

    def test_dbref_with_database(self) -> None:
        assert to_json_one_line({"r": DBRef("users", 7, "app")}) == '{ "r" : DBRef("users", 7, "app") }'

    def test_unknown_type_raises(self) -> None:
        with pytest.raises(TypeError):
            to_json_one_line(object())


# ---------------------------------------------------------------------------
# Tests: to_json_one_line containers
# ---------------------------------------------------------------------------

class TestOneLineContainers:
    def test_empty_object(self) -> None:
        assert to_json_one_line({}) == "{ }"

    def test_empty_array(self) -> None:
        assert to_json_one_line([]) == "[ ]"

    def test_object(self) -> None:
        assert to_json_one_line({"a": 1, "b": "x"}) == '{ "a" : 1, "b" : "x" }'

    def test_tuple_rendered_as_array(self) -> None:
        assert to_json_one_line((1, 2)) == "[ 1, 2 ]"

    def test_insertion_order_kept_by_default(self) -> None:
        assert to_json_one_line({"b": 1, "a": 2}) == '{ "b" : 1, "a" : 2 }'

    def test_sort_keys_applies_at_every_depth(self) -> None:
        value = {"b": {"z": 1, "y": 2}, "a": [{"d": 1, "c": 2}]}
        assert to_json_one_line(value, sort_keys=True) == (
            '{ "a" : [ { "c" : 2, "d" : 1 } ], "b" : { "y" : 2, "z" : 1 } }'
        )


# ---------------------------------------------------------------------------
# Tests: to_json_multi_line
# ---------------------------------------------------------------------------

class TestMultiLine:
    def test_scalar_unchanged(self) -> None:
        assert to_json_multi_line(3) == "3"

    def test_empty_containers_inline(self) -> None:
        assert to_json_multi_line({"a": {}, "b": []}) == '{\n\t"a" : { },\n\t"b" : [ ]\n}'

    def test_nested_indentation(self) -> None:
        assert to_json_multi_line({"a": [1, {"b": 2}]}) == (
            "{\n"
            '\t"a" : [\n'
            "\t\t1,\n"
            "\t\t{\n"
            '\t\t\t"b" : 2\n'
            "\t\t}\n"
            "\t]\n"
            "}"
        )

    def test_keys_sorted_by_default(self) -> None:
        assert to_json_multi_line({"b": 1, "a": 2}) == '{\n\t"a" : 2,\n\t"b" : 1\n}'

    def test_sort_keys_false_keeps_order(self) -> None:
        assert to_json_multi_line({"b": 1, "a": 2}, sort_keys=False) == (
            '{\n\t"b" : 1,\n\t"a" : 2\n}'
        )

    def test_pipeline_rendering(self) -> None:
        pipeline = [{"$match": {"a": 1}}]
        assert to_json_multi_line(pipeline, sort_keys=False) == (
            "[\n"
            "\t{\n"
            '\t\t"$match" : {\n'
            '\t\t\t"a" : 1\n'
            "\t\t}\n"
            "\t}\n"
            "]"
        )


# ---------------------------------------------------------------------------
# Tests: normalize_array
# ---------------------------------------------------------------------------

class TestNormalizeArray:
    def test_sorted_by_default(self) -> None:
        docs = [{"a": 2}, {"a": 1}]
        assert normalize_array(docs) == ['{ "a" : 1 }', '{ "a" : 2 }']

    def test_order_kept_when_not_sorting(self) -> None:
        docs = [{"a": 2}, {"a": 1}]
        assert normalize_array(docs, should_sort=False) == ['{ "a" : 2 }', '{ "a" : 1 }']

    def test_keys_sorted_within_each_document(self) -> None:
        assert normalize_array([{"b": 2, "a": 1}], should_sort=False) == [
            '{ "a" : 1, "b" : 2 }'
        ]

    def test_permutations_render_identically(self) -> None:
        docs = [{"a": 1, "b": 2}, {"a": 1, "b": 1}, {"a": 2, "b": 3}]
        reordered = [docs[2], docs[0], docs[1]]
        assert normalize_array(docs) == normalize_array(reordered)

    def test_empty_results(self) -> None:
        assert normalize_array([]) == []

    def test_accepts_iterators(self) -> None:
        assert normalize_array(iter([{"a": 1}])) == ['{ "a" : 1 }']
