"""
Unit tests for the json_repair module.

Covers:
- parse_any(): valid JSON, fences, prose, trailing commas, broken strings, truncation
- parse() with a pydantic schema
- the individual repair helpers

Run with: pytest tests/test_json_repair.py -v
"""

import json

import pytest

from slidesmith import json_repair
from slidesmith.errors import UnparsableOutputError
from slidesmith.models import CreativeDirection


# ---------------------------------------------------------------------------
# parse_any: recovery strategies
# ---------------------------------------------------------------------------

VALID_VALUES = [
    {"units": [{"id": "u1", "elements": []}], "n": 3},
    0,
    -12.5,
    True,
    None,
    "plain",
    "",
    [],
    {},
    [1, "two", None, [3, {"four": False}]],
    {"quote": 'she said "hi"', "path": "C:\\temp\\new"},
    {"he": "שלום עולם", "mixed": "café ✓ 你好"},
    {"note": "// not a comment\nsecond line", "list": ["// leading", "x // trailing"]},
]


class TestParseAny:
    @pytest.mark.parametrize("value", VALID_VALUES)
    @pytest.mark.parametrize("ensure_ascii", [True, False])
    def test_valid_json_is_returned_as_is(self, value, ensure_ascii):
        assert json_repair.parse_any(json.dumps(value, ensure_ascii=ensure_ascii)) == value

    def test_pretty_printed_comment_like_line_survives(self):
        value = {"lines": ["// first", "second"]}
        assert json_repair.parse_any(json.dumps(value, indent=2)) == value

    def test_broken_string_inside_mixed_array(self):
        text = '{"tags": ["he said "hi"", 1, 2], "n": 3}'
        assert json_repair.parse_any(text) == {"tags": ['he said "hi"', 1, 2], "n": 3}

    def test_number_inside_broken_array_string_stays_text(self):
        text = '["he said "no", 3 times over", 4]'
        assert json_repair.parse_any(text) == ['he said "no", 3 times over', 4]

    @pytest.mark.parametrize("tail,expected", [
        ("-1.5]", -1.5),
        ("true]", True),
        ("null]", None),
    ])
    def test_broken_array_string_before_literal(self, tail, expected):
        text = '["a "quoted" word", ' + tail
        assert json_repair.parse_any(text) == ['a "quoted" word', expected]

    def test_fenced_block_with_prose(self):
        text = 'Here is the deck:\n```json\n{"a": [1, 2]}\n```\nLet me know!'
        assert json_repair.parse_any(text) == {"a": [1, 2]}

    def test_longest_fenced_block_wins(self):
        text = '```json\n{"x": 1}\n```\nand the real one\n```json\n{"units": [1, 2, 3], "ok": true}\n```'
        assert json_repair.parse_any(text) == {"units": [1, 2, 3], "ok": True}

    def test_prose_around_object(self):
        assert json_repair.parse_any('Sure! {"a": 1} hope that helps') == {"a": 1}

    def test_trailing_commas(self):
        assert json_repair.parse_any('{"a": [1, 2,], }') == {"a": [1, 2]}

    def test_comment_lines_and_bom(self):
        text = '\ufeff{\n  // the title\n  "title": "Hi"\n}'
        assert json_repair.parse_any(text) == {"title": "Hi"}

    def test_unescaped_interior_quote(self):
        text = '{"quote": "She said "hi" to me", "n": 1}'
        assert json_repair.parse_any(text) == {"quote": 'She said "hi" to me', "n": 1}

    def test_raw_newline_inside_string(self):
        assert json_repair.parse_any('{"a": "line1\nline2"}') == {"a": "line1\nline2"}

    def test_lone_backslash(self):
        assert json_repair.parse_any('{"path": "C:\\data\\x"}') == {"path": "C:\\data\\x"}

    def test_truncated_nested_object(self):
        assert json_repair.parse_any('{"a": {"b": 1') == {"a": {"b": 1}}

    def test_truncated_inside_string(self):
        assert json_repair.parse_any('{"title": "Hello wor') == {"title": "Hello wor"}

    def test_truncated_after_colon(self):
        result = json_repair.parse_any('{"units": [{"a": 1}, {"b": ')
        assert result["units"][0] == {"a": 1}

    def test_empty_input_raises(self):
        with pytest.raises(UnparsableOutputError):
            json_repair.parse_any("   ")

    def test_no_json_raises_with_snippet(self):
        with pytest.raises(UnparsableOutputError) as exc:
            json_repair.parse_any("I cannot help with that request.")
        assert "I cannot help" in exc.value.snippet


# ---------------------------------------------------------------------------
# parse: schema validation
# ---------------------------------------------------------------------------

class TestParseWithSchema:
    def test_valid_schema(self):
        direction = json_repair.parse('{"visualMetaphor": "A lighthouse"}', CreativeDirection)
        assert isinstance(direction, CreativeDirection)
        assert direction.visual_metaphor == "A lighthouse"

    def test_schema_mismatch_raises(self):
        with pytest.raises(UnparsableOutputError):
            json_repair.parse('{"somethingElse": 1}', CreativeDirection)

    def test_no_schema_returns_plain_value(self):
        assert json_repair.parse("[1, 2]") == [1, 2]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestHelpers:
    def test_strip_trailing_commas_ignores_strings(self):
        assert json_repair.strip_trailing_commas('{"a": "x,]"}') == '{"a": "x,]"}'

    def test_extract_outermost_orders_by_first_opener(self):
        spans = json_repair.extract_outermost('junk [1] then {"a": 2}')
        assert spans[0].startswith("[")

    def test_repair_truncation_closes_containers(self):
        assert json.loads(json_repair.repair_truncation('{"a": [1, 2')) == {"a": [1, 2]}

    def test_repair_truncation_drops_dangling_key(self):
        assert json.loads(json_repair.repair_truncation('{"a": 1, "b')) == {"a": 1}

    def test_collapse_commas(self):
        assert json_repair.collapse_commas("[1,, 2, ,3]") == "[1, 2,3]"
