"""
Tests for truncated-JSON repair.
"""

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from manuscript_recon.utils.json_repair import (
    parse_json_object,
    repair_truncated_json,
    strip_code_fences,
)


class TestStripCodeFences:
    """Tests for markdown fence removal."""

    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fences('```\n[1, 2]\n```') == '[1, 2]'

    def test_empty(self):
        assert strip_code_fences("") == ""
        assert strip_code_fences(None) == ""


class TestRepairTruncatedJson:
    """Tests for structural closing of truncated output."""

    def test_complete_json_unchanged(self):
        text = '{"title": "A", "sections": [{"heading": "B"}]}'
        assert repair_truncated_json(text) == text

    def test_truncated_inside_string(self):
        text = '{"title": "Hello", "sections": [{"heading": "Intro", "content": "Some te'
        repaired = repair_truncated_json(text)

        value = json.loads(repaired)
        assert value["title"] == "Hello"
        assert value["sections"][0]["content"] == "Some te"

    def test_truncated_after_number(self):
        value = json.loads(repair_truncated_json('{"a": [1, 2'))
        assert value == {"a": [1, 2]}

    def test_brackets_inside_strings_ignored(self):
        text = '{"body": "see [1] and {x}", "refs": ["a'
        value = json.loads(repair_truncated_json(text))
        assert value["body"] == "see [1] and {x}"
        assert value["refs"] == ["a"]

    def test_escaped_quote_inside_string(self):
        text = '{"quote": "he said \\"hi'
        value = json.loads(repair_truncated_json(text))
        assert value["quote"] == 'he said "hi'

    def test_dangling_escape_dropped(self):
        value = json.loads(repair_truncated_json('{"a": "x\\'))
        assert value == {"a": "x"}

    def test_partial_unicode_escape_dropped(self):
        text = '{"title": "T", "contentSections": [{"header": "H", "body": "caf\\u00'
        value = json.loads(repair_truncated_json(text))
        assert value["contentSections"][0]["body"] == "caf"

    def test_complete_unicode_escape_kept(self):
        value = json.loads(repair_truncated_json('{"a": "caf\\u00e9 au'))
        assert value == {"a": "caf\u00e9 au"}

    def test_escaped_backslash_before_u_kept(self):
        value = json.loads(repair_truncated_json('{"a": "C:\\\\u00'))
        assert value == {"a": "C:\\u00"}

    def test_trailing_comma_dropped(self):
        text = '{"title": "T", "contentSections": [{"header": "H", "body": "B"},'
        value = json.loads(repair_truncated_json(text))
        assert value == {"title": "T", "contentSections": [{"header": "H", "body": "B"}]}

    @pytest.mark.parametrize("text", [
        '{"title": "T", "abstr',
        '{"title": "T", "abstract"',
        '{"title": "T", "abstract": ',
    ])
    def test_member_without_value_dropped(self, text):
        assert json.loads(repair_truncated_json(text)) == {"title": "T"}

    def test_string_in_array_is_not_a_key(self):
        value = json.loads(repair_truncated_json('{"keywords": ["a", "b'))
        assert value == {"keywords": ["a", "b"]}

    def test_idempotent(self):
        text = '{"title": "T", "contentSections": [{"header": "H", "body": "cut'
        once = repair_truncated_json(text)
        assert repair_truncated_json(once) == once


class TestParseJsonObject:
    """Tests for parse with repair fallback."""

    def test_valid_not_repaired(self):
        value, repaired = parse_json_object('{"a": 1}')
        assert value == {"a": 1}
        assert repaired is False

    def test_fenced_valid_not_repaired(self):
        value, repaired = parse_json_object('```json\n{"a": 1}\n```')
        assert value == {"a": 1}
        assert repaired is False

    def test_truncated_is_repaired(self):
        value, repaired = parse_json_object('{"title": "Partial", "keywords": ["a", "b"')
        assert repaired is True
        assert value == {"title": "Partial", "keywords": ["a", "b"]}

    def test_garbage_raises(self):
        with pytest.raises(json.JSONDecodeError):
            parse_json_object("The model refused to answer.")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
