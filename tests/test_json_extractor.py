"""Tests for locating and repairing JSON buried in free text."""

import pytest

from sequencer.errors import JsonRepairFailed, NoJsonFound
from sequencer.json_extractor import (
    JsonTextExtractor,
    find_matching_bracket,
    is_valid_json,
    locate_candidates,
    loads_relaxed,
    repair_at_position,
    repair_strings,
    sanitize,
)


@pytest.fixture
def extractor():
    return JsonTextExtractor()


class TestBracketMatching:
    def test_nested(self):
        text = 'x {"a": {"b": 1}} y'
        assert find_matching_bracket(text, 2) == len(text) - 3

    def test_braces_inside_strings_ignored(self):
        text = '{"a": "}{"}'
        assert find_matching_bracket(text, 0) == len(text) - 1

    def test_unbalanced(self):
        assert find_matching_bracket('{"a": 1', 0) == -1

    def test_quote_after_escaped_backslash_stays_in_string(self):
        # Only the single preceding character is checked, so the quote after \\ does not close the string.
        assert find_matching_bracket(r'{"x": "a\\"}', 0) == -1

    def test_brace_after_escaped_backslash_not_counted(self):
        text = r'{"k": "a\\"{", "z": 1}'
        assert find_matching_bracket(text, 0) == len(text) - 1

    def test_candidates_object_first(self):
        assert locate_candidates('[1] and {"a": 1}') == ['{"a": 1}', "[1]"]
        assert locate_candidates("no json here") == []


class TestSanitize:
    def test_escapes_control_characters_in_strings_only(self):
        text = '{\n"a": "line1\nline2\tend"\n}'
        assert sanitize(text) == '{\n"a": "line1\\nline2\\tend"\n}'

    def test_idempotent(self):
        text = '{"a": "x\ny", "b": "q\\"r"}'
        once = sanitize(text)
        assert sanitize(once) == once

    def test_repair_strings(self):
        assert repair_strings('{"a": "x\r\ny"}') == '{"a": "x\\ny"}'


class TestRelaxedParsing:
    def test_comments_and_trailing_commas(self):
        text = '{\n  "a": 1, // first\n  "b": [1, 2,], /* block */\n}'
        assert loads_relaxed(text) == {"a": 1, "b": [1, 2]}

    def test_comment_markers_inside_strings_kept(self):
        assert loads_relaxed('{"url": "http://example.com"}') == {"url": "http://example.com"}

    def test_is_valid_json(self):
        assert is_valid_json('{"a": 1}')
        assert not is_valid_json('{"a": }')


class TestRepairAtPosition:
    def test_deletes_stray_character(self):
        assert repair_at_position('{"a": 1 x}', 1, 9) == '{"a": 1 }'

    def test_escapes_quote(self):
        assert repair_at_position('{"a": "b"c"}', 1, 9) == '{"a": "b\\"c"}'

    def test_line_break_at_end_of_line(self):
        assert repair_at_position('{"a": "x\ny"}', 1, 9) == '{"a": "x\\ny"}'

    def test_out_of_range(self):
        assert repair_at_position('{"a": 1}', 3, 1) is None
        assert repair_at_position('{"a": 1}', 1, 40) is None


class TestExtractor:
    def test_extracts_from_prose(self, extractor):
        result = extractor.extract('Here you go:\n{"waitTime": 250}\nThanks!')
        assert result.document == {"waitTime": 250}
        assert result.text == '{"waitTime": 250}'

    def test_raw_newline_in_string(self, extractor):
        result = extractor.extract('Answer: {"note": "first\nsecond"} done')
        assert result.document == {"note": "first\nsecond"}

    def test_single_position_fix(self, extractor):
        result = extractor.extract('{"a": 1 x}')
        assert result.document == {"a": 1}

    def test_array_candidate(self, extractor):
        assert extractor.extract("values: [1, 2, 3]").document == [1, 2, 3]

    def test_no_json(self, extractor):
        with pytest.raises(NoJsonFound):
            extractor.extract("plain text only")
        with pytest.raises(NoJsonFound):
            extractor.extract(None)

    def test_unrepairable(self, extractor):
        with pytest.raises(JsonRepairFailed):
            extractor.extract('{"a": "x" "b": "y" "c"}')
