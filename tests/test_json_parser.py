# Test suite for JSON parser functionality

import pytest

from savvy.utils.json_parser import (
    JsonParsingError,
    extract_json_block,
    parse_json_object,
    split_fields,
    string_list,
)


class TestExtractJsonBlock:
    """Locating the JSON payload inside a model reply"""

    def test_json_fence_wins(self):
        text = """Here are the notes:
```json
{"title": "Sync"}
```
Let me know if you need more."""

        assert extract_json_block(text) == '{"title": "Sync"}'

    def test_bare_fence(self):
        text = """```
{"subject": "Follow up"}
```"""

        assert extract_json_block(text) == '{"subject": "Follow up"}'

    def test_prose_around_braces(self):
        text = 'Sure! {"summary": "ok", "nested": {"a": 1}} Hope that helps.'

        assert extract_json_block(text) == '{"summary": "ok", "nested": {"a": 1}}'

    def test_no_json_returns_stripped_text(self):
        assert extract_json_block("  nothing here  ") == "nothing here"


class TestParseJsonObject:
    """Decoding with typed failures"""

    def test_valid_object(self):
        data = parse_json_object('```json\n{"keyPoints": ["a", "b"]}\n```')

        assert data == {"keyPoints": ["a", "b"]}

    def test_invalid_json_raises_with_position(self):
        with pytest.raises(JsonParsingError) as exc_info:
            parse_json_object('{"title": "Sync",}')

        assert exc_info.value.original_error is not None
        assert exc_info.value.position is not None
        assert exc_info.value.partial_data == '{"title": "Sync",}'

    def test_array_is_rejected(self):
        with pytest.raises(JsonParsingError, match="Expected a JSON object"):
            parse_json_object("[1, 2, 3]")

    def test_empty_reply(self):
        with pytest.raises(JsonParsingError):
            parse_json_object("")


class TestCoercion:
    """Normalizing loosely-typed model output"""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, []),
            ("", []),
            ("one", ["one"]),
            (["a", None, 3], ["a", "3"]),
            (42, ["42"]),
        ],
    )
    def test_string_list(self, value, expected):
        assert string_list(value) == expected

    def test_split_fields_keeps_known_keys(self):
        data = {"task": "Ship", "assignee": "Sam", "extra": True}

        assert split_fields(data, ("task", "assignee", "dueDate")) == {
            "task": "Ship",
            "assignee": "Sam",
        }
