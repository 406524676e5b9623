"""Tests for the rewriting-response repair chain."""

import json

import pytest

from lexis.llm.errors import InvalidResponseError
from lexis.llm.parser import (
    escape_control_chars_in_file_content,
    extract_outermost_object,
    parse_transform_response,
    strip_markdown_fences,
    strip_trailing_commas,
)


def test_plain_json():
    parsed = parse_transform_response('{"fileContent": "a", "messages": {"k": "v"}}')
    assert parsed.file_content == "a"
    assert parsed.messages == {"k": "v"}


def test_markdown_fence_is_stripped():
    text = '```json\n{"fileContent": "a", "messages": {}}\n```'
    assert parse_transform_response(text).file_content == "a"


def test_literal_newlines_in_file_content_are_escaped():
    text = '{"fileContent": "line one\n\tline two\r\n", "messages": {"k": "v"}}'
    parsed = parse_transform_response(text)
    assert parsed.file_content == "line one\n\tline two\r\n"


def test_prose_around_object_and_trailing_commas():
    text = 'Here you go:\n{"fileContent": "x", "messages": {"a": "A", "b": "B",},}\nThanks!'
    parsed = parse_transform_response(text)
    assert parsed.messages == {"a": "A", "b": "B"}


def test_all_repairs_combined():
    text = 'Sure!\n{"fileContent": "const a = 1;\nconst b = 2;", "messages": {"k": "v",},}'
    parsed = parse_transform_response(text)
    assert parsed.file_content == "const a = 1;\nconst b = 2;"


def test_missing_messages_defaults_to_empty():
    assert parse_transform_response('{"fileContent": "x"}').messages == {}


@pytest.mark.parametrize(
    "text",
    [
        "not json at all",
        '{"messages": {"k": "v"}}',
        '{"fileContent": "x", "messages": {"k": ',
        "",
    ],
)
def test_unrepairable_responses_raise(text):
    with pytest.raises(InvalidResponseError) as exc_info:
        parse_transform_response(text)
    assert exc_info.value.raw_response == text.strip()


def test_strip_markdown_fences_without_closing_fence():
    assert strip_markdown_fences('```\n{"a": 1}') == '{"a": 1}'
    assert strip_markdown_fences("  {}  ") == "{}"


def test_escape_keeps_existing_escapes():
    text = '{"fileContent": "say \\"hi\\"\nbye", "messages": {}}'
    repaired = escape_control_chars_in_file_content(text)
    assert json.loads(repaired)["fileContent"] == 'say "hi"\nbye'


def test_extract_and_trailing_commas():
    assert extract_outermost_object("x {a} y {b} z") == "{a} y {b}"
    assert extract_outermost_object("no braces") == "no braces"
    assert strip_trailing_commas('{"a": [1, 2,], }') == '{"a": [1, 2] }'
