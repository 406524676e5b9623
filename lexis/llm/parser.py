"""Parser for code-rewriting responses (``{fileContent, messages}`` JSON)."""

import json
import re
from typing import Callable, List, Tuple

from pydantic import ValidationError

from lexis.core.logging import get_logger
from lexis.llm.errors import InvalidResponseError
from lexis.models.schemas import TransformResponse

logger = get_logger(__name__)

Repair = Callable[[str], str]

TRAILING_COMMA_PATTERN = re.compile(r",(\s*[}\]])")
CONTENT_KEY = '"fileContent"'
CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


def strip_markdown_fences(text: str) -> str:
    """
    Remove a surrounding ```` ```json ... ``` ```` fence, if present.

    Args:
        text: Raw model output

    Returns:
        The fenced body, or the trimmed input when there is no fence
    """
    trimmed = text.strip()
    if not trimmed.startswith("```"):
        return trimmed

    start = 3
    while start < len(trimmed) and trimmed[start].isalpha():
        start += 1
    while start < len(trimmed) and trimmed[start] in "\n ":
        start += 1
    rest = trimmed[start:]
    close = rest.find("```")
    return rest.strip() if close == -1 else rest[:close].strip()


def strip_trailing_commas(text: str) -> str:
    return TRAILING_COMMA_PATTERN.sub(r"\1", text)


def extract_outermost_object(text: str) -> str:
    """Slice from the first ``{`` to the last ``}``."""
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last == -1 or last <= first:
        return text
    return text[first : last + 1]


def escape_control_chars_in_file_content(text: str) -> str:
    """
    Escape raw control characters inside the ``fileContent`` string value.

    Models often emit literal newlines in that value, which JSON forbids.
    Existing escape sequences are copied through untouched.
    """
    key_index = text.find(CONTENT_KEY)
    if key_index == -1:
        return text
    quote_index = text.find('"', key_index + len(CONTENT_KEY))
    if quote_index == -1:
        return text

    start = quote_index + 1
    i = start
    repaired: List[str] = []
    while i < len(text):
        char = text[i]
        if char == "\\":
            repaired.append(text[i : i + 2])
            i += 2
            continue
        if char == '"':
            break
        if char in CONTROL_ESCAPES:
            repaired.append(CONTROL_ESCAPES[char])
        elif ord(char) < 32:
            repaired.append(f"\\u{ord(char):04x}")
        else:
            repaired.append(char)
        i += 1

    return text[:start] + "".join(repaired) + text[i:]


# Tried in order; the first that yields a valid payload wins.
REPAIR_PIPELINES: List[Tuple[Repair, ...]] = [
    (),
    (escape_control_chars_in_file_content,),
    (extract_outermost_object, strip_trailing_commas),
    (extract_outermost_object, strip_trailing_commas, escape_control_chars_in_file_content),
]


def parse_transform_response(response_text: str) -> TransformResponse:
    """
    Parse a rewriting response, applying repairs until one parses.

    Args:
        response_text: Raw text returned by the model

    Returns:
        TransformResponse with the rewritten file and new message keys

    Raises:
        InvalidResponseError: If no repair pipeline yields a valid payload
    """
    json_text = strip_markdown_fences(response_text or "")
    last_error: Exception | None = None

    for attempt, repairs in enumerate(REPAIR_PIPELINES, 1):
        candidate = json_text
        for repair in repairs:
            candidate = repair(candidate)
        try:
            response = TransformResponse.model_validate(json.loads(candidate))
        except (json.JSONDecodeError, ValidationError) as e:
            last_error = e
            continue

        if attempt > 1:
            logger.debug(
                "Parsed rewriting response after repair",
                repairs=[repair.__name__ for repair in repairs],
            )
        return response

    raise InvalidResponseError(
        f"Failed to parse rewriting response: {last_error}",
        raw_response=json_text,
    )
