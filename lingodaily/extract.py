"""Turn provider responses into validated StoryContent.

Two strategies share one validation step:

- StructuredCallExtractor reads the arguments of the forced ``create_story``
  tool call.
- FreeTextExtractor parses JSON the model wrote as plain text, after cleaning
  up the usual formatting damage (fences, smart quotes, unescaped dialogue
  quotes, trailing commas).

The strategy is picked from the shape of the response, never from settings.
"""

import json
import logging
import re

from pydantic import ValidationError

from lingodaily.errors import ExtractionError
from lingodaily.models import BatchOutcome, OutcomeType, StoryContent
from lingodaily.prompts import STORY_TOOL_NAME, min_messages

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"^```(?:json)?\s*\n(.*?)\n```\s*$", re.MULTILINE | re.DOTALL)
_LEADING_FENCE = re.compile(r"^```(?:json)?\s*\n?", re.MULTILINE | re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\n?```\s*$", re.MULTILINE)
_DOUBLE_QUOTES = re.compile("[“”„‟]")
_SINGLE_QUOTES = re.compile("[‘’‚‛]")
_STRUCTURAL_LINE = re.compile(r"^\s*[{}\[\],]?\s*$")
_STRING_PROPERTY = re.compile(r'^(\s*"[^"]+"\s*:\s*")(.*?)(",?\s*)$')
_TRAILING_COMMA = re.compile(r"(?:,\s*)+([}\]])")


def _escape_quotes(value: str) -> str:
    """Escape bare double quotes, keeping existing escape pairs intact."""
    out = []
    i = 0
    while i < len(value):
        char = value[i]
        if char == "\\" and i + 1 < len(value):
            out.append(value[i : i + 2])
            i += 2
            continue
        out.append('\\"' if char == '"' else char)
        i += 1
    return "".join(out)


def _fix_line(line: str) -> str:
    if _STRUCTURAL_LINE.match(line):
        return line
    match = _STRING_PROPERTY.match(line)
    if not match or not match.group(2):
        return line
    prefix, value, suffix = match.groups()
    return prefix + _escape_quotes(value) + suffix


def _repair(text: str) -> str:
    cleaned = text.strip()

    fenced = _FENCED_BLOCK.search(cleaned)
    if fenced and fenced.group(1):
        cleaned = fenced.group(1)
    cleaned = _LEADING_FENCE.sub("", cleaned)
    cleaned = _TRAILING_FENCE.sub("", cleaned)

    cleaned = _DOUBLE_QUOTES.sub('"', cleaned)
    cleaned = _SINGLE_QUOTES.sub("'", cleaned)

    # Dialogue often quotes speech inside a value; fix one property per line
    cleaned = "\n".join(_fix_line(line) for line in cleaned.split("\n"))

    cleaned = _TRAILING_COMMA.sub(r"\1", cleaned)
    return cleaned.strip()


def clean_json_text(text: str) -> str:
    """Repair model-written JSON text so that json.loads accepts it.

    Purely textual and idempotent: cleaning clean text changes nothing.
    """
    # A pass can expose more damage (lines joined by a dropped comma, stacked
    # fences), so repeat until the text is stable
    cleaned = _repair(text)
    while True:
        repaired = _repair(cleaned)
        if repaired == cleaned:
            return cleaned
        cleaned = repaired


def validate_story(data: object, level: str) -> StoryContent:
    """Validate a decoded payload against the story invariants for a level."""
    if not isinstance(data, dict):
        raise ExtractionError(f"Expected a JSON object, got {type(data).__name__}")
    try:
        story = StoryContent.model_validate(data)
    except ValidationError as e:
        raise ExtractionError(f"Story does not match schema: {e}") from e

    minimum = min_messages(level)
    if len(story.messages) < minimum:
        raise ExtractionError(
            f"{level} story has {len(story.messages)} messages, expected at least {minimum}"
        )
    return story


def _first_message(body: dict) -> dict:
    try:
        message = body["choices"][0]["message"]
    except (KeyError, IndexError, TypeError) as e:
        raise ExtractionError("Response has no message choice") from e
    if not isinstance(message, dict):
        raise ExtractionError("Response message is not an object")
    return message


class StructuredCallExtractor:
    """Reads the ``create_story`` tool call arguments."""

    @staticmethod
    def accepts(message: dict) -> bool:
        return bool(message.get("tool_calls"))

    def extract(self, message: dict, level: str) -> StoryContent:
        call = next(
            (
                c
                for c in message.get("tool_calls") or []
                if isinstance(c, dict)
                and isinstance(c.get("function"), dict)
                and c["function"].get("name") == STORY_TOOL_NAME
            ),
            None,
        )
        if call is None:
            raise ExtractionError(f"No {STORY_TOOL_NAME} tool call found in response")
        arguments = call["function"].get("arguments")
        if isinstance(arguments, str):
            try:
                arguments = json.loads(arguments)
            except json.JSONDecodeError as e:
                raise ExtractionError(f"Tool call arguments are not JSON: {e}") from e
        return validate_story(arguments, level)


class FreeTextExtractor:
    """Parses a JSON story the model wrote as message text."""

    @staticmethod
    def accepts(message: dict) -> bool:
        return isinstance(message.get("content"), str) and bool(message["content"].strip())

    def extract(self, message: dict, level: str) -> StoryContent:
        cleaned = clean_json_text(message["content"])
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise ExtractionError(f"Response text is not valid JSON: {e}") from e
        return validate_story(data, level)


EXTRACTORS = [StructuredCallExtractor(), FreeTextExtractor()]


def extract_from_body(body: dict, level: str) -> StoryContent:
    """Extract a story from a chat completion body."""
    message = _first_message(body)
    for extractor in EXTRACTORS:
        if extractor.accepts(message):
            return extractor.extract(message, level)
    raise ExtractionError("Response carries neither a tool call nor text content")


def extract(outcome: BatchOutcome, level: str) -> StoryContent:
    """Extract a story from one batch outcome, or raise ExtractionError."""
    if outcome.type is not OutcomeType.SUCCEEDED:
        raise ExtractionError(
            f"Request {outcome.custom_id} {outcome.type.value}: {outcome.error or 'no detail'}"
        )
    if not outcome.body:
        raise ExtractionError(f"Request {outcome.custom_id} succeeded without a body")
    return extract_from_body(outcome.body, level)
