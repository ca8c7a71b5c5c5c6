"""Parser for extracting comment options from LLM responses."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass

from engagimus.models import CommentOption, CommentStyle

logger = logging.getLogger(__name__)

MAX_OPTIONS = 5

# Style labels as models tend to write them, normalised to lower-case-hyphenated
STYLE_ALIASES: dict[str, CommentStyle] = {
    "conversational": CommentStyle.CONVERSATIONAL,
    "casual": CommentStyle.CONVERSATIONAL,
    "friendly": CommentStyle.CONVERSATIONAL,
    "professional": CommentStyle.PROFESSIONAL,
    "question": CommentStyle.QUESTION,
    "question-based": CommentStyle.QUESTION,
    "questionbased": CommentStyle.QUESTION,
    "value-add": CommentStyle.VALUE_ADD,
    "value-added": CommentStyle.VALUE_ADD,
    "valueadd": CommentStyle.VALUE_ADD,
    "brief": CommentStyle.BRIEF,
    "short": CommentStyle.BRIEF,
    "concise": CommentStyle.BRIEF,
}

# "1. text", "2) text", "3: text" at the start of a line
NUMBERED_PATTERN = re.compile(
    r'^[ \t]*\d{1,2}[.):][ \t]+(.+?)(?=^[ \t]*\d{1,2}[.):][ \t]+|\Z)',
    re.DOTALL | re.MULTILINE,
)

# "[style] text" or "**[style]** text"
BRACKET_LABEL = re.compile(r'^\**\[([^\]\n]{1,30})\]\**\s*[:\-–—]?\s*', re.DOTALL)

# "Style: text", "**Style** - text", "**Style:** text"
WORD_LABEL = re.compile(r'^\**([A-Za-z][A-Za-z _\-]{0,20}?)\**\s*[:\-–—]\**\s+', re.DOTALL)

PARAGRAPH_SPLIT = re.compile(r'\n\s*\n+')

CODE_FENCE = re.compile(r'```(?:json)?', re.IGNORECASE)


@dataclass
class ParsedResponse:
    """
    Complete parsed response with all comment options.

    Attributes:
        options: Parsed options in encounter order
        raw_response: Original LLM response text
        parse_warnings: Any issues encountered during parsing
    """
    options: list[CommentOption]
    raw_response: str
    parse_warnings: list[str]

    @property
    def option_count(self) -> int:
        return len(self.options)

    @property
    def is_empty(self) -> bool:
        return not self.options

    def get_by_style(self, style: CommentStyle) -> list[CommentOption]:
        return [o for o in self.options if o.style == style]


def normalize_style(label: str | None) -> CommentStyle | None:
    """Map a free-form style label to a CommentStyle, or None if unknown."""
    if not label:
        return None
    key = re.sub(r'[\s_]+', '-', label.strip().strip('*').strip().lower())
    return STYLE_ALIASES.get(key)


def _iter_json_arrays(text: str):
    """Yield (list, start, end) for each top-level JSON array decodable in text."""
    decoder = json.JSONDecoder()
    position = 0
    while True:
        start = text.find('[', position)
        if start == -1:
            return
        try:
            value, end = decoder.raw_decode(text, start)
        except ValueError:
            position = start + 1
            continue
        if isinstance(value, list):
            yield value, start, end
            position = end
        else:
            position = start + 1


def extract_json_array(text: str) -> list | None:
    """
    Find the first JSON array embedded in free text.

    Tolerates surrounding prose and markdown code fences.

    Returns:
        The decoded list, or None if no array decodes
    """
    if not text:
        return None

    for value, _, _ in _iter_json_arrays(CODE_FENCE.sub('', text)):
        return value

    return None


def parse_llm_response(response_text: str) -> ParsedResponse:
    """
    Parse LLM response to extract styled comment options.

    Strategies in order: embedded JSON array, numbered list, blank-line
    separated paragraphs. Segments without a recognisable style label get
    the conversational style.

    Args:
        response_text: Raw text from LLM

    Returns:
        ParsedResponse; options is empty when nothing could be extracted
    """
    warnings: list[str] = []
    text = (response_text or "").strip()

    if not text:
        return ParsedResponse(options=[], raw_response=response_text or "", parse_warnings=["Empty response"])

    options = _parse_json_options(text)

    if not options:
        segments = [m.group(1) for m in NUMBERED_PATTERN.finditer(text)]
        options = [o for o in (_segment_to_option(s) for s in segments) if o]
        if options:
            warnings.append("Used numbered list pattern")

    if not options:
        paragraphs = [p for p in PARAGRAPH_SPLIT.split(text) if p.strip()]
        options = [o for o in (_segment_to_option(p) for p in paragraphs) if o]
        if options:
            warnings.append("Fell back to paragraph splitting")

    # Check for duplicates
    seen_texts = set()
    unique_options = []
    for option in options:
        normalized = option.text.lower()
        if normalized not in seen_texts:
            seen_texts.add(normalized)
            unique_options.append(option)
        else:
            warnings.append(f"Duplicate option dropped: {option.text[:40]}")

    if len(unique_options) > MAX_OPTIONS:
        warnings.append(f"Found {len(unique_options)} options, keeping first {MAX_OPTIONS}")
        unique_options = unique_options[:MAX_OPTIONS]

    logger.debug(
        "Parsed %d options from response (%d chars), %d warnings",
        len(unique_options),
        len(text),
        len(warnings),
    )

    return ParsedResponse(
        options=unique_options,
        raw_response=response_text,
        parse_warnings=warnings,
    )


def parse_comment_options(response_text: str) -> list[CommentOption]:
    """Parse a completion into comment options. Empty list when none found."""
    return parse_llm_response(response_text).options


def _parse_json_options(text: str) -> list[CommentOption]:
    """
    Read options from an embedded JSON array.

    An array of objects is accepted anywhere in the text. An array of plain
    strings only counts when it stands on its own lines, so a comment that
    quotes a list inline is left to the numbered and paragraph strategies.
    """
    cleaned = CODE_FENCE.sub('', text)

    for items, start, end in _iter_json_arrays(cleaned):
        if any(isinstance(item, dict) for item in items):
            options = _options_from_items(items)
        elif _stands_alone(cleaned, start, end):
            options = _options_from_items(items)
        else:
            continue
        if options:
            return options

    return []


def _stands_alone(text: str, start: int, end: int) -> bool:
    """True when nothing but whitespace shares a line with text[start:end]."""
    line_start = text.rfind('\n', 0, start) + 1
    line_end = text.find('\n', end)
    if line_end == -1:
        line_end = len(text)
    return not text[line_start:start].strip() and not text[end:line_end].strip()


def _options_from_items(items: list) -> list[CommentOption]:
    options = []
    for item in items:
        if isinstance(item, str):
            body, style = item, None
        elif isinstance(item, dict):
            body = item.get("text") or item.get("comment") or item.get("content") or ""
            style = normalize_style(str(item.get("style") or ""))
        else:
            continue

        body = _clean_text(str(body))
        if body:
            options.append(CommentOption.create(body, style or CommentStyle.CONVERSATIONAL))

    return options


def _segment_to_option(segment: str) -> CommentOption | None:
    """Turn one list item or paragraph into an option, reading any style label."""
    body = segment.strip()
    style = None

    bracket = BRACKET_LABEL.match(body)
    if bracket:
        style = normalize_style(bracket.group(1))
        body = body[bracket.end():]
    else:
        word = WORD_LABEL.match(body)
        if word and normalize_style(word.group(1)):
            style = normalize_style(word.group(1))
            body = body[word.end():]

    body = _clean_text(body)
    if not body:
        return None

    return CommentOption.create(body, style or CommentStyle.CONVERSATIONAL)


def _clean_text(text: str) -> str:
    """Clean and normalize option text."""
    text = text.strip()

    # Collapse multiple whitespace
    text = re.sub(r'\s+', ' ', text)

    # Strip wrapping quotes the model sometimes adds
    if len(text) >= 2 and text[0] == text[-1] and text[0] in '"“”\'':
        text = text[1:-1].strip()
    elif len(text) >= 2 and text[0] == '“' and text[-1] == '”':
        text = text[1:-1].strip()

    return text
