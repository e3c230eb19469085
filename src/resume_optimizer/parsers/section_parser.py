"""Carve the generated feedback markdown into the four wizard sections.

The generation prompt asks the model for fixed headings, so segmentation is
plain literal matching rather than markdown parsing:

1. ``find_heading`` locates ``### Name`` (any of six heading weights) or
   ``**Name**``.
2. ``extract_section`` takes the text between a start and an optional end
   heading.
3. ``clean_code_fence`` / ``find_code_content`` strip the fenced code block
   the model sometimes wraps sections in.

Every function here is pure and safe to re-run over a partially streamed
document.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from resume_optimizer.models.sections import SectionName, SectionSnapshot

# Search order matters: the first prefix with any match wins, even if a
# later prefix would match earlier in the document.
HEADING_PREFIXES = ("###", "##", "#", "####", "#####", "######")

FENCE = "```"
_LANGUAGE_TAG = re.compile(r"^[a-z]+$")
_CODE_BLOCK = re.compile(r"```\w*\s*([\s\S]+?)```")

# Below this length a cleaned section is assumed to have lost its content.
_TRUNCATED_CLEAN_LENGTH = 100
_RAW_FALLBACK_MIN_LENGTH = 200


class HeadingMatch(NamedTuple):
    offset: int
    text: str

    @property
    def end(self) -> int:
        return self.offset + len(self.text)


def find_heading(haystack: str, name: str, start: int = 0) -> HeadingMatch | None:
    """Find the heading token for ``name`` at or after ``start``.

    Matching is case-sensitive with exactly one space after the hashes. A
    token embedded in prose still counts.
    """
    for prefix in HEADING_PREFIXES:
        token = f"{prefix} {name}"
        offset = haystack.find(token, start)
        if offset != -1:
            return HeadingMatch(offset, token)

    token = f"**{name}**"
    offset = haystack.find(token, start)
    if offset != -1:
        return HeadingMatch(offset, token)
    return None


def extract_section(text: str, start_name: str, end_name: str | None = None) -> str:
    """Return the trimmed text between two headings, or "" if ``start_name`` is absent."""
    start = find_heading(text, start_name)
    if start is None:
        return ""

    content_start = start.end
    content_end = len(text)
    if end_name:
        end = find_heading(text, end_name, content_start)
        if end is not None:
            content_end = end.offset
    return text[content_start:content_end].strip()


def clean_code_fence(text: str) -> str:
    """Strip a wrapping ``` fence and a bare lowercase language tag line.

    Nested wrappers are peeled until none is left, so the result is stable
    under repeated cleaning.
    """
    cleaned = text.strip()
    while cleaned.startswith(FENCE) and cleaned.endswith(FENCE):
        cleaned = cleaned[len(FENCE):len(cleaned) - len(FENCE)].strip()
        first_line, sep, rest = cleaned.partition("\n")
        if sep and _LANGUAGE_TAG.match(first_line.strip()):
            cleaned = rest.strip()
    return cleaned


def find_code_content(text: str) -> str:
    """Return the body of the first fenced block, falling back to cleaned text."""
    if not text:
        return ""

    match = _CODE_BLOCK.search(text)
    if match and match.group(1):
        return match.group(1).strip()

    cleaned = clean_code_fence(text)
    if len(cleaned) < _TRUNCATED_CLEAN_LENGTH and len(text) > _RAW_FALLBACK_MIN_LENGTH:
        return text.strip()
    return cleaned


def parse_sections(document: str) -> SectionSnapshot:
    """Run the fixed extraction plan over the whole document."""
    summary = clean_code_fence(
        extract_section(document, SectionName.SUMMARY.value, SectionName.BREAKDOWN.value)
    )
    details = clean_code_fence(
        extract_section(document, SectionName.BREAKDOWN.value, SectionName.REFINED_COPY.value)
    )
    refined_copy = find_code_content(
        extract_section(document, SectionName.REFINED_COPY.value, SectionName.COVER_LETTER.value)
    )
    cover_letter = find_code_content(
        extract_section(document, SectionName.COVER_LETTER.value)
    )
    return SectionSnapshot(
        summary=summary,
        details=details,
        refined_copy=refined_copy,
        cover_letter=cover_letter,
    )
