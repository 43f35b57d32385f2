"""
Markdown section splitter.

Locates body sections by heading text and returns their half-open character
range: from the start of the heading line up to the next heading of equal or
higher level, or the end of the text. Headings only count at the start of a
line and outside fenced code blocks.
"""

import re
from dataclasses import dataclass

HEADING_RE = re.compile(r'^(#{1,6})[ \t]+(.*?)(?:[ \t]+#+)?[ \t]*$')
FENCE_RE = re.compile(r'^(`{3,}|~{3,})')


@dataclass(frozen=True)
class Heading:
    level: int
    title: str
    start: int  # Offset of the heading line
    end: int    # Offset just past the heading line (including its newline)


def iter_headings(text: str) -> list[Heading]:
    """Return all ATX headings in document order."""
    headings = []
    offset = 0
    fence = None

    for line in text.splitlines(keepends=True):
        bare = line.rstrip("\r\n")
        fence_match = FENCE_RE.match(bare)
        if fence_match:
            marker = fence_match.group(1)[0]
            if fence is None:
                fence = marker
            elif fence == marker:
                fence = None
        elif fence is None:
            match = HEADING_RE.match(bare)
            if match and match.group(2):
                headings.append(Heading(
                    level=len(match.group(1)),
                    title=match.group(2).strip(),
                    start=offset,
                    end=offset + len(line),
                ))
        offset += len(line)

    return headings


def find_section(text: str, name: str, level: int | None = None) -> tuple[int, int] | None:
    """Find the range of the first section titled `name`.

    Args:
        text: Markdown body
        name: Heading text, compared case-insensitively
        level: Heading level to match (None matches any level)

    Returns:
        (start, end) offsets, or None if no such heading exists
    """
    headings = iter_headings(text)
    for i, heading in enumerate(headings):
        if heading.title.lower() != name.lower():
            continue
        if level is not None and heading.level != level:
            continue
        for following in headings[i + 1:]:
            if following.level <= heading.level:
                return heading.start, following.start
        return heading.start, len(text)
    return None


def find_first_heading(text: str, names: list[str], level: int) -> Heading | None:
    """First heading at `level` whose title is one of `names` (case-insensitive)."""
    wanted = {n.lower() for n in names}
    for heading in iter_headings(text):
        if heading.level == level and heading.title.lower() in wanted:
            return heading
    return None


def splice(text: str, start: int, end: int, replacement: str) -> str:
    """Replace text[start:end], leaving everything outside the range untouched."""
    return text[:start] + replacement + text[end:]
