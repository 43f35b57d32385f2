"""
Frontmatter codec for work item documents.

Splits a document into its `---` delimited metadata block and body, decodes
the block into an ordered mapping and encodes it back. Entries that were not
modified are written back from their original lines, so an untouched document
re-encodes byte-identically and partial edits never perturb unrelated fields.

Each entry keeps the original text of its value alongside the typed value
from YAML, so `id: 007` stays `007` even though YAML reads it as an integer.
"""

import datetime
import re
from dataclasses import dataclass, field
from typing import Any, Iterator

import yaml

from workboard.lib.types import ParseError

DELIMITER = "---"

KEY_RE = re.compile(r'^([A-Za-z_][\w.-]*)\s*:(?=\s|$)(.*)$')
INLINE_COMMENT_RE = re.compile(r'\s+#.*$')
QUOTED_RE = re.compile(r'''^(["'])(.*)\1(?:\s+#.*)?$''')

# Characters that force a string scalar to be double-quoted on output
YAML_SPECIAL_CHARS = ":#[]{},\"'\\\n\r\t&*!|>%"


@dataclass
class FrontmatterEntry:
    """One top-level key of the metadata block and its original lines."""
    key: str
    lines: list[str]
    modified: bool = False


@dataclass
class Frontmatter:
    """Ordered metadata block with typed values and original text."""
    opening: str
    closing: str
    entries: list[FrontmatterEntry] = field(default_factory=list)
    values: dict[str, Any] = field(default_factory=dict)
    preamble: list[str] = field(default_factory=list)  # Comments/blank lines before the first key
    newline: str = "\n"

    def __contains__(self, key: str) -> bool:
        return key in self.values

    def __iter__(self) -> Iterator[str]:
        return (entry.key for entry in self.entries)

    def keys(self) -> list[str]:
        return [entry.key for entry in self.entries]

    def get(self, key: str, default: Any = None) -> Any:
        """Typed value as YAML interprets it."""
        return self.values.get(key, default)

    def raw(self, key: str) -> str | None:
        """Original scalar text of a value, unquoted and without inline comment.

        Returns None for absent keys. Block values (lists, nested maps)
        return the text on the key line, usually empty.
        """
        entry = self._entry(key)
        if entry is None:
            return None
        match = KEY_RE.match(entry.lines[0].rstrip("\r\n"))
        text = match.group(2).strip() if match else ""
        quoted = QUOTED_RE.match(text)
        if quoted:
            return quoted.group(2)
        return INLINE_COMMENT_RE.sub("", text)

    def text(self, key: str) -> str | None:
        """Best textual form of a value: original text for scalars, str() otherwise."""
        value = self.values.get(key)
        if isinstance(value, (list, dict)):
            return None
        raw = self.raw(key)
        if isinstance(value, str) and (not raw or raw[0] in "|>"):
            return value  # Block scalar
        if raw:
            return raw
        if value is None:
            return None
        return format_scalar(value)

    def set(self, key: str, value: Any) -> None:
        """Set a value, keeping the key's position; new keys are appended."""
        line = f"{key}: {format_scalar(value)}".rstrip() + self.newline
        entry = self._entry(key)
        if entry is None:
            self.entries.append(FrontmatterEntry(key=key, lines=[line], modified=True))
        else:
            entry.lines = [line, *_trailing_lines(entry.lines)]
            entry.modified = True
        self.values[key] = value

    @property
    def modified(self) -> bool:
        return any(entry.modified for entry in self.entries)

    def _entry(self, key: str) -> FrontmatterEntry | None:
        for entry in self.entries:
            if entry.key == key:
                return entry
        return None


def _is_delimiter(line: str) -> bool:
    return line.strip() == DELIMITER


def _trailing_lines(lines: list[str]) -> list[str]:
    """Blank and comment lines after the last line of an entry's value."""
    end = len(lines)
    while end > 1 and (not lines[end - 1].strip() or lines[end - 1].lstrip().startswith("#")):
        end -= 1
    return lines[end:]


def split_document(content: str) -> tuple[list[str], str]:
    """Split content into frontmatter lines (delimiters included) and body.

    Raises:
        ParseError: If the leading delimiter is missing or never closed
    """
    lines = content.splitlines(keepends=True)
    if not lines or not _is_delimiter(lines[0]):
        raise ParseError("missing frontmatter: document must start with '---'")

    for i in range(1, len(lines)):
        if _is_delimiter(lines[i]):
            header = lines[:i + 1]
            consumed = sum(len(line) for line in header)
            return header, content[consumed:]

    raise ParseError("unterminated frontmatter: closing '---' not found")


def decode(content: str) -> tuple[Frontmatter, str]:
    """Decode a document into (Frontmatter, body).

    Raises:
        ParseError: If the block is missing, unterminated, not valid YAML,
            not a mapping, or uses a layout we can't edit line by line
    """
    header, body = split_document(content)
    opening, block_lines, closing = header[0], header[1:-1], header[-1]

    try:
        values = yaml.safe_load("".join(block_lines))
    except yaml.YAMLError as e:
        raise ParseError(f"invalid frontmatter: {e}") from None
    if values is None:
        values = {}
    if not isinstance(values, dict):
        raise ParseError(f"invalid frontmatter: expected key-value mapping, got {type(values).__name__}")

    newline = "\r\n" if opening.endswith("\r\n") else "\n"
    fm = Frontmatter(opening=opening, closing=closing, newline=newline)

    for line in block_lines:
        stripped = line.strip()
        match = KEY_RE.match(line.rstrip("\r\n"))
        if match:
            fm.entries.append(FrontmatterEntry(key=match.group(1), lines=[line]))
        elif not stripped or stripped.startswith("#") or line[0] in (" ", "\t", "-"):
            # Blank, comment or continuation of the previous value
            if fm.entries:
                fm.entries[-1].lines.append(line)
            else:
                fm.preamble.append(line)
        else:
            raise ParseError(f"unsupported frontmatter line: {stripped!r}")

    scanned = fm.keys()
    if scanned != [str(k) for k in values] or len(set(scanned)) != len(scanned):
        raise ParseError("unsupported frontmatter layout: duplicate or non-plain keys")

    fm.values = dict(values)
    return fm, body


def encode(fm: Frontmatter, body: str) -> str:
    """Encode frontmatter and body back into document text."""
    parts = [fm.opening, *fm.preamble]
    for entry in fm.entries:
        parts.extend(entry.lines)
    parts.append(fm.closing)
    parts.append(body)
    return "".join(parts)


def update_document(content: str, updates: dict[str, Any]) -> str:
    """Return content with the given frontmatter keys set, all else unchanged."""
    fm, body = decode(content)
    for key, value in updates.items():
        fm.set(key, value)
    return encode(fm, body)


def needs_quoting(s: str) -> bool:
    if s == "" or s.strip() != s:
        return True
    return any(c in YAML_SPECIAL_CHARS for c in s)


def quote(s: str) -> str:
    escaped = (
        s.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def format_scalar(value: Any) -> str:
    """Render a value as it appears after `key: ` in the metadata block."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, datetime.datetime):
        return value.isoformat()
    if isinstance(value, datetime.date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_scalar(item) for item in value) + "]"
    if isinstance(value, dict):
        return yaml.safe_dump(value, default_flow_style=True).strip()
    s = str(value)
    return quote(s) if needs_quoting(s) else s
