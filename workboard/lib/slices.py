"""
Slices section parser and writer.

A work item's `## Slices` section groups checkbox tasks under `### <name>`
subheadings:

    ## Slices

    ### API
    Commit: Expose the list endpoint
    - [x] T001: Add route
    - [ ] T002: Paginate results
      - Notes: cursor based

Writing replaces only the characters owned by the Slices section; every
character outside that range is preserved. Writing back an unchanged slice
list returns the document untouched.
"""

import logging
import re
from dataclasses import dataclass, field

from workboard.lib.frontmatter import split_document
from workboard.lib.sections import find_first_heading, find_section, splice
from workboard.lib.types import ParseError, Rule, ValidationFinding, finding

logger = logging.getLogger(__name__)

SLICES_HEADING = "Slices"
SECTION_LEVEL = 2
SLICE_LEVEL = 3

SLICE_HEADING_RE = re.compile(r'^###\s+(.+?)\s*$')
TASK_LINE_RE = re.compile(r'^-\s+\[([ xX])\]\s+(T\d+):\s*(.*)$')
TASK_LINE_WORD_RE = re.compile(r'^-\s+\[(open|done)\]\s+(T\d+):\s*(.*)$', re.IGNORECASE)
COMMIT_LINE_RE = re.compile(r'^Commit:\s*(.*)$')
NOTES_LINE_RE = re.compile(r'^\s+-\s+Notes:\s*(.*)$')
TASK_NUM_RE = re.compile(r'T(\d+)')


class SliceError(Exception):
    """A slice edit referenced a missing or duplicate slice or task."""


@dataclass
class Task:
    id: str
    description: str
    done: bool = False
    notes: str = ""


@dataclass
class Slice:
    name: str
    tasks: list[Task] = field(default_factory=list)
    commit_summary: str = ""

    @property
    def open_tasks(self) -> list[Task]:
        return [t for t in self.tasks if not t.done]


@dataclass
class TaskChanges:
    """Task-level differences between two slice snapshots."""
    completed: list[Task] = field(default_factory=list)
    reopened: list[Task] = field(default_factory=list)
    added: list[Task] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.completed or self.reopened or self.added)


def _body_offset(content: str) -> int:
    """Offset where the markdown body starts (0 when there is no frontmatter)."""
    try:
        _, body = split_document(content)
    except ParseError:
        return 0
    return len(content) - len(body)


def find_slices_section(content: str) -> tuple[int, int] | None:
    """Range of the `## Slices` section in a full document, or None."""
    offset = _body_offset(content)
    found = find_section(content[offset:], SLICES_HEADING, level=SECTION_LEVEL)
    if found is None:
        return None
    return found[0] + offset, found[1] + offset


def _parse_task_line(line: str) -> Task | None:
    match = TASK_LINE_RE.match(line)
    if match:
        return Task(id=match.group(2), description=match.group(3).strip(),
                    done=match.group(1).lower() == "x")
    match = TASK_LINE_WORD_RE.match(line)
    if match:
        return Task(id=match.group(2), description=match.group(3).strip(),
                    done=match.group(1).lower() == "done")
    return None


def parse_slices(content: str) -> list[Slice]:
    """Parse the Slices section of a document.

    A missing section gives an empty list. Lines that are not slice
    headings, commit summaries, task lines or task notes are skipped.
    """
    found = find_slices_section(content)
    if found is None:
        return []

    lines = content[found[0]:found[1]].splitlines()[1:]  # Skip the ## Slices heading
    slices: list[Slice] = []
    current = None
    last_task = None
    after_heading = False

    for line in lines:
        heading = SLICE_HEADING_RE.match(line)
        if heading:
            current = Slice(name=heading.group(1))
            slices.append(current)
            last_task = None
            after_heading = True
            continue
        if current is None:
            continue

        notes = NOTES_LINE_RE.match(line)
        if notes and last_task is not None:
            last_task.notes = notes.group(1).strip()
            continue

        trimmed = line.strip()
        if not trimmed:
            continue

        commit = COMMIT_LINE_RE.match(trimmed)
        if commit and after_heading:
            current.commit_summary = commit.group(1).strip()
            after_heading = False
            continue
        after_heading = False

        last_task = _parse_task_line(trimmed)
        if last_task is not None:
            current.tasks.append(last_task)

    return slices


def render_slices(slices: list[Slice], newline: str = "\n") -> str:
    """Render a Slices section ending with a single newline."""
    lines = [f"## {SLICES_HEADING}"]
    for s in slices:
        lines.append("")
        lines.append(f"### {s.name}")
        if s.commit_summary:
            lines.append(f"Commit: {s.commit_summary}")
        for t in s.tasks:
            box = "[x]" if t.done else "[ ]"
            lines.append(f"- {box} {t.id}: {t.description}")
            if t.notes:
                lines.append(f"  - Notes: {t.notes}")
    return newline.join(lines) + newline


def write_slices(content: str, slices: list[Slice], trailing_sections: tuple[str, ...] = ("Release Notes",)) -> str:
    """Return content with its Slices section replaced by `slices`.

    Only the section's own range changes. Without an existing section, a new
    one is inserted before the first trailing section (e.g. Release Notes),
    or appended at the end of the document.
    """
    newline = "\r\n" if "\r\n" in content else "\n"
    found = find_slices_section(content)

    if found is not None:
        if parse_slices(content) == slices:
            return content
        start, end = found
        section = render_slices(slices, newline)
        if end < len(content):
            section += newline  # Blank line before the next heading
        logger.debug(f"[SLICES] Replacing section at {start}:{end}")
        return splice(content, start, end, section)

    if not slices:
        return content

    section = render_slices(slices, newline)
    offset = _body_offset(content)
    trailing = find_first_heading(content[offset:], list(trailing_sections), level=SECTION_LEVEL)
    if trailing is not None:
        at = offset + trailing.start
        return splice(content, at, at, section + newline)

    if not content:
        return section
    if not content.endswith(newline):
        content += newline
    if not content.endswith(newline * 2):
        content += newline
    return content + section


# --- Queries and edits ------------------------------------------------------


def find_slice(slices: list[Slice], name: str) -> Slice | None:
    """Slice by name, case-insensitive."""
    for s in slices:
        if s.name.lower() == name.lower():
            return s
    return None


def find_task(slices: list[Slice], task_id: str) -> tuple[Slice, Task] | None:
    for s in slices:
        for t in s.tasks:
            if t.id == task_id:
                return s, t
    return None


def next_task_id(slices: list[Slice], task_id_format: str = "T%03d") -> str:
    """Next sequential task id across all slices."""
    highest = 0
    for s in slices:
        for t in s.tasks:
            match = TASK_NUM_RE.search(t.id)
            if match:
                highest = max(highest, int(match.group(1)))
    return task_id_format % (highest + 1)


def add_slice(slices: list[Slice], name: str) -> Slice:
    name = name.strip()
    if not name:
        raise SliceError("slice name must not be empty")
    if find_slice(slices, name) is not None:
        raise SliceError(f"slice named {name!r} already exists")
    new = Slice(name=name)
    slices.append(new)
    return new


def remove_slice(slices: list[Slice], name: str) -> Slice:
    target = find_slice(slices, name)
    if target is None:
        raise SliceError(f"slice named {name!r} not found")
    slices.remove(target)
    return target


def add_task(
    slices: list[Slice],
    slice_name: str,
    description: str,
    task_id_format: str = "T%03d",
    done: bool = False,
) -> Task:
    target = find_slice(slices, slice_name)
    if target is None:
        raise SliceError(f"slice named {slice_name!r} not found")
    task = Task(id=next_task_id(slices, task_id_format), description=description.strip(), done=done)
    target.tasks.append(task)
    return task


def remove_task(slices: list[Slice], task_id: str) -> Task:
    found = find_task(slices, task_id)
    if found is None:
        raise SliceError(f"task {task_id} not found")
    owner, task = found
    owner.tasks.remove(task)
    return task


def edit_task(slices: list[Slice], task_id: str, description: str) -> Task:
    found = find_task(slices, task_id)
    if found is None:
        raise SliceError(f"task {task_id} not found")
    found[1].description = description.strip()
    return found[1]


def toggle_task(slices: list[Slice], task_id: str) -> Task:
    found = find_task(slices, task_id)
    if found is None:
        raise SliceError(f"task {task_id} not found")
    found[1].done = not found[1].done
    return found[1]


def set_task_notes(slices: list[Slice], task_id: str, notes: str) -> Task:
    found = find_task(slices, task_id)
    if found is None:
        raise SliceError(f"task {task_id} not found")
    found[1].notes = notes.strip()
    return found[1]


def first_slice_with_open_tasks(slices: list[Slice]) -> Slice | None:
    for s in slices:
        if s.open_tasks:
            return s
    return None


def current_task(slices: list[Slice]) -> tuple[Slice, Task] | None:
    """First open task of the first slice that still has open tasks."""
    s = first_slice_with_open_tasks(slices)
    if s is None:
        return None
    return s, s.open_tasks[0]


def progress(slices: list[Slice]) -> tuple[int, int]:
    """(done, total) task counts."""
    tasks = [t for s in slices for t in s.tasks]
    return sum(1 for t in tasks if t.done), len(tasks)


# --- Change detection -------------------------------------------------------


def detect_task_changes(previous: list[Slice] | None, current: list[Slice]) -> TaskChanges:
    """Compare two snapshots by task id.

    With no previous snapshot every current task counts as added. Removed
    tasks are not reported. Results are sorted by task id so task order
    within slices does not matter.
    """
    current_by_id = {t.id: t for s in current for t in s.tasks}
    changes = TaskChanges()

    if previous is None:
        changes.added = list(current_by_id.values())
    else:
        previous_by_id = {t.id: t for s in previous for t in s.tasks}
        for task_id, task in current_by_id.items():
            before = previous_by_id.get(task_id)
            if before is None:
                changes.added.append(task)
            elif task.done and not before.done:
                changes.completed.append(task)
            elif before.done and not task.done:
                changes.reopened.append(task)

    for group in (changes.completed, changes.reopened, changes.added):
        group.sort(key=lambda t: t.id)
    return changes


def format_task_changes(changes: TaskChanges) -> str:
    """One commit-message clause per non-empty change set, or ""."""
    parts = []
    if changes.completed:
        ids = ", ".join(t.id for t in changes.completed)
        descriptions = "; ".join(t.description for t in changes.completed)
        parts.append(f"Complete {ids}: {descriptions}")
    if changes.reopened:
        parts.append(f"Reopen {', '.join(t.id for t in changes.reopened)}")
    if changes.added:
        parts.append(f"Add tasks {', '.join(t.id for t in changes.added)}")
    return "\n".join(parts)


def generate_commit_message(
    previous: list[Slice] | None,
    current: list[Slice],
    item_id: str,
    title: str | None = None,
) -> str:
    """Commit message from task changes, else the current slice, title, or a generic line."""
    message = format_task_changes(detect_task_changes(previous, current))
    if message:
        return message
    s = first_slice_with_open_tasks(current)
    if s is not None:
        return s.name
    if title:
        return title
    return f"Update slices for {item_id}"


# --- Lint -------------------------------------------------------------------


def lint_slices(content: str, file: str, require_section: bool = False) -> list[ValidationFinding]:
    """Check the Slices section for duplicate slice names and task ids."""
    if find_slices_section(content) is None:
        if require_section:
            return [finding(file, Rule.MISSING_SECTION, "Slices section missing")]
        return []

    findings = []
    seen_names: set[str] = set()
    seen_tasks: dict[str, str] = {}  # task id -> slice name
    for s in parse_slices(content):
        if s.name.lower() in seen_names:
            findings.append(finding(file, Rule.DUPLICATE_SLICE_NAME, f"duplicate slice name: {s.name}"))
        seen_names.add(s.name.lower())
        for t in s.tasks:
            if t.id in seen_tasks:
                findings.append(finding(
                    file, Rule.DUPLICATE_TASK_ID,
                    f"task ID {t.id} appears more than once (first seen in slice: {seen_tasks[t.id]})"))
            else:
                seen_tasks[t.id] = s.name
    return findings
