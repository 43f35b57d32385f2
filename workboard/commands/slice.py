"""
workboard slice - Show, lint and edit a work item's Slices section.

Edits rewrite only the Slices section. With --commit the change is committed
with a message generated from the task changes.
"""

from workboard.git.commit import commit_files
from workboard.git.show import show_file_at_ref
from workboard.lib.config import TITLE_FIELD, WorkboardConfig
from workboard.lib.documents import WorkItemDocument, find_work_item, write_document
from workboard.lib.slices import (
    Slice,
    SliceError,
    add_slice,
    add_task,
    current_task,
    edit_task,
    generate_commit_message,
    lint_slices,
    parse_slices,
    progress,
    remove_slice,
    remove_task,
    set_task_notes,
    toggle_task,
    write_slices,
)


def _load(args, config: WorkboardConfig) -> WorkItemDocument | None:
    doc = find_work_item(config, args.id)
    if doc is None:
        print(f"ERROR: Work item '{args.id}' not found")
        return None
    if doc.error is not None:
        print(f"ERROR: Cannot parse {doc.path}: {doc.error.reason}")
        return None
    return doc


def _relative(doc: WorkItemDocument, config: WorkboardConfig) -> str:
    return doc.path.resolve().relative_to(config.root.resolve()).as_posix()


def _save(args, config: WorkboardConfig, doc: WorkItemDocument, slices: list[Slice]) -> int:
    """Write the new slices back and optionally commit."""
    previous = parse_slices(doc.content)
    new_content = write_slices(doc.content, slices, config.slices.trailing_sections)
    if new_content == doc.content:
        print("No changes.")
        return 0
    try:
        write_document(doc.path, new_content)
    except OSError as e:
        print(f"ERROR: Could not write {doc.path}: {e}")
        return 1
    print(f"Updated {doc.path}")

    if getattr(args, "commit", False):
        title = doc.frontmatter.text(TITLE_FIELD)
        message = generate_commit_message(previous, slices, doc.id or args.id, title)
        result = commit_files(config.root, [_relative(doc, config)], message)
        if not result.success:
            print(f"ERROR: Commit failed: {result.stderr.strip()}")
            return 1
        print(f"Committed: {message.splitlines()[0]}")
    return 0


def cmd_slice_show(args, config: WorkboardConfig) -> int:
    doc = _load(args, config)
    if doc is None:
        return 2

    slices = parse_slices(doc.content)
    if not slices:
        print(f"{doc.id}: no slices")
        return 0

    done, total = progress(slices)
    current = current_task(slices)
    print(f"{doc.id}: {done}/{total} tasks done")
    for s in slices:
        print()
        print(f"{s.name}")
        if s.commit_summary:
            print(f"  Commit: {s.commit_summary}")
        for t in s.tasks:
            marker = "[x]" if t.done else "[ ]"
            arrow = "  <-- NEXT" if current and current[1] is t else ""
            print(f"  {marker} {t.id}: {t.description}{arrow}")
            if t.notes:
                print(f"        Notes: {t.notes}")
    return 0


def cmd_slice_lint(args, config: WorkboardConfig) -> int:
    doc = _load(args, config)
    if doc is None:
        return 2

    required = doc.status in config.slices.required_statuses
    findings = lint_slices(doc.content, str(doc.path), require_section=required)
    if not findings:
        print("No slice issues found.")
        return 0
    for f in findings:
        print(f"  {f}")
    return 1


def cmd_slice_edit(args, config: WorkboardConfig) -> int:
    """Dispatch add/remove/task-* edits."""
    doc = _load(args, config)
    if doc is None:
        return 2

    slices = parse_slices(doc.content)
    try:
        if args.slice_cmd == "add":
            add_slice(slices, args.name)
        elif args.slice_cmd == "remove":
            remove_slice(slices, args.name)
        elif args.slice_cmd == "task-add":
            done = config.slices.default_state == "done"
            task = add_task(slices, args.slice, args.description, config.slices.task_id_format, done=done)
            if args.notes:
                set_task_notes(slices, task.id, args.notes)
            print(f"Added {task.id} to {args.slice}")
        elif args.slice_cmd == "task-remove":
            remove_task(slices, args.task_id)
        elif args.slice_cmd == "task-toggle":
            task = toggle_task(slices, args.task_id)
            print(f"{task.id}: {'done' if task.done else 'open'}")
        elif args.slice_cmd == "task-edit":
            if args.description:
                edit_task(slices, args.task_id, args.description)
            if args.notes is not None:
                set_task_notes(slices, args.task_id, args.notes)
    except SliceError as e:
        print(f"ERROR: {e}")
        return 1

    return _save(args, config, doc, slices)


def cmd_slice_commit_message(args, config: WorkboardConfig) -> int:
    """Print the commit message for the working copy vs. a git ref."""
    doc = _load(args, config)
    if doc is None:
        return 2

    previous_content = show_file_at_ref(config.root, _relative(doc, config), args.ref)
    previous = parse_slices(previous_content) if previous_content is not None else None
    current = parse_slices(doc.content)
    print(generate_commit_message(previous, current, doc.id or args.id, doc.frontmatter.text(TITLE_FIELD)))
    return 0
