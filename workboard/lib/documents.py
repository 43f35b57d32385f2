"""
Work item document I/O.

Enumerates the work item corpus, loads documents with their frontmatter
decoded, and writes documents back atomically: content goes to a temp file
in the same directory and is moved over the original with os.replace, so a
failed write leaves the original untouched.
"""

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from workboard.lib.config import ID_FIELD, STATUS_FIELD, WorkboardConfig
from workboard.lib.frontmatter import Frontmatter, decode
from workboard.lib.types import ParseError

logger = logging.getLogger(__name__)


@dataclass
class WorkItemDocument:
    """One work item file as read from disk."""
    path: Path
    content: str
    mtime: float
    folder: str  # First directory under the work folder ("" for top-level files)
    frontmatter: Frontmatter | None = None
    body: str = ""
    error: ParseError | None = None

    @property
    def id(self) -> str | None:
        return self.frontmatter.text(ID_FIELD) if self.frontmatter else None

    @property
    def status(self) -> str | None:
        return self.frontmatter.text(STATUS_FIELD) if self.frontmatter else None

    @property
    def parsed(self) -> bool:
        return self.frontmatter is not None


def read_text(path: Path) -> str:
    """Read a document without newline translation."""
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def write_document(path: Path, content: str) -> None:
    """Atomically replace path with content.

    Raises:
        OSError: If the write fails; the original file is left as it was
    """
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        if path.exists():
            shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def ensure_within(path: Path, work_dir: Path) -> Path:
    """Resolve path and refuse anything outside the work folder."""
    resolved = path.resolve()
    base = work_dir.resolve()
    if resolved != base and base not in resolved.parents:
        raise ValueError(f"path outside work folder: {path}")
    return resolved


def list_work_item_files(work_dir: Path) -> list[Path]:
    """All work item markdown files, sorted. Templates and IDEAS.md are skipped."""
    if not work_dir.exists():
        return []
    files = []
    for path in work_dir.rglob("*.md"):
        if not path.is_file():
            continue
        if "template" in str(path.relative_to(work_dir)) or path.name == "IDEAS.md":
            continue
        files.append(path)
    return sorted(files)


def folder_of(path: Path, work_dir: Path) -> str:
    relative = path.relative_to(work_dir)
    return relative.parts[0] if len(relative.parts) > 1 else ""


def load_document(path: Path, work_dir: Path) -> WorkItemDocument:
    """Read and decode one document. Parse and read failures are recorded, not raised."""
    folder = folder_of(path, work_dir)
    try:
        ensure_within(path, work_dir)
        content = read_text(path)
        mtime = path.stat().st_mtime
    except (OSError, ValueError, UnicodeDecodeError) as e:
        logger.warning(f"[CORPUS] Cannot read {path}: {e}")
        return WorkItemDocument(path=path, content="", mtime=0.0, folder=folder,
                                error=ParseError(f"failed to read file: {e}", path))

    doc = WorkItemDocument(path=path, content=content, mtime=mtime, folder=folder)
    try:
        doc.frontmatter, doc.body = decode(content)
    except ParseError as e:
        doc.error = ParseError(e.reason, path)
    return doc


def load_corpus(config: WorkboardConfig) -> list[WorkItemDocument]:
    """Load every work item under the work folder, in scan order."""
    work_dir = config.work_dir
    documents = [load_document(path, work_dir) for path in list_work_item_files(work_dir)]
    logger.debug(f"[CORPUS] Loaded {len(documents)} document(s) from {work_dir}")
    return documents


def find_work_item(config: WorkboardConfig, item_id: str) -> WorkItemDocument | None:
    """Find a document by id, falling back to an `<id>-` filename prefix."""
    for doc in load_corpus(config):
        if doc.id == item_id or (doc.id is None and doc.path.name.startswith(f"{item_id}-")):
            return doc
    return None
