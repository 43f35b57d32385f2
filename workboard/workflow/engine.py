"""
Validation pipeline for the work item corpus.

Two phases: every document is loaded and checked on its own first, then the
corpus-level checks run over the complete set. Finding order is stable:
per-document findings in scan order, then workflow mismatches, the WIP limit,
duplicate ids and status transitions.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date

from workboard.git.show import list_files_at_ref, show_file_at_ref
from workboard.lib.config import ID_FIELD, STATUS_FIELD, WorkboardConfig
from workboard.lib.documents import WorkItemDocument, load_corpus, write_document
from workboard.lib.frontmatter import decode
from workboard.lib.schema import validate_metadata
from workboard.lib.slices import lint_slices
from workboard.lib.types import ParseError, Rule, ValidationFinding, finding
from workboard.workflow.autofix import FixOutcome, apply_fixes
from workboard.workflow.checks import (
    check_duplicate_ids,
    check_transitions,
    check_wip_limit,
    check_workflow_status,
)

logger = logging.getLogger(__name__)


@dataclass
class DoctorReport:
    """What a doctor run found, fixed, and left behind."""
    initial: list[ValidationFinding] = field(default_factory=list)
    outcome: FixOutcome = field(default_factory=FixOutcome)
    remaining: list[ValidationFinding] = field(default_factory=list)
    written: list[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.remaining and not self.outcome.failed


def validate_document(doc: WorkItemDocument, config: WorkboardConfig, strict: bool = False) -> list[ValidationFinding]:
    """Checks that need only this one document."""
    if doc.error is not None:
        return [finding(doc.path, Rule.PARSE, doc.error.reason)]

    findings = validate_metadata(doc.frontmatter, config.fields, str(doc.path), strict=strict)
    required = doc.status in config.slices.required_statuses
    findings.extend(lint_slices(doc.content, str(doc.path), require_section=required))
    return findings


def validate_corpus(
    corpus: list[WorkItemDocument],
    config: WorkboardConfig,
    strict: bool | None = None,
    previous_statuses: dict[str, str] | None = None,
) -> list[ValidationFinding]:
    """
    Validate every document, then the corpus as a whole.

    Args:
        corpus: All documents, in scan order
        config: Workboard configuration
        strict: Flag unknown fields (None uses validation.strict)
        previous_statuses: Work item id -> earlier status, enables the transition check
    """
    if strict is None:
        strict = config.validation.strict

    findings = []
    for doc in corpus:
        findings.extend(validate_document(doc, config, strict))

    findings.extend(check_workflow_status(corpus, config))
    findings.extend(check_wip_limit(corpus, config))
    findings.extend(check_duplicate_ids(corpus))
    if previous_statuses:
        findings.extend(check_transitions(previous_statuses, corpus, config))

    logger.debug(f"[WORKFLOW] {len(corpus)} document(s), {len(findings)} finding(s)")
    return findings


def previous_statuses_at_ref(config: WorkboardConfig, ref: str = "HEAD") -> dict[str, str]:
    """Work item id -> status as committed at ref. Empty outside a git repository."""
    statuses: dict[str, str] = {}
    for path in list_files_at_ref(config.root, config.work_folder, ref):
        if not path.endswith(".md"):
            continue
        content = show_file_at_ref(config.root, path, ref)
        if content is None:
            continue
        try:
            fm, _ = decode(content)
        except ParseError:
            continue
        item_id, status = fm.text(ID_FIELD), fm.text(STATUS_FIELD)
        if item_id and status:
            statuses[item_id] = status
    return statuses


def run_lint(
    config: WorkboardConfig,
    strict: bool | None = None,
    since: str | None = None,
) -> list[ValidationFinding]:
    """Load the corpus and validate it. `since` names a git ref for the transition check."""
    corpus = load_corpus(config)
    previous = previous_statuses_at_ref(config, since) if since else None
    return validate_corpus(corpus, config, strict=strict, previous_statuses=previous)


def run_doctor(
    config: WorkboardConfig,
    strict: bool | None = None,
    dry_run: bool = False,
    today: date | None = None,
) -> DoctorReport:
    """
    Validate, apply fixes, write changed documents, and validate again.

    Raises:
        OSError: If writing a fixed document fails; already-written
            documents keep their fixes and the failing one is untouched
    """
    corpus = load_corpus(config)
    report = DoctorReport(initial=validate_corpus(corpus, config, strict=strict))
    report.outcome = apply_fixes(corpus, report.initial, config, today=today)

    if dry_run:
        patched = _apply_in_memory(corpus, report.outcome.contents)
        report.remaining = validate_corpus(patched, config, strict=strict)
        return report

    for path, content in report.outcome.contents.items():
        write_document(path, content)
        report.written.append(str(path))
        logger.info(f"[FIX] Wrote {path}")

    report.remaining = validate_corpus(load_corpus(config), config, strict=strict)
    return report


def _apply_in_memory(corpus: list[WorkItemDocument], contents: dict) -> list[WorkItemDocument]:
    """Corpus as it would look with the fixed contents written."""
    patched = []
    for doc in corpus:
        content = contents.get(doc.path)
        if content is None:
            patched.append(doc)
            continue
        fm, body = decode(content)
        patched.append(replace(doc, content=content, frontmatter=fm, body=body))
    return patched
