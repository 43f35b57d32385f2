"""
Corpus-level workflow checks.

These run after every document has been loaded; none of them can be
evaluated one document at a time.
"""

import logging
from collections import defaultdict

from workboard.lib.config import ID_FIELD, STATUS_FIELD, WorkboardConfig
from workboard.lib.documents import WorkItemDocument
from workboard.lib.types import Rule, ValidationFinding, finding
from workboard.workflow.fsm import InvalidTransition, StatusMachine

logger = logging.getLogger(__name__)


def check_workflow_status(corpus: list[WorkItemDocument], config: WorkboardConfig) -> list[ValidationFinding]:
    """Status must equal the canonical status of the containing folder.

    Documents in folders that map to no status, or without a status value,
    are not checked here.
    """
    findings = []
    for doc in corpus:
        if not doc.parsed or not doc.status:
            continue
        expected = config.status_for_folder(doc.folder)
        if expected is None:
            continue
        if doc.status != expected:
            findings.append(finding(
                doc.path, Rule.WORKFLOW,
                f"status '{doc.status}' does not match folder '{doc.folder}' (expected '{expected}')",
                field=STATUS_FIELD))
    return findings


def group_by_id(corpus: list[WorkItemDocument]) -> dict[str, list[WorkItemDocument]]:
    """Documents grouped by id, groups in order of first appearance."""
    groups: dict[str, list[WorkItemDocument]] = defaultdict(list)
    for doc in corpus:
        if doc.parsed and doc.id:
            groups[doc.id].append(doc)
    return groups


def check_duplicate_ids(corpus: list[WorkItemDocument]) -> list[ValidationFinding]:
    """One finding per duplicated id, listing every colliding path."""
    findings = []
    for item_id, docs in group_by_id(corpus).items():
        if len(docs) < 2:
            continue
        paths = tuple(str(d.path) for d in docs)
        findings.append(finding(
            paths[0], Rule.DUPLICATE,
            f"duplicate id '{item_id}' in {len(paths)} files: {', '.join(paths)}",
            field=ID_FIELD, related=paths))
    return findings


def check_wip_limit(corpus: list[WorkItemDocument], config: WorkboardConfig) -> list[ValidationFinding]:
    """At most `max_doing` documents in the doing folder (0 disables)."""
    limit = config.validation.max_doing
    doing_folder = config.folder_for_status("doing")
    if not limit or doing_folder is None:
        return []
    in_doing = [doc for doc in corpus if doc.folder == doing_folder]
    if len(in_doing) <= limit:
        return []
    paths = tuple(str(d.path) for d in in_doing)
    return [finding(
        config.work_dir / doing_folder, Rule.WIP_LIMIT,
        f"{len(in_doing)} work items in {doing_folder} (limit {limit})",
        related=paths)]


def check_transitions(
    previous_statuses: dict[str, str],
    corpus: list[WorkItemDocument],
    config: WorkboardConfig,
) -> list[ValidationFinding]:
    """Status changes since a previous snapshot must follow the transition graph.

    Args:
        previous_statuses: Work item id -> status in the previous snapshot
        corpus: Current documents
        config: Provides the transition graph
    """
    findings = []
    for doc in corpus:
        before = previous_statuses.get(doc.id) if doc.id else None
        if before is None or not doc.status or before == doc.status:
            continue
        allowed: list[str] = []
        try:
            machine = StatusMachine(config, before, item_id=doc.id or "")
            allowed = machine.available()
            machine.move(doc.status)
        except InvalidTransition as e:
            logger.debug(f"[WORKFLOW] {doc.path}: {e}")
            findings.append(finding(
                doc.path, Rule.TRANSITION,
                f"status changed from '{before}' to '{doc.status}', which is not an allowed transition"
                f" (allowed: {', '.join(allowed) or 'none'})",
                field=STATUS_FIELD))
    return findings
