"""
Auto-fix engine.

Applies safe corrections for validation findings to document content and
reports each attempt as a `fixed:<rule>` or `fix-failed:<rule>` finding.

Fix categories run independently: a failure inside one category never stops
the others. Nothing is written to disk here; the caller gets the new content
per path and decides what to persist, then re-validates.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Callable

from workboard.lib.config import ID_FIELD, FieldRule, WorkboardConfig
from workboard.lib.documents import WorkItemDocument
from workboard.lib.frontmatter import decode, update_document
from workboard.lib.schema import is_canonical_date, match_enum
from workboard.lib.types import (
    FIX_FAILED_PREFIX,
    FIXED_PREFIX,
    FixFailure,
    ParseError,
    Rule,
    ValidationFinding,
)

logger = logging.getLogger(__name__)

# Tried in order; the configured format is always tried first
ALTERNATE_DATE_FORMATS = (
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%d %H:%M:%S",
)

TODAY = "today"

DUPLICATE_RULES = (Rule.DUPLICATE,)
DATE_RULES = (Rule.DATE_FORMAT,)
FIELD_RULES = (Rule.MISSING_FIELD_DEFAULT, Rule.ENUM, Rule.EMAIL_FORMAT)


@dataclass
class FixOutcome:
    """Result of one auto-fix run."""
    contents: dict[Path, str] = field(default_factory=dict)  # Only documents that changed
    findings: list[ValidationFinding] = field(default_factory=list)

    @property
    def fixed(self) -> list[ValidationFinding]:
        return [f for f in self.findings if f.is_fixed]

    @property
    def failed(self) -> list[ValidationFinding]:
        return [f for f in self.findings if f.is_fix_failure]


def fixed(path: str | Path, rule: Rule, message: str, field_name: str | None = None) -> ValidationFinding:
    return ValidationFinding(file=str(path), rule=FIXED_PREFIX + rule.value, message=message, field=field_name)


def fix_failed(path: str | Path, rule: Rule, message: str, field_name: str | None = None) -> ValidationFinding:
    return ValidationFinding(file=str(path), rule=FIX_FAILED_PREFIX + rule.value, message=message, field=field_name)


def parse_date_any(text: str, fmt: str) -> date | None:
    """Read a date in the configured format or a recognizable alternate."""
    for candidate in (fmt, *ALTERNATE_DATE_FORMATS):
        try:
            return datetime.strptime(text, candidate).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def canonical_date(text: str, rule: FieldRule) -> str:
    """Canonical form of a date value.

    Raises:
        FixFailure: If text has no recognizable date shape
    """
    parsed = parse_date_any(text.strip(), rule.date_format)
    if parsed is None:
        raise FixFailure(Rule.DATE_FORMAT, f"unrecognized date '{text}'")
    return parsed.strftime(rule.date_format)


def default_value(rule: FieldRule, today: date):
    """Schema default, with `today` resolved for date fields."""
    if rule.type == "date" and str(rule.default).lower() == TODAY:
        return today.strftime(rule.date_format)
    return rule.default


def next_free_id(used: set[str], width: int) -> str:
    """max(numeric ids) + 1, zero-padded to width."""
    numbers = [int(i) for i in used if i.isdigit()]
    return str(max(numbers, default=0) + 1).zfill(width)


class _Fixer:
    """Working copy of the corpus content shared by the fix categories."""

    def __init__(self, corpus: list[WorkItemDocument], config: WorkboardConfig, today: date):
        self.config = config
        self.today = today
        self.docs = {str(doc.path): doc for doc in corpus}
        self.contents = {str(doc.path): doc.content for doc in corpus if doc.parsed}
        self.findings: list[ValidationFinding] = []

    def update(self, path: str, updates: dict) -> None:
        self.contents[path] = update_document(self.contents[path], updates)

    def current(self, path: str, key: str) -> str | None:
        fm, _ = decode(self.contents[path])
        return fm.text(key)

    # --- Duplicate IDs ---

    def duplicates(self, items: list[ValidationFinding]) -> None:
        used = {doc.id for doc in self.docs.values() if doc.id}
        for item in items:
            colliding = [self.docs[p] for p in item.related if p in self.contents]
            # Oldest keeps the id; ties go to the lexically first path
            ordered = sorted(colliding, key=lambda d: (d.mtime, str(d.path)))
            for doc in ordered[1:]:
                path = str(doc.path)
                old_id = self.current(path, ID_FIELD)
                new_id = next_free_id(used, self.config.validation.id_width)
                self.update(path, {ID_FIELD: new_id})
                used.add(new_id)
                logger.info(f"[FIX] {path}: id {old_id} -> {new_id}")
                self.findings.append(fixed(path, Rule.DUPLICATE,
                                           f"reassigned duplicate id {old_id} -> {new_id}", ID_FIELD))

    # --- Dates ---

    def dates(self, items: list[ValidationFinding]) -> None:
        for item in items:
            rule = self.config.fields.get(item.field)
            if item.file not in self.contents or rule is None:
                continue
            text = self.current(item.file, item.field) or ""
            if is_canonical_date(text, rule.date_format):
                continue
            try:
                new_text = canonical_date(text, rule)
            except FixFailure as e:
                self.findings.append(fix_failed(item.file, Rule.DATE_FORMAT,
                                                f"cannot fix {item.field}: {e}", item.field))
                continue
            self.update(item.file, {item.field: new_text})
            logger.info(f"[FIX] {item.file}: {item.field} {text} -> {new_text}")
            self.findings.append(fixed(item.file, Rule.DATE_FORMAT,
                                       f"fixed {item.field} date format: {text} -> {new_text}", item.field))

    # --- Field issues ---

    def fields(self, items: list[ValidationFinding]) -> None:
        for item in items:
            rule = self.config.fields.get(item.field)
            if item.file not in self.contents or rule is None:
                continue
            try:
                message = self._fix_field(item, rule)
            except FixFailure as e:
                self.findings.append(fix_failed(item.file, e.rule, str(e), item.field))
                continue
            if message:
                logger.info(f"[FIX] {item.file}: {message}")
                self.findings.append(fixed(item.file, Rule(item.base_rule), message, item.field))

    def _fix_field(self, item: ValidationFinding, rule: FieldRule) -> str | None:
        name = item.field
        base = Rule(item.base_rule)

        if base == Rule.MISSING_FIELD_DEFAULT:
            fm, _ = decode(self.contents[item.file])
            if fm.get(name) not in (None, "", [], {}):
                return None
            value = default_value(rule, self.today)
            self.update(item.file, {name: value})
            return f"fixed field '{name}': applied default value {value}"

        text = self.current(item.file, name) or ""

        if base == Rule.ENUM:
            canonical = match_enum(text, rule.allowed_values or (), case_sensitive=False)
            if canonical is None:
                raise FixFailure(Rule.ENUM, f"cannot fix {name}: '{text}' matches no allowed value", name)
            if canonical == text:
                return None
            self.update(item.file, {name: canonical})
            return f"fixed field '{name}': normalized '{text}' -> '{canonical}'"

        raise FixFailure(base, f"cannot fix {name}: no safe correction for '{text}'", name)


def apply_fixes(
    corpus: list[WorkItemDocument],
    findings: list[ValidationFinding],
    config: WorkboardConfig,
    today: date | None = None,
) -> FixOutcome:
    """
    Attempt fixes for every fixable finding.

    Args:
        corpus: Documents the findings were produced from
        findings: Validation findings (unfixable rules are ignored)
        config: Provides the field schema and id width
        today: Date used for `today` defaults (defaults to date.today())

    Returns:
        FixOutcome with changed content per path and fixed/fix-failed findings
    """
    fixer = _Fixer(corpus, config, today or date.today())
    categories: list[tuple[str, tuple[Rule, ...], Callable[[list[ValidationFinding]], None]]] = [
        ("duplicate ids", DUPLICATE_RULES, fixer.duplicates),
        ("date formats", DATE_RULES, fixer.dates),
        ("field issues", FIELD_RULES, fixer.fields),
    ]

    for name, rules, fix in categories:
        wanted = {r.value for r in rules}
        items = [f for f in findings if f.rule in wanted]
        if not items:
            continue
        logger.debug(f"[FIX] {name}: {len(items)} finding(s)")
        try:
            fix(items)
        except ParseError as e:
            logger.warning(f"[FIX] {name} aborted: {e}")
            for item in items:
                fixer.findings.append(fix_failed(item.file, Rule(item.rule), f"cannot fix: {e}", item.field))

    outcome = FixOutcome(findings=fixer.findings)
    for path, content in fixer.contents.items():
        if content != fixer.docs[path].content:
            outcome.contents[Path(path)] = content
    return outcome
