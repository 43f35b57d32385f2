"""
Shared data types for workboard.

This module contains the finding type and exception classes used across
the validator, workflow checker, auto-fix engine and slice engine, kept
here to avoid circular imports.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

FIXED_PREFIX = "fixed:"
FIX_FAILED_PREFIX = "fix-failed:"


class Rule(str, Enum):
    """Closed taxonomy of finding rules."""

    # Document-level
    PARSE = "parse"
    MISSING_FIELD = "missing-field"
    MISSING_FIELD_DEFAULT = "missing-field-default"
    TYPE = "type"
    ENUM = "enum"
    DATE_FORMAT = "date-format"
    EMAIL_FORMAT = "email-format"
    FORMAT = "format"
    RANGE = "range"
    UNKNOWN_FIELD = "unknown-field"

    # Corpus-level
    WORKFLOW = "workflow"
    DUPLICATE = "duplicate"
    TRANSITION = "transition"
    WIP_LIMIT = "wip-limit"

    # Slices section
    MISSING_SECTION = "missing-section"
    DUPLICATE_TASK_ID = "duplicate-task-id"
    DUPLICATE_SLICE_NAME = "duplicate-slice-name"


@dataclass(frozen=True)
class ValidationFinding:
    """A reportable, possibly fixable condition in one document.

    `rule` is a Rule value, or a Rule value prefixed with "fixed:" or
    "fix-failed:" when emitted by the auto-fix engine.
    """
    file: str
    rule: str
    message: str
    field: str | None = None  # Metadata field the finding is about
    related: tuple[str, ...] = ()  # Colliding paths for duplicates

    @property
    def base_rule(self) -> str:
        """Rule without any fix prefix."""
        for prefix in (FIXED_PREFIX, FIX_FAILED_PREFIX):
            if self.rule.startswith(prefix):
                return self.rule[len(prefix):]
        return self.rule

    @property
    def is_fixed(self) -> bool:
        return self.rule.startswith(FIXED_PREFIX)

    @property
    def is_fix_failure(self) -> bool:
        return self.rule.startswith(FIX_FAILED_PREFIX)

    def __str__(self) -> str:
        return f"{self.file}: [{self.rule}] {self.message}"


def finding(file: str | Path, rule: Rule, message: str, **kwargs) -> ValidationFinding:
    """Build a finding from a Rule, normalizing the path to a string."""
    return ValidationFinding(file=str(file), rule=rule.value, message=message, **kwargs)


class ParseError(Exception):
    """Frontmatter is missing, unterminated, or not structured key-value data."""

    def __init__(self, message: str, path: str | Path | None = None):
        self.path = str(path) if path is not None else None
        self.reason = message
        super().__init__(message + (f" ({self.path})" if self.path else ""))


class FixFailure(Exception):
    """An attempted auto-fix could not produce a valid value."""

    def __init__(self, rule: Rule, message: str, field: str | None = None):
        self.rule = rule
        self.field = field
        super().__init__(message)
