"""
Schema validator for work item metadata.

Checks a decoded metadata mapping against a FieldSchema and returns findings
in field-declaration order. Validation is pure: nothing is mutated.
"""

import logging
import re
from datetime import datetime
from typing import Any, Mapping

from workboard.lib.config import FieldRule, FieldSchema
from workboard.lib.frontmatter import Frontmatter, format_scalar
from workboard.lib.types import Rule, ValidationFinding, finding

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r'^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$')


def is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value))


def is_canonical_date(text: str, fmt: str) -> bool:
    """True if text parses with fmt and formats back to the same text."""
    try:
        parsed = datetime.strptime(text, fmt)
    except ValueError:
        return False
    return parsed.strftime(fmt) == text


def value_text(meta: Frontmatter | Mapping[str, Any], key: str) -> str | None:
    """Textual form of a scalar value, preferring the original document text."""
    if isinstance(meta, Frontmatter):
        return meta.text(key)
    value = meta.get(key)
    if value is None or isinstance(value, (list, dict)):
        return None
    if isinstance(value, str):
        return value
    return format_scalar(value)


def match_enum(text: str, allowed: tuple[str, ...], case_sensitive: bool = True) -> str | None:
    """Allowed value matching text, or None."""
    for candidate in allowed:
        if text == candidate or (not case_sensitive and text.lower() == candidate.lower()):
            return candidate
    return None


def validate_metadata(
    meta: Frontmatter | Mapping[str, Any],
    schema: FieldSchema,
    file: str,
    strict: bool = False,
) -> list[ValidationFinding]:
    """
    Validate metadata against the field schema.

    Args:
        meta: Decoded frontmatter (or any mapping of field -> value)
        schema: Ordered field name -> FieldRule mapping
        file: Path reported on findings
        strict: Also flag keys not declared in the schema

    Returns:
        Findings in schema declaration order, unknown fields last
    """
    findings = []

    for name, rule in schema.items():
        value = meta.get(name)
        if name not in meta or is_empty(value):
            if rule.required:
                if rule.has_default:
                    findings.append(finding(
                        file, Rule.MISSING_FIELD_DEFAULT,
                        f"missing required field: {name} (default available)", field=name))
                else:
                    findings.append(finding(
                        file, Rule.MISSING_FIELD, f"missing required field: {name}", field=name))
            continue

        problem = check_field(name, value, value_text(meta, name), rule, file)
        if problem is not None:
            logger.debug(f"[SCHEMA] {file}: {problem.message}")
            findings.append(problem)

    if strict:
        for key in meta:
            if key not in schema:
                findings.append(finding(
                    file, Rule.UNKNOWN_FIELD,
                    f"unknown field '{key}' (not in configuration)", field=key))

    return findings


def check_field(
    name: str,
    value: Any,
    text: str | None,
    rule: FieldRule,
    file: str,
) -> ValidationFinding | None:
    """Check one present, non-empty value. Returns the first problem found."""
    if isinstance(value, (list, dict)) or text is None:
        return finding(file, Rule.TYPE,
                       f"field '{name}': expected {rule.type}, got {type(value).__name__}", field=name)

    if rule.type == "number":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return finding(file, Rule.TYPE,
                           f"field '{name}': expected number, got '{text}'", field=name)
        return _check_range(name, float(value), rule, file, "value")

    if rule.type == "date":
        if not is_canonical_date(text, rule.date_format):
            return finding(file, Rule.DATE_FORMAT,
                           f"invalid {name} date format: {text} (expected {rule.date_format})",
                           field=name)
        return None

    if rule.type == "email":
        if not is_valid_email(text):
            return finding(file, Rule.EMAIL_FORMAT, f"invalid email format for '{name}': {text}",
                           field=name)
        return None

    if rule.type == "enum":
        allowed = rule.allowed_values or ()
        if match_enum(text, allowed, rule.case_sensitive) is None:
            return finding(file, Rule.ENUM,
                           f"field '{name}': value '{text}' is not in allowed values: "
                           f"{', '.join(allowed)}", field=name)
        return None

    # string
    if rule.format:
        try:
            matched = re.search(rule.format, text)
        except re.error as e:
            return finding(file, Rule.FORMAT, f"field '{name}': invalid format pattern: {e}",
                           field=name)
        if not matched:
            return finding(file, Rule.FORMAT,
                           f"field '{name}': value '{text}' does not match format: {rule.format}",
                           field=name)
    return _check_range(name, len(text), rule, file, "length")


def _check_range(name: str, measure: float, rule: FieldRule, file: str, what: str) -> ValidationFinding | None:
    low, high = (rule.min, rule.max) if what == "value" else (rule.min_length, rule.max_length)
    if low is not None and measure < low:
        return finding(file, Rule.RANGE, f"field '{name}': {what} {measure:g} is less than {low:g}",
                       field=name)
    if high is not None and measure > high:
        return finding(file, Rule.RANGE, f"field '{name}': {what} {measure:g} is greater than {high:g}",
                       field=name)
    return None
