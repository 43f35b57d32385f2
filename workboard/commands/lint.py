"""
workboard lint - Validate every work item and report findings by category.
"""

from workboard.lib.config import WorkboardConfig
from workboard.lib.types import Rule, ValidationFinding
from workboard.workflow.engine import run_lint

CATEGORIES = [
    ("Parse errors", (Rule.PARSE,)),
    ("Field errors", (Rule.MISSING_FIELD, Rule.MISSING_FIELD_DEFAULT, Rule.TYPE, Rule.ENUM,
                      Rule.DATE_FORMAT, Rule.EMAIL_FORMAT, Rule.FORMAT, Rule.RANGE, Rule.UNKNOWN_FIELD)),
    ("Workflow errors", (Rule.WORKFLOW, Rule.TRANSITION, Rule.WIP_LIMIT)),
    ("Duplicate IDs", (Rule.DUPLICATE,)),
    ("Slice errors", (Rule.MISSING_SECTION, Rule.DUPLICATE_TASK_ID, Rule.DUPLICATE_SLICE_NAME)),
]


def group_findings(findings: list[ValidationFinding]) -> list[tuple[str, list[ValidationFinding]]]:
    """Findings grouped by category, keeping their order within each group."""
    groups = []
    for title, rules in CATEGORIES:
        wanted = {r.value for r in rules}
        members = [f for f in findings if f.base_rule in wanted]
        if members:
            groups.append((title, members))
    return groups


def print_findings(findings: list[ValidationFinding]) -> None:
    for title, members in group_findings(findings):
        print(f"{title} ({len(members)}):")
        for f in members:
            print(f"  {f}")
        print()


def cmd_lint(args, config: WorkboardConfig) -> int:
    """Lint the work folder. Returns 1 if anything was found."""
    strict = True if args.strict else None
    findings = run_lint(config, strict=strict, since=args.since)

    if not findings:
        print("No issues found.")
        return 0

    print_findings(findings)
    print(f"{len(findings)} issue(s) found. Run 'workboard doctor' to fix what can be fixed.")
    return 1
