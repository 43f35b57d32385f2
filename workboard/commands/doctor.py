"""
workboard doctor - Fix what can be fixed, then report what is left.
"""

from workboard.commands.lint import print_findings
from workboard.lib.config import WorkboardConfig
from workboard.workflow.engine import run_doctor


def cmd_doctor(args, config: WorkboardConfig) -> int:
    strict = True if args.strict else None
    try:
        report = run_doctor(config, strict=strict, dry_run=args.dry_run)
    except OSError as e:
        print(f"ERROR: Could not write fixes: {e}")
        return 1

    if not report.initial:
        print("No issues found.")
        return 0

    fixed = report.outcome.fixed
    failed = report.outcome.failed

    if fixed:
        verb = "Would fix" if args.dry_run else "Fixed"
        print(f"{verb} ({len(fixed)}):")
        for f in fixed:
            print(f"  {f}")
        print()

    if failed:
        print(f"Could not fix ({len(failed)}):")
        for f in failed:
            print(f"  {f}")
        print()

    if report.remaining:
        print("Remaining issues:")
        print()
        print_findings(report.remaining)

    if report.written:
        print(f"Updated {len(report.written)} file(s).")

    return 0 if report.clean else 1
