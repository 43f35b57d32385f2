#!/usr/bin/env python3
"""workboard CLI entrypoint."""

import sys
import argparse
import logging
from pathlib import Path

from workboard.lib.config import load_config
from workboard.lib.validate import ConfigError
from workboard.commands import lint as cmd_lint_module
from workboard.commands import doctor as cmd_doctor_module
from workboard.commands import slice as cmd_slice_module


def get_config(args):
    """Load workboard.yml from --root, exiting with 2 on a bad config."""
    try:
        return load_config(Path(args.root))
    except ConfigError as e:
        print(f"ERROR: {e}")
        sys.exit(2)


def cmd_lint(args):
    return cmd_lint_module.cmd_lint(args, get_config(args))


def cmd_doctor(args):
    return cmd_doctor_module.cmd_doctor(args, get_config(args))


def cmd_slice_show(args):
    return cmd_slice_module.cmd_slice_show(args, get_config(args))


def cmd_slice_lint(args):
    return cmd_slice_module.cmd_slice_lint(args, get_config(args))


def cmd_slice_edit(args):
    return cmd_slice_module.cmd_slice_edit(args, get_config(args))


def cmd_slice_commit_message(args):
    return cmd_slice_module.cmd_slice_commit_message(args, get_config(args))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='workboard', description='Work item validation and slice tracking')
    parser.add_argument('--root', '-C', default='.', help='Repository root (default: current directory)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # workboard lint
    p_lint = subparsers.add_parser('lint', help='Validate all work items')
    p_lint.add_argument('--strict', action='store_true', help='Flag fields not declared in the configuration')
    p_lint.add_argument('--since', metavar='REF', help='Check status transitions against a git ref (e.g. HEAD)')
    p_lint.set_defaults(func=cmd_lint)

    # workboard doctor
    p_doctor = subparsers.add_parser('doctor', help='Fix duplicate IDs, dates and field issues')
    p_doctor.add_argument('--strict', action='store_true', help='Flag fields not declared in the configuration')
    p_doctor.add_argument('--dry-run', action='store_true', help='Report fixes without writing files')
    p_doctor.set_defaults(func=cmd_doctor)

    # workboard slice
    p_slice = subparsers.add_parser('slice', help='Show and edit the Slices section of a work item')
    slice_sub = p_slice.add_subparsers(dest='slice_cmd', required=True)

    # workboard slice show
    p_show = slice_sub.add_parser('show', help='Show slices and task progress')
    p_show.add_argument('id', help='Work item ID')
    p_show.set_defaults(func=cmd_slice_show)

    # workboard slice lint
    p_slint = slice_sub.add_parser('lint', help='Check for duplicate slice names and task IDs')
    p_slint.add_argument('id', help='Work item ID')
    p_slint.set_defaults(func=cmd_slice_lint)

    # workboard slice add / remove
    p_add = slice_sub.add_parser('add', help='Add a slice')
    p_add.add_argument('id', help='Work item ID')
    p_add.add_argument('name', help='Slice name')
    p_add.add_argument('--commit', action='store_true', help='Commit the change')
    p_add.set_defaults(func=cmd_slice_edit)

    p_remove = slice_sub.add_parser('remove', help='Remove a slice and its tasks')
    p_remove.add_argument('id', help='Work item ID')
    p_remove.add_argument('name', help='Slice name')
    p_remove.add_argument('--commit', action='store_true', help='Commit the change')
    p_remove.set_defaults(func=cmd_slice_edit)

    # workboard slice task-*
    p_tadd = slice_sub.add_parser('task-add', help='Add a task to a slice')
    p_tadd.add_argument('id', help='Work item ID')
    p_tadd.add_argument('slice', help='Slice name')
    p_tadd.add_argument('description', help='Task description')
    p_tadd.add_argument('--notes', help='Task notes')
    p_tadd.add_argument('--commit', action='store_true', help='Commit the change')
    p_tadd.set_defaults(func=cmd_slice_edit)

    p_tremove = slice_sub.add_parser('task-remove', help='Remove a task')
    p_tremove.add_argument('id', help='Work item ID')
    p_tremove.add_argument('task_id', help='Task ID (e.g. T001)')
    p_tremove.add_argument('--commit', action='store_true', help='Commit the change')
    p_tremove.set_defaults(func=cmd_slice_edit)

    p_ttoggle = slice_sub.add_parser('task-toggle', help='Toggle a task between open and done')
    p_ttoggle.add_argument('id', help='Work item ID')
    p_ttoggle.add_argument('task_id', help='Task ID (e.g. T001)')
    p_ttoggle.add_argument('--commit', action='store_true', help='Commit the change')
    p_ttoggle.set_defaults(func=cmd_slice_edit)

    p_tedit = slice_sub.add_parser('task-edit', help='Change a task description or notes')
    p_tedit.add_argument('id', help='Work item ID')
    p_tedit.add_argument('task_id', help='Task ID (e.g. T001)')
    p_tedit.add_argument('description', nargs='?', help='New description')
    p_tedit.add_argument('--notes', help='New notes ("" clears them)')
    p_tedit.add_argument('--commit', action='store_true', help='Commit the change')
    p_tedit.set_defaults(func=cmd_slice_edit)

    # workboard slice commit-message
    p_msg = slice_sub.add_parser('commit-message', help='Print a commit message for slice changes')
    p_msg.add_argument('id', help='Work item ID')
    p_msg.add_argument('--ref', default='HEAD', help='Git ref to compare against (default: HEAD)')
    p_msg.set_defaults(func=cmd_slice_commit_message)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
