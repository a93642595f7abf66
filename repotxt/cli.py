"""Command-line front door for repotxt.

Opens a repository root, applies any requested override or settings changes,
then prints the report. Changes are persisted per root between runs.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .session import RepoSession
from .tree_builder import ReportCancelled


def _positive_float(value: str) -> float:
    """argparse type for positive float values."""
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be > 0")
    return parsed


def _pattern_list(value: str) -> list[str]:
    """argparse type for comma-separated pattern lists."""
    return [item.strip() for item in value.split(",") if item.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repotxt",
        description="Print a repository's folder structure and visible file contents as one text report.",
    )
    parser.add_argument("path", nargs="?", default=None, help="Repository root. Defaults to current directory.")
    parser.add_argument("--name", default=None, help="Display name used in the report header.")
    parser.add_argument("--subdir", default=None, help="Report only this directory beneath the root.")
    parser.add_argument(
        "--toggle",
        action="append",
        default=[],
        metavar="PATH",
        help="Flip include/exclude for PATH (repeatable; applied as one step).",
    )
    parser.add_argument("--reset", action="store_true", help="Drop all manual include/exclude rules.")
    parser.add_argument("--defaults", action="store_true", help="Restore default patterns and settings.")
    wrap_group = parser.add_mutually_exclusive_group()
    wrap_group.add_argument("--wrap", dest="wrap", action="store_true", default=None, help="Wrap long content lines.")
    wrap_group.add_argument("--no-wrap", dest="wrap", action="store_false", help="Do not wrap content lines.")
    gitignore_group = parser.add_mutually_exclusive_group()
    gitignore_group.add_argument(
        "--gitignore", dest="gitignore", action="store_true", default=None, help="Respect the root .gitignore."
    )
    gitignore_group.add_argument(
        "--no-gitignore", dest="gitignore", action="store_false", help="Ignore the root .gitignore."
    )
    parser.add_argument("--hidden-dirs", type=_pattern_list, default=None, metavar="LIST")
    parser.add_argument("--hidden-files", type=_pattern_list, default=None, metavar="LIST")
    parser.add_argument("--auto-dirs", type=_pattern_list, default=None, metavar="LIST")
    parser.add_argument("--auto-files", type=_pattern_list, default=None, metavar="LIST")
    parser.add_argument("--show-state", action="store_true", help="Print overrides and patterns for the root.")
    parser.add_argument("--no-report", action="store_true", help="Apply changes without printing the report.")
    parser.add_argument("--timeout", type=_positive_float, default=None, help="Abort the report after SECONDS.")
    parser.add_argument("--verbose", action="store_true", help="Log debug messages to stderr.")
    return parser


def format_state(session: RepoSession) -> str:
    """Render overrides, flags, and patterns as plain text."""
    config = session.config
    lines = [
        f"Root: {session.root}",
        f"State file: {session.state_path}",
        f"Wrap long lines: {'on' if session.wrap_long_lines else 'off'}",
        f"Respect .gitignore: {'on' if session.respect_gitignore else 'off'}",
        f"Hidden dirs: {', '.join(config.hidden_dir_names)}",
        f"Hidden files: {', '.join(config.hidden_file_globs)}",
        f"Auto-ignore dirs: {', '.join(config.auto_ignore_dir_names)}",
        f"Auto-ignore files: {', '.join(config.auto_ignore_file_globs)}",
        "Includes:",
    ]
    lines.extend(f"  {path}" for path in session.overrides.includes)
    lines.append("Excludes:")
    lines.extend(f"  {path}" for path in session.overrides.excludes)
    return "\n".join(lines) + "\n"


def _apply_changes(session: RepoSession, args: argparse.Namespace) -> None:
    if args.defaults:
        session.reset_to_defaults()
    elif args.reset:
        session.reset_manual_rules()

    if args.wrap is not None:
        session.wrap_long_lines = args.wrap
    if args.gitignore is not None:
        session.respect_gitignore = args.gitignore

    pattern_args = (args.hidden_dirs, args.hidden_files, args.auto_dirs, args.auto_files)
    if any(value is not None for value in pattern_args):
        config = session.config
        session.update_filtering_patterns(
            args.hidden_dirs if args.hidden_dirs is not None else config.hidden_dir_names,
            args.hidden_files if args.hidden_files is not None else config.hidden_file_globs,
            args.auto_dirs if args.auto_dirs is not None else config.auto_ignore_dir_names,
            args.auto_files if args.auto_files is not None else config.auto_ignore_file_globs,
        )

    if args.toggle:
        root = session.root
        if root is None:
            raise SystemExit("No repository root opened")
        session.toggle_exclude_multiple([root / raw for raw in args.toggle])


def main(argv: list[str] | None = None, session: RepoSession | None = None) -> int:
    """Parse CLI arguments, apply requested changes, and print the report.

    ``session`` is primarily for tests. Returns the process exit status.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    root = Path(args.path) if args.path is not None else Path.cwd()
    if not root.is_dir():
        raise SystemExit(f"Directory not found: {root}")

    session = session if session is not None else RepoSession()
    session.set_root(root, display_name=args.name)
    try:
        _apply_changes(session, args)
        if args.show_state:
            sys.stdout.write(format_state(session))
        if args.no_report:
            return 0
        subroot = root / args.subdir if args.subdir is not None else None
        try:
            report = session.generate_report(subroot=subroot, timeout=args.timeout)
        except ReportCancelled as exc:
            sys.stderr.write(f"repotxt: {exc}\n")
            return 1
        sys.stdout.write(report)
        return 0
    finally:
        session.store.wait()


if __name__ == "__main__":
    sys.exit(main())
