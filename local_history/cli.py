"""
Command-line interface for Local History.

This module contains the argument parser and command handlers
for the CLI application.
"""

import argparse
import json
import logging
import os
import sys
from typing import Optional

from .compare import HistoryComparer
from .config import Configuration, Workspace
from .errors import LocalHistoryError
from .host import ConsoleHost
from .settings import SettingsResolver
from .store import HistoryStore
from .utils import format_timestamp, parse_timestamp, truncate_path


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="local-history",
        description="Keep timestamped revisions of files in a local history store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Save a revision after editing a file
  %(prog)s -w ~/src/app save ~/src/app/main.py

  # List the revisions of a file
  %(prog)s -w ~/src/app list ~/src/app/main.py

  # Search every revision of the project
  %(prog)s -w ~/src/app search "**/*.py" --all

  # Compare the last revision with the current file
  %(prog)s -w ~/src/app compare-previous ~/src/app/main.py

  # Restore a revision
  %(prog)s -w ~/src/app restore ~/src/app/.history/main_20250627143000.py --file ~/src/app/main.py

Settings are read from a JSON file with "local-history.*" keys:
  enabled (0 never, 1 always, 2 workspace only), exclude, path,
  absolute, daysLimit, saveDelay, maxDisplay, dateLocale
""",
    )

    # Global arguments
    parser.add_argument(
        "-w", "--workspace",
        action="append",
        default=[],
        metavar="[NAME=]PATH",
        help="Workspace root folder, may be repeated (default: current directory)",
    )
    parser.add_argument(
        "-c", "--settings",
        default=None,
        help="Path to a JSON settings file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    _add_save_parser(subparsers)
    _add_list_parser(subparsers)
    _add_search_parser(subparsers)
    _add_restore_parser(subparsers)
    _add_compare_parsers(subparsers)
    _add_delete_parsers(subparsers)
    _add_file_parser(subparsers, "purge", "Delete revisions older than daysLimit")
    _add_file_parser(subparsers, "settings", "Show the settings resolved for a file")

    return parser


def _add_file_parser(subparsers, name: str, help_text: str) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(name, help=help_text)
    parser.add_argument("file", help="File path")
    return parser


def _add_save_parser(subparsers) -> None:
    """Add the 'save' subcommand parser."""
    parser = _add_file_parser(subparsers, "save", "Save a revision of a file")
    parser.add_argument(
        "--first",
        action="store_true",
        help="Only save if the file has no history yet (run before overwriting)",
    )


def _add_list_parser(subparsers) -> None:
    """Add the 'list' subcommand parser."""
    parser = _add_file_parser(subparsers, "list", "List the revisions of a file")
    parser.add_argument(
        "-a", "--all",
        action="store_true",
        help="List every revision instead of maxDisplay",
    )
    parser.add_argument(
        "--at",
        default=None,
        help="Only show the revision current at this time (2025-06-27T14:30:00, 2025-06-27)",
    )
    parser.add_argument(
        "-j", "--json",
        action="store_true",
        help="Output as JSON",
    )


def _add_search_parser(subparsers) -> None:
    """Add the 'search' subcommand parser."""
    parser = subparsers.add_parser(
        "search",
        help="Search a history store with a glob pattern",
    )
    parser.add_argument(
        "pattern",
        help="Glob relative to the store root, e.g. **/*.py",
    )
    parser.add_argument(
        "-f", "--file",
        default=None,
        help="File whose store to search (default: current directory)",
    )
    parser.add_argument(
        "-a", "--all",
        action="store_true",
        help="List every match instead of maxDisplay",
    )
    parser.add_argument(
        "-j", "--json",
        action="store_true",
        help="Output as JSON",
    )


def _add_restore_parser(subparsers) -> None:
    """Add the 'restore' subcommand parser."""
    parser = subparsers.add_parser(
        "restore",
        help="Overwrite a file with one of its revisions",
    )
    parser.add_argument("revision", help="Revision file")
    parser.add_argument(
        "-f", "--file",
        required=True,
        help="Live file to overwrite",
    )


def _add_compare_parsers(subparsers) -> None:
    """Add the 'diff' and 'compare-previous' subcommand parsers."""
    parser = subparsers.add_parser("diff", help="Compare two files")
    parser.add_argument("left", help="First file")
    parser.add_argument("right", help="Second file")

    _add_file_parser(subparsers, "compare-previous", "Compare a file with its latest revision")


def _add_delete_parsers(subparsers) -> None:
    """Add the 'delete' and 'delete-all' subcommand parsers."""
    parser = subparsers.add_parser("delete", help="Delete revisions")
    parser.add_argument("revisions", nargs="+", help="Revision files")

    parser = _add_file_parser(subparsers, "delete-all", "Delete the whole history store of a file")
    parser.add_argument(
        "-y", "--yes",
        action="store_true",
        help="Do not ask for confirmation",
    )


# Command handlers

def cmd_save(store: HistoryStore, args) -> int:
    """Handle the 'save' command."""
    if args.first:
        revision = store.save_first_revision(args.file)
    else:
        revision = store.save(args.file)
        store.flush()

    if revision is None:
        print(f"Not saved: {args.file}")
        return 0

    print(f"✓ Saved revision: {revision}")
    return 0


def cmd_list(store: HistoryStore, args) -> int:
    """Handle the 'list' command."""
    history = store.find_all(args.file, no_limit=args.all or bool(args.at))

    if history is None:
        print(f"History is disabled for: {args.file}")
        return 1

    revisions = history.revisions
    if args.at:
        try:
            moment = parse_timestamp(args.at)
        except ValueError as e:
            print(f"✗ Error: {e}")
            return 1
        revision = history.get_revision_at(moment)
        revisions = [revision] if revision else []

    if args.json:
        data = history.to_dict()
        data["revisions"] = [r.to_dict() for r in revisions]
        print(json.dumps(data, indent=2))
        return 0

    if not revisions:
        print(f"No history for: {args.file}")
        return 0

    print(f"File: {history.current.path}")
    print(f"History: {history.settings.history_path}")
    print(f"\nRevisions ({len(revisions)}):\n")
    for i, revision in enumerate(revisions):
        print(f"  [{i}] {format_timestamp(revision.timestamp)} - {revision.path.name}")

    return 0


def cmd_search(store: HistoryStore, args) -> int:
    """Handle the 'search' command."""
    settings = store.get_settings(args.file or os.getcwd())
    if not settings.enabled:
        print("History is disabled here.")
        return 1

    revisions = store.find_global_history(args.pattern, settings, no_limit=args.all)

    if args.json:
        print(json.dumps([r.to_dict() for r in revisions], indent=2))
        return 0

    if not revisions:
        print(f"No revisions matching: {args.pattern}")
        return 0

    print(f"Found {len(revisions)} revisions:\n")
    for revision in revisions:
        relative = os.path.relpath(revision.path, settings.history_path)
        print(f"  {format_timestamp(revision.timestamp)} - {truncate_path(relative)}")

    return 0


def cmd_restore(store: HistoryStore, args) -> int:
    """Handle the 'restore' command."""
    settings = store.get_settings(args.file)
    restored = store.restore(args.revision, settings, target=args.file)

    if restored is None:
        print(f"✗ Not a revision: {args.revision}")
        return 1

    print(f"✓ Restored: {restored}")
    return 0


def cmd_diff(store: HistoryStore, args) -> int:
    """Handle the 'diff' command."""
    HistoryComparer(store).compare(args.left, args.right)
    return 0


def cmd_compare_previous(store: HistoryStore, args) -> int:
    """Handle the 'compare-previous' command."""
    if not HistoryComparer(store).compare_to_previous(args.file):
        print(f"No history for: {args.file}")
        return 1
    return 0


def cmd_delete(store: HistoryStore, args) -> int:
    """Handle the 'delete' command."""
    failed = store.delete_files(args.revisions)

    if failed:
        print(f"⚠ Could not delete ({len(failed)}):")
        for path in failed:
            print(f"    - {path}")
        return 1

    print(f"✓ Deleted {len(args.revisions)} revision(s)")
    return 0


def cmd_delete_all(store: HistoryStore, args) -> int:
    """Handle the 'delete-all' command."""
    settings = store.get_settings(args.file)
    if not settings.enabled:
        print(f"History is disabled for: {args.file}")
        return 1

    if not args.yes:
        answer = input(f"Delete all history - {settings.history_path}? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            return 0

    store.delete_all(settings.history_path)
    print(f"✓ Deleted: {settings.history_path}")
    return 0


def cmd_purge(store: HistoryStore, args) -> int:
    """Handle the 'purge' command."""
    settings = store.get_settings(args.file)
    purged = store.purge(settings)
    print(f"✓ Purged {len(purged)} revision(s) older than {settings.days_limit} days")
    return 0


def cmd_settings(store: HistoryStore, args) -> int:
    """Handle the 'settings' command."""
    print(json.dumps(store.get_settings(args.file).to_dict(), indent=2))
    return 0


def build_store(args) -> HistoryStore:
    """Wire configuration, workspace, host and store from parsed arguments."""
    config = Configuration.from_file(args.settings) if args.settings else Configuration()
    workspace = Workspace.from_paths(args.workspace or [os.getcwd()])
    host = ConsoleHost(settings_file=args.settings)
    return HistoryStore(SettingsResolver(config, workspace, host))


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(message)s",
    )

    # Command dispatch
    commands = {
        "save": cmd_save,
        "list": cmd_list,
        "search": cmd_search,
        "restore": cmd_restore,
        "diff": cmd_diff,
        "compare-previous": cmd_compare_previous,
        "delete": cmd_delete,
        "delete-all": cmd_delete_all,
        "purge": cmd_purge,
        "settings": cmd_settings,
    }

    handler = commands.get(args.command)
    if not handler:
        parser.print_help()
        return 1

    try:
        store = build_store(args)
        return handler(store, args)
    except (LocalHistoryError, OSError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
