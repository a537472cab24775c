#!/usr/bin/env python3
"""stitch CLI entrypoint."""

import argparse
import logging
import os
import sys
import traceback

from stitch import __version__
from stitch.api import StitchClient
from stitch.commands import blame as cmd_blame_module
from stitch.commands import edit as cmd_edit_module
from stitch.commands import finish as cmd_finish_module
from stitch.commands import index as cmd_index_module
from stitch.commands import init as cmd_init_module
from stitch.commands import link as cmd_link_module
from stitch.commands import list as cmd_list_module
from stitch.commands import show as cmd_show_module
from stitch.commands import start as cmd_start_module
from stitch.commands import status as cmd_status_module
from stitch.lib.config import load_config
from stitch.lib.errors import RepoNotFoundError, StitchError
from stitch.store.models import STATUSES
from stitch.workflow.state_machine import TERMINAL_STATUSES


def setup_logging(client: StitchClient, verbose: bool) -> None:
    """Configure root logging to stderr once per process."""
    if verbose:
        level = "DEBUG"
    else:
        try:
            level = load_config(client.repo_root).log_level
        except RepoNotFoundError:
            level = load_config(None).log_level

    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='stitch', description='Intent tracking bound to git history')
    parser.add_argument('--version', action='version', version=f'stitch {__version__}')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging to stderr')
    parser.add_argument('--repo', help='Repository root (default: git top-level of cwd)')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # stitch init
    p_init = subparsers.add_parser('init', help='Initialize stitch in this repository')
    p_init.set_defaults(func=cmd_init_module.cmd_init)

    # stitch start
    p_start = subparsers.add_parser('start', help='Start a new root stitch')
    p_start.add_argument('title', nargs='+', help='Stitch title')
    p_start.set_defaults(func=cmd_start_module.cmd_start)

    # stitch child
    p_child = subparsers.add_parser('child', help='Start a child of the current stitch')
    p_child.add_argument('title', nargs='+', help='Stitch title')
    p_child.set_defaults(func=cmd_start_module.cmd_child)

    # stitch switch
    p_switch = subparsers.add_parser('switch', help='Set the current stitch')
    p_switch.add_argument('id', help='Stitch ID')
    p_switch.set_defaults(func=cmd_start_module.cmd_switch)

    # stitch status
    p_status = subparsers.add_parser('status', help='Show current stitch and lineage')
    p_status.add_argument('--json', action='store_true', help='Output JSON')
    p_status.set_defaults(func=cmd_status_module.cmd_status)

    # stitch edit
    p_edit = subparsers.add_parser('edit', help='Open a stitch in your editor')
    p_edit.add_argument('id', nargs='?', help='Stitch ID (default: current)')
    p_edit.set_defaults(func=cmd_edit_module.cmd_edit)

    # stitch list
    p_list = subparsers.add_parser('list', help='List stitches')
    p_list.add_argument('--status', choices=STATUSES, help='Only stitches with this status')
    p_list.add_argument('--json', action='store_true', help='Output JSON')
    p_list.set_defaults(func=cmd_list_module.cmd_list)

    # stitch show
    p_show = subparsers.add_parser('show', help='Show a stitch')
    p_show.add_argument('id', help='Stitch ID')
    p_show.set_defaults(func=cmd_show_module.cmd_show)

    # stitch link
    p_link = subparsers.add_parser('link', help='Link git history to a stitch')
    link_target = p_link.add_mutually_exclusive_group(required=True)
    link_target.add_argument('--commit', help='Commit SHA or ref')
    link_target.add_argument('--range', help='Commit range, e.g. main..HEAD')
    link_target.add_argument('--staged', action='store_true', help='Fingerprint the staged diff')
    p_link.add_argument('--id', help='Stitch ID (default: current)')
    p_link.set_defaults(func=cmd_link_module.cmd_link)

    # stitch blame
    p_blame = subparsers.add_parser('blame', help='Attribute file lines to stitches')
    p_blame.add_argument('path', help='File path relative to the repository root')
    p_blame.add_argument('--format', choices=('plain', 'json'), default='plain')
    p_blame.set_defaults(func=cmd_blame_module.cmd_blame)

    # stitch finish
    p_finish = subparsers.add_parser('finish', help='Finish a stitch and its descendants')
    p_finish.add_argument('id', nargs='?', help='Stitch ID (default: current)')
    p_finish.add_argument('--status', choices=sorted(TERMINAL_STATUSES),
                          help='Terminal status (default from config, usually closed)')
    p_finish.add_argument('--by', help='Superseding stitch ID (with --status=superseded)')
    p_finish.add_argument('--force', action='store_true', help='Override auto-detected abandonment')
    p_finish.add_argument('--yes', '-y', action='store_true', help='Skip confirmation prompt')
    p_finish.set_defaults(func=cmd_finish_module.cmd_finish)

    # stitch index
    p_index = subparsers.add_parser('index', help='Manage the parent-child index')
    index_sub = p_index.add_subparsers(dest='index_cmd', required=True)

    # stitch index rebuild
    p_index_rebuild = index_sub.add_parser('rebuild', help='Rebuild index.json from stitch files')
    p_index_rebuild.set_defaults(func=cmd_index_module.cmd_index_rebuild)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    client = StitchClient(repo_root=args.repo)
    try:
        setup_logging(client, args.verbose)
        return args.func(args, client)
    except StitchError as e:
        if os.environ.get("DEBUG") == "1":
            traceback.print_exc()
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        client.close()


if __name__ == '__main__':
    sys.exit(main())
