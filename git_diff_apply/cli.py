"""
Blueprint Upgrade Script

Applies the changes between two versions of a blueprint (the template a
project was generated from) to the project in the current directory.

Usage:
    git-diff-apply --remote-url <url> --start-tag <tag> --end-tag <tag> [options]
    git-diff-apply --help

Examples:
    git-diff-apply --remote-url https://github.com/org/blueprint.git --start-tag v1 --end-tag v2
    git-diff-apply --config upgrade.toml --reset
    git-diff-apply --start-tag v1 --end-tag v2 \\
        --start-command "cp -r ~/blueprints/v1/. ." --end-command "cp -r ~/blueprints/v2/. ."
"""

import argparse
import signal
import sys
from pathlib import Path

from git_diff_apply.config import load_config, merge_options, options_from_arguments
from git_diff_apply.engine import git_diff_apply
from git_diff_apply.errors import ConfigurationError
from git_diff_apply.models import UpgradeRequest


def handle_sigint(signum, frame):
    """
    Handle Control-C (SIGINT) by cleanly exiting.

    Args:
        signum: Signal number
        frame: Current stack frame
    """
    sys.stderr.write("^C\n")
    sys.exit(1)


def print_usage():
    """
    Print brief usage information to stderr.
    """
    sys.stderr.write("Usage: git-diff-apply [--remote-url <url>] --start-tag <tag> --end-tag <tag> [options]\n")
    sys.stderr.write("       git-diff-apply --help\n")


def print_help():
    """
    Print detailed help information to stderr.
    """
    help_text = """
Blueprint Upgrade Script

Applies the changes between two versions of a blueprint to the project in
the current directory (or the directory given with --cwd).

Arguments:
  --remote-url <url>       Blueprint repository to check tags out from.
  --start-tag <tag>        Blueprint version the project is currently on.
  --end-tag <tag>          Blueprint version to upgrade to.
  --ignored-file <path>    Never touch this path (relative to the current
                           directory). May be given more than once.
  --reset                  Replace files with the end version instead of
                           merging, discarding local changes to them.
  --start-command <cmd>    Shell command that writes the start version into
                           the current directory (replaces --remote-url).
  --end-command <cmd>      Shell command that writes the end version.
  --config <file>          TOML file with the same options (remoteUrl,
                           startTag, endTag, ignoredFiles, reset,
                           createCustomDiff, startCommand, endCommand).
                           Command-line flags take precedence.
  --cwd <dir>              Run as if started in this directory.
  --quiet                  Suppress progress output.
  --help                   Show this help message.

Behavior:
  - Requires a clean git working directory.
  - Does nothing if the start and end tags are the same.
  - Only the current sub-directory of the repository is upgraded.
  - Conflicts are left as conflict markers for manual resolution.
  - Files ignored by git are never modified.
  - On any error the repository is restored to its original state.

Exit Codes:
  0 - Success, or nothing to apply
  1 - Error
"""
    sys.stderr.write(help_text)


def parse_arguments(argv=None):
    """
    Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed arguments, or None if invalid
    """
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument('--remote-url', type=str, help='Blueprint repository URL')
    parser.add_argument('--start-tag', type=str, help='Current blueprint version')
    parser.add_argument('--end-tag', type=str, help='Target blueprint version')
    parser.add_argument('--ignored-file', dest='ignored_files', action='append', default=[],
                        help='Path to leave untouched')
    parser.add_argument('--reset', action='store_true', help='Reset files instead of merging')
    parser.add_argument('--start-command', type=str, help='Command producing the start version')
    parser.add_argument('--end-command', type=str, help='Command producing the end version')
    parser.add_argument('--config', type=str, help='TOML configuration file')
    parser.add_argument('--cwd', type=str, help='Directory to run in')
    parser.add_argument('--quiet', action='store_true', help='Suppress non-error output')
    parser.add_argument('--help', action='store_true', help='Show help message')

    try:
        args = parser.parse_args(argv)
    except SystemExit:
        # argparse encountered an error
        print_usage()
        return None

    if args.help:
        print_help()
        sys.exit(0)

    return args


def build_request(args):
    """
    Combine the configuration file (if any) and the flags into a request.

    Raises:
        ConfigurationError: If the options are incomplete or inconsistent
    """
    file_options = load_config(args.config) if args.config else {}
    options = merge_options(file_options, options_from_arguments(args))
    return UpgradeRequest.from_options(options)


def main(argv=None):
    """
    Main entry point for the upgrade script.
    """
    # Set up signal handler for Control-C
    signal.signal(signal.SIGINT, handle_sigint)

    args = parse_arguments(argv)
    if args is None:
        sys.exit(1)

    try:
        request = build_request(args)
    except ConfigurationError as e:
        sys.stderr.write(f"Error: {e}\n")
        print_usage()
        sys.exit(1)

    cwd = Path(args.cwd).resolve() if args.cwd else Path.cwd()

    try:
        outcome = git_diff_apply(request, cwd=cwd, quiet=args.quiet)
    except Exception as e:
        sys.stderr.write(f"Error: {e}\n")
        sys.exit(1)

    if outcome.has_conflicts and not args.quiet:
        print("Resolve the conflicts, then review and commit the result.")

    sys.exit(0)


if __name__ == '__main__':
    main()
