"""
Upgrade options from TOML configuration files and the command line.

A configuration file uses the same option names as the programmatic
interface:

    remoteUrl = "https://github.com/org/blueprint.git"
    startTag = "v1"
    endTag = "v3"
    ignoredFiles = ["package.json"]
    reset = false
"""

import tomllib
from pathlib import Path

from git_diff_apply.errors import ConfigurationError
from git_diff_apply.models import OPTION_KEYS


def load_config(config_path):
    """
    Parse a TOML configuration file.

    Args:
        config_path: Path to the configuration file

    Returns:
        dict: Options found in the file

    Raises:
        ConfigurationError: If the file is missing, malformed or has unknown keys
    """
    config_path = Path(config_path)

    if not config_path.is_file():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, 'rb') as f:
            options = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Failed to parse configuration file {config_path}: {e}") from e

    unknown = sorted(set(options) - set(OPTION_KEYS))
    if unknown:
        raise ConfigurationError(f"Unknown option(s) in {config_path}: {', '.join(unknown)}")

    return options


def options_from_arguments(args):
    """
    Collect the options given on the command line.

    Only flags that were actually passed are returned, so they can be laid
    over a configuration file.

    Args:
        args: argparse.Namespace from cli.parse_arguments

    Returns:
        dict: Options keyed by their public names
    """
    options = {}

    if args.remote_url is not None:
        options['remoteUrl'] = args.remote_url
    if args.start_tag is not None:
        options['startTag'] = args.start_tag
    if args.end_tag is not None:
        options['endTag'] = args.end_tag
    if args.ignored_files:
        options['ignoredFiles'] = list(args.ignored_files)
    if args.reset:
        options['reset'] = True
    if args.start_command is not None:
        options['startCommand'] = args.start_command
    if args.end_command is not None:
        options['endCommand'] = args.end_command
    if args.start_command is not None or args.end_command is not None:
        options['createCustomDiff'] = True

    return options


def merge_options(*sources):
    """Later sources override earlier ones, key by key."""
    merged = {}
    for source in sources:
        merged.update(source)
    return merged
