"""
Value objects passed between the upgrade steps.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from git_diff_apply.errors import ConfigurationError

OPTION_KEYS = (
    'remoteUrl',
    'startTag',
    'endTag',
    'ignoredFiles',
    'reset',
    'createCustomDiff',
    'startCommand',
    'endCommand',
)


@dataclass(frozen=True)
class UpgradeRequest:
    """
    Immutable description of one upgrade run.

    Either ``remote_url`` is set and tags are checked out from the cloned
    blueprint, or ``create_custom_diff`` is set and the two commands populate
    a directory each.
    """

    start_tag: str
    end_tag: str
    remote_url: Optional[str] = None
    ignored_files: Tuple[str, ...] = ()
    reset: bool = False
    create_custom_diff: bool = False
    start_command: Optional[str] = None
    end_command: Optional[str] = None

    @classmethod
    def from_options(cls, options):
        """
        Build a request from an options mapping using the public option names.

        Args:
            options: Mapping with keys from OPTION_KEYS

        Returns:
            UpgradeRequest: Validated request

        Raises:
            ConfigurationError: If options are unknown, missing or inconsistent
        """
        unknown = sorted(set(options) - set(OPTION_KEYS))
        if unknown:
            raise ConfigurationError(f"Unknown option(s): {', '.join(unknown)}")

        start_tag = options.get('startTag')
        end_tag = options.get('endTag')
        if not start_tag or not end_tag:
            raise ConfigurationError("Both startTag and endTag are required")

        create_custom_diff = bool(options.get('createCustomDiff', False))
        remote_url = options.get('remoteUrl') or None
        start_command = options.get('startCommand') or None
        end_command = options.get('endCommand') or None

        if create_custom_diff:
            if not start_command or not end_command:
                raise ConfigurationError("createCustomDiff requires both startCommand and endCommand")
        elif not remote_url:
            raise ConfigurationError("remoteUrl is required unless createCustomDiff is set")

        ignored_files = options.get('ignoredFiles') or ()
        if isinstance(ignored_files, str):
            raise ConfigurationError("ignoredFiles must be a list of paths")

        # Ordered, duplicates dropped
        ignored = tuple(dict.fromkeys(str(path) for path in ignored_files))

        return cls(
            start_tag=str(start_tag),
            end_tag=str(end_tag),
            remote_url=remote_url,
            ignored_files=ignored,
            reset=bool(options.get('reset', False)),
            create_custom_diff=create_custom_diff,
            start_command=start_command,
            end_command=end_command,
        )


@dataclass(frozen=True)
class RepositoryState:
    """
    Repository state captured once before anything is modified.

    Attributes:
        root: Top level of the working tree
        prefix: Sub-directory the run is scoped to, relative to root ('' at the top)
        branch: Checked out branch, or None on a detached HEAD
        head: HEAD commit hash
        cwd: Process working directory when the run started
    """

    root: str
    prefix: str
    branch: Optional[str]
    head: str
    cwd: str

    @property
    def scope(self):
        """Pathspec for the sub-directory scope ('.' at the top level)."""
        return self.prefix.rstrip('/') or '.'

    @property
    def checkout_target(self):
        return self.branch if self.branch else self.head


SUCCESS = 'success'
NOOP = 'noop'


@dataclass
class Outcome:
    """
    Terminal result of a run that did not fail.

    ``ignored_files`` maps ``'from'`` and ``'to'`` to the contents of the
    explicitly ignored files found in the start and end snapshots. Reset mode
    only materializes the end snapshot, so ``'from'`` is always empty there.
    """

    status: str
    message: str = ''
    has_conflicts: bool = False
    ignored_files: Dict[str, Dict[str, bytes]] = field(default_factory=lambda: {'from': {}, 'to': {}})

    @property
    def is_noop(self):
        return self.status == NOOP
