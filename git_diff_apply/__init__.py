from git_diff_apply.engine import Checkpoint, DiffApplyEngine, git_diff_apply
from git_diff_apply.errors import (
    CollaboratorFailure,
    ConfigurationError,
    DirtyWorkingDirectoryError,
    GitCommandError,
    GitDiffApplyError,
    NotARepositoryError,
    PreconditionError,
    SnapshotCommandError,
)
from git_diff_apply.models import NOOP, SUCCESS, Outcome, RepositoryState, UpgradeRequest

__version__ = "1.0.0"

__all__ = [
    'Checkpoint',
    'CollaboratorFailure',
    'ConfigurationError',
    'DiffApplyEngine',
    'DirtyWorkingDirectoryError',
    'GitCommandError',
    'GitDiffApplyError',
    'NOOP',
    'NotARepositoryError',
    'Outcome',
    'PreconditionError',
    'RepositoryState',
    'SUCCESS',
    'SnapshotCommandError',
    'UpgradeRequest',
    'git_diff_apply',
]
