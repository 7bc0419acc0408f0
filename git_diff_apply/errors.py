"""
Exceptions raised while applying a blueprint upgrade.

Every exception carries the triggering message verbatim in ``str(error)``
so the command line can surface it unchanged.
"""


class GitDiffApplyError(Exception):
    """Base class for all errors raised by git-diff-apply."""


class ConfigurationError(GitDiffApplyError):
    """Invalid or incomplete upgrade options."""


class PreconditionError(GitDiffApplyError):
    """
    A guard check failed before anything was modified.

    No rollback is needed when one of these is raised.
    """


class NotARepositoryError(PreconditionError):
    def __init__(self, message="Not a git repository"):
        super().__init__(message)


class DirtyWorkingDirectoryError(PreconditionError):
    def __init__(self, message="You must start with a clean working directory"):
        super().__init__(message)


class CollaboratorFailure(GitDiffApplyError):
    """An external operation (git, a shell command, the filesystem) failed."""


class GitCommandError(CollaboratorFailure):
    """
    A git command exited with a non-zero status.

    Attributes:
        args_list: The argv that was executed
        returncode: Exit status of the command
        stderr: Captured standard error
    """

    def __init__(self, args_list, returncode, stderr):
        self.args_list = list(args_list)
        self.returncode = returncode
        self.stderr = stderr or ''
        message = self.stderr.strip() or f"{' '.join(self.args_list)} exited with status {returncode}"
        super().__init__(message)


class SnapshotCommandError(CollaboratorFailure):
    """A custom diff command failed to produce a snapshot."""

    def __init__(self, command, returncode, stderr):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr or ''
        message = self.stderr.strip() or f"Command failed with status {returncode}: {command}"
        super().__init__(message)
