"""
Thin wrapper around the git command line.

GitRepository exposes the atomic primitives the upgrade needs (status,
branch, commit, checkout including orphan branches, diff, apply, reset,
remove-all) and keeps no workflow state of its own. Every command runs with
an explicit working directory; the process working directory is never
changed.
"""

import subprocess
from pathlib import Path

from git_diff_apply.errors import GitCommandError, NotARepositoryError


def run_git_command(args, cwd, check_returncode=True, input_data=None, text=True):
    """
    Execute a git command with consistent error handling.

    Args:
        args: List of command arguments (e.g., ['git', 'rev-parse', 'HEAD'])
        cwd: Working directory for the command
        check_returncode: Whether to treat non-zero return code as error
        input_data: Optional input to pass to command via stdin
        text: Decode output as text (False returns bytes, e.g. for binary patches)

    Returns:
        subprocess.CompletedProcess: Result object with returncode, stdout, stderr

    Raises:
        GitCommandError: If the command failed and check_returncode is True
    """
    result = subprocess.run(
        args,
        cwd=cwd,
        capture_output=True,
        text=text,
        input=input_data,
        check=False  # We'll handle return code ourselves
    )

    if check_returncode and result.returncode != 0:
        stderr = result.stderr
        if isinstance(stderr, bytes):
            stderr = stderr.decode('utf-8', errors='replace')
        raise GitCommandError(args, result.returncode, stderr)

    return result


def _split_nul(output):
    return [entry for entry in output.split('\0') if entry]


class GitRepository:
    """
    Version control facade bound to one working tree.

    Usage:
        repo = GitRepository.discover(Path.cwd())
        if not repo.is_clean():
            ...
    """

    def __init__(self, root, cwd=None):
        self.root = Path(root)
        self.cwd = Path(cwd) if cwd is not None else self.root

    @classmethod
    def discover(cls, cwd):
        """
        Locate the working tree containing cwd.

        Raises:
            NotARepositoryError: If cwd is not inside a git working tree
        """
        cwd = Path(cwd)
        if not cwd.is_dir():
            raise NotARepositoryError()

        result = run_git_command(
            ['git', 'rev-parse', '--show-toplevel'],
            cwd=cwd,
            check_returncode=False
        )

        if result.returncode != 0 or not result.stdout.strip():
            raise NotARepositoryError()

        return cls(result.stdout.strip(), cwd)

    def git(self, *args, **kwargs):
        return run_git_command(['git', *args], cwd=self.root, **kwargs)

    # Introspection

    def get_prefix(self):
        """Path of the starting directory relative to the top level ('' or 'foo/bar/')."""
        result = run_git_command(['git', 'rev-parse', '--show-prefix'], cwd=self.cwd)
        return result.stdout.strip()

    def get_git_dir(self):
        return Path(self.git('rev-parse', '--absolute-git-dir').stdout.strip())

    def get_current_branch(self):
        """
        Get the current branch name.

        Returns:
            str: Branch name, or None if detached HEAD
        """
        result = self.git('symbolic-ref', '--short', '-q', 'HEAD', check_returncode=False)

        if result.returncode == 0:
            branch = result.stdout.strip()
            return branch if branch else None

        return None

    def get_current_commit(self):
        return self.git('rev-parse', 'HEAD').stdout.strip()

    def branch_exists(self, name):
        result = self.git('rev-parse', '--verify', '-q', f'refs/heads/{name}', check_returncode=False)
        return result.returncode == 0

    def status(self):
        """Porcelain status of the whole working tree."""
        return self.git('status', '--porcelain').stdout

    def is_clean(self):
        return not self.status().strip()

    def unmerged_paths(self):
        return _split_nul(self.git('diff', '--name-only', '--diff-filter=U', '-z').stdout)

    def ignored_paths(self, *pathspecs):
        """
        List untracked paths that git itself ignores.

        Local .gitignore files, .git/info/exclude and the global
        core.excludesFile are all honored. Fully ignored directories are
        reported once, without a trailing slash.
        """
        result = self.git(
            'ls-files', '-z', '--others', '--ignored', '--exclude-standard', '--directory',
            '--', *(pathspecs or ('.',))
        )
        return [path.rstrip('/') for path in _split_nul(result.stdout)]

    # Branches and commits

    def checkout(self, target, force=False):
        args = ['checkout', '-q']
        if force:
            args.append('-f')
        self.git(*args, target)

    def checkout_orphan(self, name):
        self.git('checkout', '-q', '--orphan', name)

    def delete_branch(self, name):
        self.git('branch', '-D', name)

    def remove_all(self, *pathspecs):
        """Stage the removal of every tracked file matching pathspecs and delete it from disk."""
        self.git('rm', '-r', '-q', '-f', '--ignore-unmatch', '--', *(pathspecs or ('.',)))

    def add_all(self, *pathspecs):
        self.git('add', '-A', '--', *(pathspecs or ('.',)))

    def commit(self, message):
        """
        Commit the index, even when it is empty.

        Returns:
            str: Hash of the new commit
        """
        self.git('commit', '-q', '--no-verify', '--allow-empty', '-m', message)
        return self.get_current_commit()

    # Diff and apply

    def diff(self, start, end, *pathspecs):
        """
        Binary-safe unified diff between two commits.

        Returns:
            bytes: Patch content (empty when nothing differs)
        """
        result = self.git(
            'diff', '--binary', '--no-color', '--no-ext-diff', '--no-renames',
            start, end, '--', *pathspecs,
            text=False
        )
        return result.stdout

    def apply(self, patch_path):
        """Apply a patch file to both the index and the working tree."""
        self.git('apply', '--index', '--binary', str(patch_path))

    def cherry_pick(self, commit):
        """
        Three-way merge the changes of commit into the working tree without committing.

        Conflicting paths are left unmerged with conflict markers.

        Returns:
            bool: True if conflicts were left for manual resolution
        """
        result = self.git('cherry-pick', '--no-commit', commit, check_returncode=False)

        if result.returncode == 0:
            return False

        if self.unmerged_paths():
            return True

        raise GitCommandError(['git', 'cherry-pick', '--no-commit', commit], result.returncode, result.stderr)

    def reset(self, commit=None, hard=False):
        args = ['reset', '-q']
        if hard:
            args.append('--hard')
        if commit:
            args.append(commit)
        self.git(*args)

    def clean(self, *pathspecs, ignored=False):
        """
        Delete untracked files and directories.

        Args:
            pathspecs: Limit cleaning to these paths (default: everything)
            ignored: Also delete files git ignores
        """
        args = ['clean', '-f', '-d', '-q']
        if ignored:
            args.append('-x')
        self.git(*args, '--', *(pathspecs or ('.',)))
