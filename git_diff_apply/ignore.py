"""
Ignore handling.

Two kinds of ignored paths are kept apart:

- explicit ignores, given by the caller, are excluded from the diff and
  from reset-mode removal and copying;
- git-ignored paths (local .gitignore, info/exclude, global excludesFile)
  are untracked files git already leaves out of diffs; they are moved out
  of the way around every step that rewrites the working tree and put back
  afterwards.

A path matching both is handled by both filters independently.
"""

import fnmatch
import os
import posixpath
import shutil
import sys
import tempfile
from contextlib import contextmanager
from pathlib import Path

from git_diff_apply import fs
from git_diff_apply.errors import ConfigurationError


def normalize_pattern(pattern):
    """
    Normalize an ignore pattern the way git normalizes a pathspec.

    './a', 'a//b' and 'dir/' become 'a', 'a/b' and 'dir'.

    Returns:
        str: Normalized pattern, or None if it names the scope itself

    Raises:
        ConfigurationError: If the pattern points outside the scope
    """
    normalized = posixpath.normpath(pattern).lstrip('/')
    if normalized in ('', '.'):
        return None
    if normalized == '..' or normalized.startswith('../'):
        raise ConfigurationError(f"Ignored file is outside the upgraded directory: {pattern}")
    return normalized


class IgnoreFilter:
    """
    Explicitly ignored path patterns, resolved relative to the scope.

    A pattern matches a path when it is equal to it, is one of its parent
    directories, or matches it as a glob.
    """

    def __init__(self, patterns, prefix=''):
        normalized = (normalize_pattern(pattern) for pattern in patterns)
        self.patterns = tuple(dict.fromkeys(pattern for pattern in normalized if pattern))
        self.prefix = prefix.strip('/')

    def __bool__(self):
        return bool(self.patterns)

    def matches(self, rel_path):
        """
        Check a path relative to the scope against the explicit patterns.

        Args:
            rel_path: POSIX path relative to the sub-directory scope

        Returns:
            bool: True if the path is explicitly ignored
        """
        rel_path = rel_path.strip('/')
        for pattern in self.patterns:
            if rel_path == pattern or rel_path.startswith(pattern + '/'):
                return True
            if fnmatch.fnmatchcase(rel_path, pattern):
                return True
        return False

    def scope_pathspec(self):
        return self.prefix or '.'

    def exclude_pathspecs(self):
        """Git pathspecs excluding every explicit pattern, rooted at the top level."""
        return [f':(exclude){posixpath.join(self.prefix, pattern)}' for pattern in self.patterns]

    def pathspecs(self):
        """Scope pathspec followed by the exclusions, for use after '--'."""
        return [self.scope_pathspec(), *self.exclude_pathspecs()]

    def collect(self, directory):
        """
        Read every explicitly ignored file found in a snapshot.

        Ignored patterns that match nothing are skipped silently.

        Args:
            directory: Snapshot directory

        Returns:
            dict: POSIX relative path -> file content (bytes)
        """
        contents = {}
        if not self.patterns:
            return contents

        directory = Path(directory)
        for root, dirs, files in os.walk(directory):
            root_path = Path(root)
            if root_path == directory and '.git' in dirs:
                dirs.remove('.git')
            for filename in files:
                file_path = root_path / filename
                rel_path = file_path.relative_to(directory).as_posix()
                if self.matches(rel_path) and file_path.is_file():
                    contents[rel_path] = file_path.read_bytes()

        return dict(sorted(contents.items()))


class GitignorePreserver:
    """
    Keep git-ignored paths intact around steps that rewrite the working tree.

    The set of ignored paths is taken once, when the preserver is created,
    using the repository's ignore rules at that moment. ``guard()`` moves
    those paths into a holding directory inside the git directory for the
    duration of a step and moves them back afterwards, whether or not the
    step failed. Symbolic links are moved as links, so broken links come
    back exactly as they were.
    """

    def __init__(self, repo, scope='.', quiet=False):
        self.repo = repo
        self.root = Path(repo.root)
        self.quiet = quiet
        self.paths = repo.ignored_paths(scope)
        self.holding_dir = None

    def _holding(self):
        if self.holding_dir is None:
            self.holding_dir = Path(tempfile.mkdtemp(prefix='git-diff-apply-', dir=self.repo.get_git_dir()))
        return self.holding_dir

    def stash(self):
        """
        Move every preserved path that exists into the holding directory.

        Returns:
            list: Relative paths that were moved
        """
        moved = []
        try:
            for rel_path in self.paths:
                path = self.root / rel_path
                if not (path.is_symlink() or path.exists()):
                    continue
                fs.move_path(path, self._holding() / rel_path)
                moved.append(rel_path)
        except OSError:
            self.restore(moved)
            raise
        return moved

    def restore(self, moved):
        """
        Move stashed paths back, replacing whatever a step left in their place.

        Every path is attempted; the first failure is raised once all others
        have been put back.
        """
        first_error = None
        for rel_path in moved:
            held = self._holding() / rel_path
            if not (held.is_symlink() or held.exists()):
                continue
            try:
                fs.move_path(held, self.root / rel_path)
            except OSError as e:
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

    @contextmanager
    def guard(self):
        """
        Hide preserved paths while the body runs.

        Usage:
            with preserver.guard():
                repo.checkout(branch)
        """
        moved = self.stash()
        try:
            yield
        except BaseException:
            # The step's own failure is the one that gets reported
            try:
                self.restore(moved)
            except OSError as e:
                sys.stderr.write(f"Warning: Failed to restore ignored files: {e}\n")
            raise
        self.restore(moved)

    def cleanup(self):
        """Remove the holding directory, unless something is still held in it."""
        if self.holding_dir is None or not self.holding_dir.exists():
            return

        leftovers = [p for p in self.holding_dir.rglob('*') if p.is_symlink() or p.is_file()]
        if leftovers:
            sys.stderr.write(f"Warning: Ignored files could not be restored and were kept in: {self.holding_dir}\n")
            return

        shutil.rmtree(self.holding_dir)
        self.holding_dir = None
