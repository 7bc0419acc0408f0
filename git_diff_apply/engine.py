"""
Diff-and-apply orchestration.

Computes the delta between two versions of a blueprint and applies it to
the working copy in the current directory, either as a three-way merge
(merge mode) or by replacing in-scope files with the end version (reset
mode). Any failure after the guard checks rolls the repository back to its
exact starting state before the error is re-raised.

Usage:
    outcome = git_diff_apply({
        'remoteUrl': 'https://github.com/org/blueprint.git',
        'startTag': 'v1.0.0',
        'endTag': 'v2.0.0',
    })
"""

import os
import sys
import tempfile
from collections.abc import Mapping
from pathlib import Path

from git_diff_apply import fs
from git_diff_apply.errors import DirtyWorkingDirectoryError
from git_diff_apply.git import GitRepository
from git_diff_apply.ignore import GitignorePreserver, IgnoreFilter
from git_diff_apply.models import NOOP, SUCCESS, Outcome, RepositoryState, UpgradeRequest
from git_diff_apply.orphan import OrphanSnapshotBuilder
from git_diff_apply.snapshot import create_snapshot_source

NOOP_MESSAGE = "Tags match, nothing to apply"


class Checkpoint:
    """
    Context manager guarding everything that happens after the guard checks.

    Handles the complete lifecycle of a run's side effects:
    - Captures the git-ignored paths that must survive every step
    - On failure, restores the working tree, index and branch
    - Always deletes the disposable orphan branches that were created
    - Always returns the process to its starting directory

    Cleanup problems are reported as warnings and never replace the error
    that triggered the rollback.

    Usage:
        with Checkpoint(repo, state) as checkpoint:
            checkpoint.track_branch(name)
            ...
    """

    def __init__(self, repo, state, quiet=False):
        self.repo = repo
        self.state = state
        self.quiet = quiet
        self.branches = []
        self.preserver = None
        self.entered = False

    def __enter__(self):
        self.preserver = GitignorePreserver(self.repo, self.state.scope, quiet=self.quiet)
        self.entered = True
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if not self.entered:
            return False

        if exc_type is not None:
            self._rollback()

        self._delete_branches()
        self._attempt("Failed to return to the original directory", self._restore_location)
        self._attempt("Failed to remove the ignored files holding directory", self.preserver.cleanup)

        # Don't suppress exceptions
        return False

    def track_branch(self, name):
        """Register a disposable branch for deletion on exit."""
        self.branches.append(name)

    def _attempt(self, description, func, *args):
        try:
            func(*args)
        except Exception as e:
            sys.stderr.write(f"Warning: {description}: {e}\n")
            return False
        return True

    def _restore_tree(self):
        target = self.state.checkout_target
        with self.preserver.guard():
            self._attempt(f"Failed to switch back to {target}", self.repo.checkout, target, True)
            self._attempt("Failed to reset the working tree", lambda: self.repo.reset(self.state.head, hard=True))
            self._attempt("Failed to remove untracked files", lambda: self.repo.clean(self.state.scope, ignored=True))

    def _rollback(self):
        restored = self._attempt("Failed to restore the working tree", self._restore_tree)

        branch = self._current_branch()
        if not restored or branch != self.state.branch:
            sys.stderr.write(f"Error: Could not fully restore the repository at {self.state.root}\n")
            sys.stderr.write("Please switch back manually with:\n")
            sys.stderr.write(f"  cd {self.state.root}\n")
            sys.stderr.write(f"  git checkout -f {self.state.checkout_target}\n")
        elif not self.quiet:
            print(f"✓ Rolled back to {self.state.checkout_target}")

    def _current_branch(self):
        try:
            return self.repo.get_current_branch()
        except Exception:
            return None

    def _delete_branches(self):
        for name in self.branches:
            try:
                if not self.repo.branch_exists(name):
                    continue
                self.repo.delete_branch(name)
            except Exception as e:
                sys.stderr.write(f"Warning: Could not delete temporary branch {name}: {e}\n")
                sys.stderr.write("You may want to delete it manually with:\n")
                sys.stderr.write(f"  cd {self.state.root}\n")
                sys.stderr.write(f"  git branch -D {name}\n")
                continue

            if not self.quiet:
                print(f"✓ Deleted branch: {name}")

        self.branches = []

    def _restore_location(self):
        if os.getcwd() != self.state.cwd:
            os.chdir(self.state.cwd)


class DiffApplyEngine:
    """
    Runs one upgrade described by an UpgradeRequest against a working copy.

    The run is a linear transaction: guard checks, checkpoint, snapshots,
    orphan commits, diff, apply. Only one run may work on a repository at a
    time.
    """

    def __init__(self, request, cwd=None, quiet=False):
        self.request = request
        self.cwd = Path(cwd) if cwd is not None else Path.cwd()
        self.quiet = quiet

    def check_preconditions(self):
        """
        Guard checks, performed before anything is modified.

        Returns:
            GitRepository: The repository, or None when there is nothing to apply

        Raises:
            NotARepositoryError: If cwd is not inside a git working tree
            DirtyWorkingDirectoryError: If there are uncommitted or untracked changes
        """
        repo = GitRepository.discover(self.cwd)

        if not repo.is_clean():
            raise DirtyWorkingDirectoryError()

        if self.request.start_tag == self.request.end_tag:
            return None

        return repo

    def capture_state(self, repo):
        return RepositoryState(
            root=str(repo.root),
            prefix=repo.get_prefix(),
            branch=repo.get_current_branch(),
            head=repo.get_current_commit(),
            cwd=os.getcwd(),
        )

    def run(self):
        """
        Apply the upgrade.

        Returns:
            Outcome: success or no-op

        Raises:
            PreconditionError: If a guard check failed (nothing was modified)
            Exception: Whatever a step raised, after the repository was restored
        """
        repo = self.check_preconditions()
        if repo is None:
            sys.stderr.write(f"{NOOP_MESSAGE}\n")
            return Outcome(status=NOOP, message=NOOP_MESSAGE)

        state = self.capture_state(repo)
        ignore = IgnoreFilter(self.request.ignored_files, state.prefix)

        with Checkpoint(repo, state, quiet=self.quiet) as checkpoint:
            with tempfile.TemporaryDirectory(prefix='git-diff-apply-', ignore_cleanup_errors=True) as workdir:
                workdir = Path(workdir)
                source = create_snapshot_source(self.request, workdir, base_path=self.cwd, quiet=self.quiet)

                if self.request.reset:
                    outcome = self.reset(repo, state, ignore, checkpoint, source, workdir)
                else:
                    outcome = self.merge(repo, state, ignore, checkpoint, source, workdir)

        return outcome

    def merge(self, repo, state, ignore, checkpoint, source, workdir):
        """
        Three-way merge the blueprint delta into the original branch.

        Conflicts are left as conflict markers with the paths unmerged; the
        run still succeeds.
        """
        start_tag = self.request.start_tag
        end_tag = self.request.end_tag
        guard = checkpoint.preserver.guard

        start_dir = source.materialize(start_tag, workdir / 'start')
        end_dir = source.materialize(end_tag, workdir / 'end')

        builder = OrphanSnapshotBuilder(repo, state, checkpoint.preserver, checkpoint.track_branch, quiet=self.quiet)
        start_branch, start_commit = builder.build(start_dir, 'start', f"Blueprint {start_tag}")
        _, end_commit = builder.build(end_dir, 'end', f"Blueprint {end_tag}")

        patch = repo.diff(start_commit, end_commit, *ignore.pathspecs())
        has_conflicts = False

        if patch.strip():
            patch_path = workdir / 'upgrade.patch'
            patch_path.write_bytes(patch)

            with guard():
                repo.checkout(start_branch)
            with guard():
                repo.apply(patch_path)
            patch_commit = repo.commit(f"Blueprint {start_tag}..{end_tag}")

            with guard():
                repo.checkout(state.checkout_target)
            with guard():
                has_conflicts = repo.cherry_pick(patch_commit)
        else:
            with guard():
                repo.checkout(state.checkout_target)
            if not self.quiet:
                print(f"✓ No changes between {start_tag} and {end_tag}")

        if has_conflicts:
            sys.stderr.write("Warning: Conflicts were left for manual resolution:\n")
            for path in repo.unmerged_paths():
                sys.stderr.write(f"  {path}\n")
        elif not self.quiet:
            print(f"✓ Applied {start_tag}..{end_tag}")

        return Outcome(
            status=SUCCESS,
            message=f"Applied {start_tag}..{end_tag}",
            has_conflicts=has_conflicts,
            ignored_files={'from': ignore.collect(start_dir), 'to': ignore.collect(end_dir)},
        )

    def reset(self, repo, state, ignore, checkpoint, source, workdir):
        """
        Replace every in-scope tracked file with the end version of the blueprint.

        Explicitly ignored files are neither removed nor overwritten. The
        result is left unstaged in the working tree.
        """
        end_tag = self.request.end_tag
        end_dir = source.materialize(end_tag, workdir / 'end')

        with checkpoint.preserver.guard():
            repo.remove_all(*ignore.pathspecs())
            fs.copy_tree(end_dir, repo.root / state.prefix, skip=ignore.matches)

        repo.reset()

        if not self.quiet:
            print(f"✓ Reset to {end_tag}")

        return Outcome(
            status=SUCCESS,
            message=f"Reset to {end_tag}",
            ignored_files={'from': {}, 'to': ignore.collect(end_dir)},
        )


def git_diff_apply(request, cwd=None, quiet=False):
    """
    Apply the blueprint delta described by request to the working copy at cwd.

    Args:
        request: UpgradeRequest, or a mapping of options (remoteUrl, startTag,
                 endTag, ignoredFiles, reset, createCustomDiff, startCommand,
                 endCommand)
        cwd: Directory inside the working copy (default: current directory);
             a sub-directory scopes the upgrade to that sub-tree
        quiet: Whether to suppress progress output

    Returns:
        Outcome: success or no-op
    """
    if isinstance(request, Mapping):
        request = UpgradeRequest.from_options(request)

    return DiffApplyEngine(request, cwd=cwd, quiet=quiet).run()
