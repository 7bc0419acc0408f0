"""
Disposable orphan commits holding one blueprint snapshot each.

Two snapshots from unrelated blueprint versions share no history, so they
are committed on parentless branches of the caller's repository, where
ordinary ``git diff`` can compare them.
"""

from datetime import datetime, timezone

from git_diff_apply import fs


def make_branch_name(role):
    """
    Generate a timestamp-based name for a disposable branch.

    Args:
        role: What the branch holds, e.g. 'start' or 'end'
    """
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S-%f")
    return f"git-diff-apply_{role}_{timestamp}"


class OrphanSnapshotBuilder:
    """
    Turn snapshot directories into parentless commits.

    Only the scope (the sub-directory the run started in) is replaced; files
    outside it are committed as they are in the index. Every branch is
    reported to ``on_branch_created`` before anything is written to it, so
    the caller can delete it on every exit path.
    """

    def __init__(self, repo, state, preserver, on_branch_created, quiet=False):
        self.repo = repo
        self.state = state
        self.preserver = preserver
        self.on_branch_created = on_branch_created
        self.quiet = quiet

    def build(self, snapshot_dir, role, message):
        """
        Commit snapshot_dir into the scope on a new orphan branch.

        Args:
            snapshot_dir: Directory produced by a snapshot source
            role: Label used in the branch name
            message: Commit message

        Returns:
            tuple: (branch name, commit hash)
        """
        branch = make_branch_name(role)
        self.on_branch_created(branch)

        with self.preserver.guard():
            self.repo.checkout_orphan(branch)
            self.repo.remove_all(self.state.scope)
            fs.copy_tree(snapshot_dir, self.repo.root / self.state.prefix)
            self.repo.add_all(self.state.scope)
            # Snapshot files the new rules ignore must not linger in the tree
            self.repo.clean(self.state.scope, ignored=True)

        commit = self.repo.commit(message)

        if not self.quiet:
            print(f"✓ Created orphan snapshot {branch} ({commit[:8]})")

        return branch, commit
