"""
Sources of blueprint content.

A snapshot source turns an identifier (a tag of the remote blueprint, or
the name given to a custom diff command) into a directory holding the
blueprint at that point. Sources only ever write into directories they are
handed; the caller's repository is never touched here.
"""

import subprocess
from pathlib import Path

from git_diff_apply.errors import SnapshotCommandError
from git_diff_apply.git import run_git_command


class TagSnapshotSource:
    """
    Check out tags from a remote blueprint repository.

    The remote is cloned once, lazily, into ``workdir``. A relative local
    remote is resolved against ``base_path``, the directory the upgrade was
    started from.
    """

    def __init__(self, remote_url, workdir, base_path=None, quiet=False):
        self.remote_url = remote_url
        self.workdir = Path(workdir)
        self.base_path = Path(base_path) if base_path is not None else self.workdir
        self.quiet = quiet
        self.clone_path = None

    def _ensure_clone(self):
        if self.clone_path is not None:
            return self.clone_path

        clone_path = self.workdir / 'remote'
        run_git_command(
            ['git', 'clone', '--quiet', '--no-checkout', self.remote_url, str(clone_path)],
            cwd=self.base_path
        )
        self.clone_path = clone_path

        if not self.quiet:
            print(f"✓ Cloned blueprint: {self.remote_url}")

        return clone_path

    def materialize(self, identifier, dest):
        """
        Write the blueprint at identifier into dest.

        Args:
            identifier: Tag (or any revision) of the remote blueprint
            dest: Empty directory to populate

        Returns:
            Path: dest
        """
        clone_path = self._ensure_clone()
        dest = Path(dest)
        dest.mkdir(parents=True, exist_ok=True)

        # Empty trees have nothing to check out; ls-tree tells us up front
        result = run_git_command(['git', 'ls-tree', '--name-only', identifier], cwd=clone_path)
        if result.stdout.strip():
            run_git_command(
                ['git', f'--git-dir={clone_path / ".git"}', f'--work-tree={dest}',
                 'checkout', '-f', identifier, '--', '.'],
                cwd=dest
            )

        if not self.quiet:
            print(f"✓ Checked out blueprint {identifier}")

        return dest


class CommandSnapshotSource:
    """
    Run a user-supplied shell command per identifier to populate a directory.

    Supports blueprints that are not stored in git at all. The command runs
    with the target directory as its working directory.
    """

    def __init__(self, commands, quiet=False):
        self.commands = dict(commands)
        self.quiet = quiet

    def materialize(self, identifier, dest):
        dest = Path(dest)
        dest.mkdir(parents=True, exist_ok=True)

        command = self.commands[identifier]
        result = subprocess.run(
            command,
            shell=True,
            cwd=dest,
            capture_output=True,
            text=True,
            check=False
        )

        if result.returncode != 0:
            raise SnapshotCommandError(command, result.returncode, result.stderr)

        if not self.quiet:
            print(f"✓ Ran snapshot command for {identifier}")

        return dest


def create_snapshot_source(request, workdir, base_path=None, quiet=False):
    """
    Pick the snapshot source an UpgradeRequest asks for.

    Args:
        request: UpgradeRequest
        workdir: Scratch directory the source may use
        base_path: Directory relative remote paths are resolved against
        quiet: Whether to suppress output

    Returns:
        TagSnapshotSource or CommandSnapshotSource
    """
    if request.create_custom_diff:
        return CommandSnapshotSource(
            {request.start_tag: request.start_command, request.end_tag: request.end_command},
            quiet=quiet
        )

    return TagSnapshotSource(request.remote_url, workdir, base_path=base_path, quiet=quiet)
