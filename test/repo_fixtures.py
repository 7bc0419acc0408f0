"""
Helpers that build throwaway git repositories for the tests.

A "remote" is a blueprint repository with one tagged commit per version; a
"local" repository is a project generated from it, checked out on branch
``foo``, optionally nested in a sub-directory of the repository.
"""

import hashlib
import os
import shutil
import subprocess
from pathlib import Path


def run_git(args, cwd):
    """
    Run a git command, failing the test on error.

    Returns:
        str: Standard output
    """
    result = subprocess.run(
        ['git', *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True
    )
    return result.stdout


def create_file(file_path, content):
    """
    Create a file with the given content (str or bytes).
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        file_path.write_bytes(content)
    else:
        file_path.write_text(content)


def create_files(base_path, files):
    for rel_path, content in files.items():
        create_file(Path(base_path) / rel_path, content)


def initialize_git_repo(base_path, branch='foo'):
    """
    Initialize a git repository whose first branch is ``branch``.
    """
    base_path = Path(base_path)
    base_path.mkdir(parents=True, exist_ok=True)
    run_git(['init', '-q'], cwd=base_path)
    run_git(['symbolic-ref', 'HEAD', f'refs/heads/{branch}'], cwd=base_path)
    return base_path


def commit_all(base_path, message, force=False):
    # force lets blueprints carry files their own .gitignore lists
    run_git(['add', '-A', *(['-f'] if force else [])], cwd=base_path)
    run_git(['commit', '-q', '--allow-empty', '-m', message], cwd=base_path)
    return run_git(['rev-parse', 'HEAD'], cwd=base_path).strip()


def clear_worktree(base_path):
    """Remove every file but .git, tracked or not."""
    run_git(['rm', '-r', '-q', '-f', '--ignore-unmatch', '--', '.'], cwd=base_path)
    for entry in Path(base_path).iterdir():
        if entry.name == '.git':
            continue
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()


def create_remote_repo(base_path, versions):
    """
    Create a blueprint repository with one tag per version.

    Args:
        base_path: Where to create the repository
        versions: Ordered mapping of tag -> {relative path: content}

    Returns:
        Path: Repository path
    """
    base_path = initialize_git_repo(base_path, branch='main')

    for tag, files in versions.items():
        clear_worktree(base_path)
        create_files(base_path, files)
        commit_all(base_path, tag, force=True)
        run_git(['tag', tag], cwd=base_path)

    return base_path


def create_local_repo(base_path, files, sub_dir=''):
    """
    Create a generated project on branch ``foo``.

    Args:
        base_path: Repository root
        files: {relative path: content} written under sub_dir
        sub_dir: Sub-directory holding the project ('' for the root)

    Returns:
        tuple: (repository root, project directory)
    """
    root = initialize_git_repo(base_path)
    local_dir = root / sub_dir if sub_dir else root
    local_dir.mkdir(parents=True, exist_ok=True)

    create_files(local_dir, files)
    if sub_dir:
        create_file(root / 'outside.txt', 'outside the blueprint\n')

    commit_all(root, 'local')
    return root, local_dir


def write_version_dir(base_path, files):
    """Write a blueprint version as a plain directory, for custom diff commands."""
    base_path = Path(base_path)
    base_path.mkdir(parents=True, exist_ok=True)
    create_files(base_path, files)
    return base_path


def git_status(cwd):
    return run_git(['status', '--porcelain'], cwd=cwd)


def is_git_clean(cwd):
    return not git_status(cwd).strip()


def get_current_branch(cwd):
    return run_git(['symbolic-ref', '--short', 'HEAD'], cwd=cwd).strip()


def list_branches(cwd):
    return run_git(['for-each-ref', '--format=%(refname:short)', 'refs/heads'], cwd=cwd).split()


def calculate_file_hash(file_path):
    """
    Calculate SHA256 hash of a file.
    """
    sha256_hash = hashlib.sha256()
    with open(file_path, 'rb') as f:
        for chunk in iter(lambda: f.read(4096), b''):
            sha256_hash.update(chunk)
    return sha256_hash.hexdigest()


def read_tree(base_path):
    """
    Read every regular file under base_path, skipping .git directories.

    Returns:
        dict: POSIX relative path -> content (bytes)
    """
    base_path = Path(base_path)
    files = {}
    for root, dirs, filenames in os.walk(base_path):
        if '.git' in dirs:
            dirs.remove('.git')
        for filename in filenames:
            file_path = Path(root) / filename
            if file_path.is_symlink():
                continue
            files[file_path.relative_to(base_path).as_posix()] = file_path.read_bytes()
    return files


def expected_tree(files):
    """Normalize a {path: str|bytes} mapping to what read_tree returns."""
    return {path: content if isinstance(content, bytes) else content.encode() for path, content in files.items()}


NOCONFLICT = {
    'v1': {
        'changed.txt': 'changed v1\n',
        'unchanged.txt': 'unchanged\n',
    },
    'v2': {
        'changed.txt': 'changed v2\n',
        'unchanged.txt': 'unchanged\n',
    },
    'v3': {
        'changed.txt': 'changed v3\n',
        'unchanged.txt': 'unchanged\n',
    },
}

NOCONFLICT_LOCAL = {
    'changed.txt': 'changed v1\n',
    'unchanged.txt': 'unchanged, edited locally\n',
    'local-only.txt': 'added locally\n',
}
