import os
from pathlib import Path

import pytest

from git_diff_apply import git_diff_apply
from repo_fixtures import create_local_repo, create_remote_repo


@pytest.fixture(autouse=True)
def git_env(tmp_path_factory, monkeypatch):
    """
    Isolate git from the host configuration.

    Yields the path of the global config file so tests can add settings
    (such as core.excludesFile) to it.
    """
    home = tmp_path_factory.mktemp('home')
    global_config = home / '.gitconfig'
    global_config.write_text('')

    monkeypatch.setenv('HOME', str(home))
    monkeypatch.setenv('GIT_CONFIG_GLOBAL', str(global_config))
    monkeypatch.setenv('GIT_CONFIG_NOSYSTEM', '1')
    monkeypatch.setenv('GIT_AUTHOR_NAME', 'Test User')
    monkeypatch.setenv('GIT_AUTHOR_EMAIL', 'test@example.com')
    monkeypatch.setenv('GIT_COMMITTER_NAME', 'Test User')
    monkeypatch.setenv('GIT_COMMITTER_EMAIL', 'test@example.com')
    # Never discover a repository above the test directories
    monkeypatch.setenv('GIT_CEILING_DIRECTORIES', str(Path(str(tmp_path_factory.getbasetemp())).parent))
    for name in ('GIT_DIR', 'GIT_WORK_TREE', 'GIT_INDEX_FILE'):
        monkeypatch.delenv(name, raising=False)

    yield global_config


@pytest.fixture
def make_repos(tmp_path):
    """
    Factory building a blueprint remote and a local project from it.

    Returns:
        callable: (remote_versions, local_files, sub_dir='') -> (remote, root, local_dir)
    """
    def make(remote_versions, local_files, sub_dir=''):
        remote = create_remote_repo(tmp_path / 'remote', remote_versions)
        root, local_dir = create_local_repo(tmp_path / 'local', local_files, sub_dir=sub_dir)
        return remote, root, local_dir

    return make


@pytest.fixture
def upgrade():
    """
    Run an upgrade from a directory, leaving the process directory alone.

    Returns:
        callable: (local_dir, **options) -> Outcome
    """
    def run(local_dir, **options):
        options.setdefault('startTag', 'v1')
        options.setdefault('endTag', 'v3')
        before = os.getcwd()
        try:
            return git_diff_apply(options, cwd=local_dir, quiet=True)
        finally:
            assert os.getcwd() == before

    return run
