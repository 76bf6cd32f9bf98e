import shutil
from pathlib import Path

import pytest

from tests.test_utils.git_repos import GitWorld, build_git_world

if shutil.which("git") is None:
    pytest.skip("git executable not available", allow_module_level=True)


@pytest.fixture(autouse=True)
def isolated_git_identity(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep user and system git config out of the tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test Author")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "author@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test Author")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "author@example.com")


@pytest.fixture
def git_world(tmp_path: Path, isolated_git_identity: None) -> GitWorld:
    return build_git_world(tmp_path)
