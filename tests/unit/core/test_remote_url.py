"""Tests for remote URL parsing."""

import pytest

from autogit.core.remote_url import (
    RepoLocation,
    detect_platform,
    extract_repo_name,
    is_repo_url,
    normalize_remote_url,
    parse_repo_url,
)


@pytest.mark.parametrize(
    "url",
    [
        "https://github.com/octo/widgets",
        "https://github.com/octo/widgets.git",
        "https://github.com/octo/widgets/",
        "git@github.com:octo/widgets.git",
        "ssh://git@github.com/octo/widgets.git",
        "https://user:pw@GitHub.com/octo/widgets.git",
    ],
)
def test_github_url_forms(url: str) -> None:
    assert parse_repo_url(url) == RepoLocation(host="github.com", owner="octo", repo="widgets")


def test_gitlab_subgroups_join_namespace() -> None:
    location = parse_repo_url("https://gitlab.com/group/sub/project.git")

    assert location == RepoLocation(host="gitlab.com", owner="group/sub", repo="project")
    assert location.full_name == "group/sub/project"


@pytest.mark.parametrize(
    ("url", "platform"),
    [
        ("https://github.com/a/b", "github"),
        ("git@gitlab.com:a/b.git", "gitlab"),
        ("https://bitbucket.org/a/b", "bitbucket"),
        ("https://example.com/a/b", None),
        ("not a url", None),
    ],
)
def test_detect_platform(url: str, platform: str | None) -> None:
    assert detect_platform(url) == platform


def test_local_paths_are_not_repo_urls() -> None:
    assert not is_repo_url("/tmp/repo")
    assert not is_repo_url("./work/repo")
    assert not is_repo_url("https://github.com/onlyowner")
    assert is_repo_url("https://github.com/octo/widgets")


def test_extract_repo_name() -> None:
    assert extract_repo_name("git@github.com:octo/widgets.git") == "widgets"
    with pytest.raises(ValueError, match="Cannot determine repository name"):
        extract_repo_name("https://github.com/")


def test_normalize_remote_url() -> None:
    assert normalize_remote_url("git@github.com:octo/widgets.git") == (
        "https://github.com/octo/widgets"
    )
    assert normalize_remote_url("/srv/git/thing.git") == "/srv/git/thing"
