"""Parse and normalize git remote URLs."""

import re
from dataclasses import dataclass
from typing import Literal

Platform = Literal["github", "gitlab", "bitbucket"]

_PLATFORM_HOSTS: dict[str, Platform] = {
    "github.com": "github",
    "gitlab.com": "gitlab",
    "bitbucket.org": "bitbucket",
}

# git@github.com:owner/repo.git
_SCP_PATTERN = re.compile(r"^(?:[\w.-]+@)?(?P<host>[\w.-]+):(?P<path>[^/].*)$")
# https://github.com/owner/repo.git, ssh://git@github.com/owner/repo
_URL_PATTERN = re.compile(
    r"^(?:https?|ssh|git)://(?:[^@/]+@)?(?P<host>[\w.-]+)(?::\d+)?/(?P<path>.+)$"
)


@dataclass(frozen=True)
class RepoLocation:
    host: str
    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def web_url(self) -> str:
        return f"https://{self.host}/{self.owner}/{self.repo}"


def _split_host_path(url: str) -> tuple[str, str] | None:
    url = url.strip()
    match = _URL_PATTERN.match(url)
    if match is None and "://" not in url:
        match = _SCP_PATTERN.match(url)
    if match is None:
        return None
    path = match.group("path").strip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")]
    return match.group("host").lower(), path


def parse_repo_url(url: str) -> RepoLocation | None:
    """Extract host/owner/repo from an HTTPS, ssh:// or scp-style URL.

    Returns None when the URL does not name an owner/repo pair.
    """
    split = _split_host_path(url)
    if split is None:
        return None
    host, path = split
    parts = path.split("/")
    if len(parts) < 2 or not parts[-1] or not parts[0]:
        return None
    # GitLab subgroups: everything before the last segment is the namespace
    return RepoLocation(host=host, owner="/".join(parts[:-1]), repo=parts[-1])


def detect_platform(url: str) -> Platform | None:
    split = _split_host_path(url)
    if split is None:
        return None
    return _PLATFORM_HOSTS.get(split[0])


def is_repo_url(source: str) -> bool:
    """True if ``source`` is a clonable URL on a known hosting platform."""
    return detect_platform(source) is not None and parse_repo_url(source) is not None


def extract_repo_name(url: str) -> str:
    location = parse_repo_url(url)
    if location is None:
        raise ValueError(f"Cannot determine repository name from URL: {url}")
    return location.repo


def normalize_remote_url(url: str) -> str:
    """Convert SSH remotes to https://host/owner/repo and strip a trailing .git."""
    location = parse_repo_url(url)
    if location is None:
        return url.strip().removesuffix(".git")
    return location.web_url
