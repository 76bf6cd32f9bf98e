"""Open the working copy a run operates on."""

import logging
from dataclasses import dataclass
from pathlib import Path

from autogit.core.errors import RepositoryStateError
from autogit.core.remote_url import extract_repo_name, is_repo_url
from autogit.gateway.git.abc import Git

logger = logging.getLogger(__name__)

CLONE_DEPTH = 1


@dataclass(frozen=True)
class RepositoryHandle:
    """Exclusive reference to one working copy bound to one remote.

    ``root`` is absolute and resolved when the handle is created.
    """

    root: Path
    remote: str
    remote_url: str

    def __post_init__(self) -> None:
        if not self.root.is_absolute():
            raise ValueError(f"Repository root must be absolute: {self.root}")


def _prepare_clone(git: Git, url: str, workspace: Path) -> Path:
    dest = (workspace / extract_repo_name(url)).resolve()
    if dest.exists():
        if git.is_repository(dest):
            logger.debug("Reusing existing clone at %s", dest)
            return dest
        raise RepositoryStateError(
            f"{dest} exists but is not a git repository; move it aside to clone {url}"
        )
    try:
        git.clone_repository(url, dest, depth=CLONE_DEPTH)
    except RuntimeError as e:
        raise RepositoryStateError(str(e)) from e
    return dest


def _prepare_local(git: Git, source: str, cwd: Path) -> Path:
    path = Path(source).expanduser()
    if not path.is_absolute():
        path = cwd / path
    path = path.resolve()
    if not path.exists():
        path.mkdir(parents=True)
    elif not path.is_dir():
        raise RepositoryStateError(f"{path} is not a directory")
    if not git.is_repository(path):
        logger.debug("Initializing repository at %s", path)
        git.init_repository(path)
    return path


def open_repository(git: Git, source: str, *, remote: str, workspace: Path) -> RepositoryHandle:
    """Resolve ``source`` to a working copy with ``remote`` configured.

    ``source`` is either a hosted repository URL (shallow-cloned into
    ``workspace``) or a local path (created and initialized when needed).

    Raises:
        RepositoryStateError: If the path cannot be used or the remote is missing
    """
    try:
        if is_repo_url(source):
            root = _prepare_clone(git, source, workspace)
        else:
            root = _prepare_local(git, source, workspace)
        remotes = git.list_remotes(root)
    except (RuntimeError, OSError) as e:
        raise RepositoryStateError(f"Cannot open repository {source}: {e}") from e

    if remote not in remotes:
        raise RepositoryStateError(f"Remote '{remote}' does not exist in {root}")
    try:
        remote_url = git.get_remote_url(root, remote)
    except (ValueError, RuntimeError) as e:
        raise RepositoryStateError(str(e)) from e
    return RepositoryHandle(root=root, remote=remote, remote_url=remote_url)
