"""Wait for git's index.lock before staging or committing."""

from pathlib import Path

from autogit.gateway.time.abc import Time


def wait_for_index_lock(
    repo_root: Path,
    time: Time,
    *,
    max_wait_seconds: float = 5.0,
    poll_interval: float = 0.5,
) -> bool:
    """Poll until .git/index.lock disappears.

    Returns:
        True if the lock was released (or never existed), False on timeout
    """
    lock_path = repo_root / ".git" / "index.lock"
    elapsed = 0.0

    while lock_path.exists() and elapsed < max_wait_seconds:
        time.sleep(poll_interval)
        elapsed += poll_interval

    return not lock_path.exists()
