"""Tests for index.lock waiting."""

from pathlib import Path

from autogit.gateway.git.lock import wait_for_index_lock
from autogit.gateway.time.fake import FakeTime


def test_no_lock_returns_immediately(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()
    time = FakeTime()

    assert wait_for_index_lock(tmp_path, time) is True
    assert time.sleep_calls == []


def test_held_lock_times_out(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "index.lock").touch()
    time = FakeTime()

    released = wait_for_index_lock(tmp_path, time, max_wait_seconds=1.0, poll_interval=0.5)

    assert released is False
    assert time.sleep_calls == [0.5, 0.5]
