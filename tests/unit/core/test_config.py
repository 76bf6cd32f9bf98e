"""Tests for loading ~/.autogit/config.toml."""

from pathlib import Path

import pytest

from autogit.cli.config import (
    CONFIG_DIR_ENV,
    LoadedConfig,
    default_config_dir,
    load_config,
)
from autogit.core.backoff import BackoffPolicy
from autogit.core.errors import ValidationError


def _write(config_dir: Path, text: str) -> Path:
    (config_dir / "config.toml").write_text(text, encoding="utf-8")
    return config_dir


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    assert load_config(tmp_path) == LoadedConfig()


def test_all_sections_are_read(tmp_path: Path) -> None:
    _write(
        tmp_path,
        """
[defaults]
region = "uk"
remote = "upstream"
merge_method = "squash"

[review]
token_env = "MY_TOKEN"
blocked_max_attempts = 3
unknown_base_delay = 0.25
post_resolution_delay = 1

[heartbeat]
interval = 0

[co_authors]
names = ["Ada <ada@example.com>"]
rate = 25
""",
    )

    config = load_config(tmp_path)

    assert config.region == "UK"
    assert config.remote == "upstream"
    assert config.merge_method == "squash"
    assert config.token_env == "MY_TOKEN"
    assert config.review_policy.blocked == BackoffPolicy(
        base_delay=2.0, max_delay=10.0, max_attempts=3
    )
    assert config.review_policy.unknown.base_delay == 0.25
    assert config.review_policy.post_resolution_delay == 1.0
    assert config.heartbeat_interval == 0.0
    assert config.co_authors == ("Ada <ada@example.com>",)
    assert config.co_author_rate == 25


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ('[defaults]\nmerge_method = "fast"', "merge_method must be one of"),
        ("[review]\nblocked_max_attempts = 0", "positive integer"),
        ("[review]\nunknown_max_delay = -1", "non-negative number"),
        ("[heartbeat]\ninterval = true", "non-negative number"),
        ("[co_authors]\nrate = 150", "between 0 and 100"),
        ("[defaults\n", "Invalid TOML"),
    ],
)
def test_bad_values_are_rejected(tmp_path: Path, text: str, message: str) -> None:
    _write(tmp_path, text)

    with pytest.raises(ValidationError, match=message):
        load_config(tmp_path)


def test_config_dir_env_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(CONFIG_DIR_ENV, str(tmp_path))

    assert default_config_dir() == tmp_path


def test_default_config_dir_is_under_home(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_DIR_ENV, raising=False)

    assert default_config_dir() == Path.home() / ".autogit"
