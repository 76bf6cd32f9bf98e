import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from autogit.core.backoff import (
    BLOCKED_BACKOFF,
    BRANCH_SYNC_DELAY,
    POST_RESOLUTION_DELAY,
    UNKNOWN_BACKOFF,
    BackoffPolicy,
    ReviewPolicy,
)
from autogit.core.calendar import DEFAULT_REGION
from autogit.core.errors import ValidationError
from autogit.gateway.github.real import DEFAULT_REQUEST_TIMEOUT
from autogit.gateway.github.types import MERGE_METHODS, MergeMethod

CONFIG_DIR_ENV = "AUTOGIT_CONFIG_DIR"

DEFAULT_HEARTBEAT_INTERVAL = 30.0


@dataclass(frozen=True)
class LoadedConfig:
    """In-memory representation of ~/.autogit/config.toml."""

    region: str = DEFAULT_REGION
    remote: str = "origin"
    merge_method: MergeMethod = "merge"
    token_env: str = "GITHUB_TOKEN"
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    review_policy: ReviewPolicy = field(default_factory=ReviewPolicy)
    heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL
    co_authors: tuple[str, ...] = ()
    co_author_rate: int = 0


def default_config_dir() -> Path:
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".autogit"


def _number(section: dict[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int | float) or value < 0:
        raise ValidationError(f"Config value '{key}' must be a non-negative number, got {value!r}")
    return float(value)


def _count(section: dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"Config value '{key}' must be a positive integer, got {value!r}")
    return value


def _backoff(section: dict[str, Any], prefix: str, default: BackoffPolicy) -> BackoffPolicy:
    return BackoffPolicy(
        base_delay=_number(section, f"{prefix}_base_delay", default.base_delay),
        max_delay=_number(section, f"{prefix}_max_delay", default.max_delay),
        max_attempts=_count(section, f"{prefix}_max_attempts", default.max_attempts),
    )


def validate_co_author_rate(rate: int) -> int:
    if not 0 <= rate <= 100:
        raise ValidationError(f"Co-author rate must be between 0 and 100, got {rate}")
    return rate


def load_config(config_dir: Path) -> LoadedConfig:
    """Load config.toml from the given directory if present; otherwise return defaults.

    Example config:
      [defaults]
      region = "UK"
      remote = "origin"
      merge_method = "squash"

      [review]
      token_env = "GITHUB_TOKEN"
      blocked_max_attempts = 20

      [heartbeat]
      interval = 15

      [co_authors]
      names = ["Ada Lovelace <ada@example.com>"]
      rate = 25

    Raises:
        ValidationError: If a value has the wrong type or range
    """
    cfg_path = config_dir / "config.toml"
    if not cfg_path.exists():
        return LoadedConfig()

    try:
        data = tomllib.loads(cfg_path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ValidationError(f"Invalid TOML in {cfg_path}: {e}") from e

    defaults = data.get("defaults", {})
    review = data.get("review", {})
    heartbeat = data.get("heartbeat", {})
    co_authors = data.get("co_authors", {})

    merge_method = str(defaults.get("merge_method", "merge"))
    if merge_method not in MERGE_METHODS:
        raise ValidationError(
            f"merge_method must be one of {', '.join(MERGE_METHODS)}, got {merge_method!r}"
        )

    rate = co_authors.get("rate", 0)
    if isinstance(rate, bool) or not isinstance(rate, int):
        raise ValidationError(f"Co-author rate must be an integer, got {rate!r}")

    policy = ReviewPolicy(
        blocked=_backoff(review, "blocked", BLOCKED_BACKOFF),
        unknown=_backoff(review, "unknown", UNKNOWN_BACKOFF),
        post_resolution_delay=_number(review, "post_resolution_delay", POST_RESOLUTION_DELAY),
        branch_sync_delay=_number(review, "branch_sync_delay", BRANCH_SYNC_DELAY),
    )

    return LoadedConfig(
        region=str(defaults.get("region", DEFAULT_REGION)).upper(),
        remote=str(defaults.get("remote", "origin")),
        merge_method=merge_method,  # type: ignore[arg-type]
        token_env=str(review.get("token_env", "GITHUB_TOKEN")),
        request_timeout=_number(review, "request_timeout", DEFAULT_REQUEST_TIMEOUT),
        review_policy=policy,
        heartbeat_interval=_number(heartbeat, "interval", DEFAULT_HEARTBEAT_INTERVAL),
        co_authors=tuple(str(name) for name in co_authors.get("names", [])),
        co_author_rate=validate_co_author_rate(rate),
    )
