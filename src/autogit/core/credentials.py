"""Review API credentials with an explicit authorization scheme."""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)

_FINE_GRAINED_PREFIX = "github_pat_"


class CredentialScheme(Enum):
    TOKEN = "token"
    BEARER = "Bearer"


@dataclass(frozen=True)
class Credential:
    """An accepted secret plus the scheme chosen for it."""

    scheme: CredentialScheme
    secret: str = field(repr=False)

    def authorization_header(self) -> str:
        return f"{self.scheme.value} {self.secret}"

    def __repr__(self) -> str:
        return f"Credential(scheme={self.scheme.name}, secret='***{self.secret[-4:]}')"


def _looks_like_jwt(secret: str) -> bool:
    parts = secret.split(".")
    return len(parts) == 3 and all(parts)


def resolve_credential(secret: str, scheme: CredentialScheme | None = None) -> Credential:
    """Accept a secret and decide its scheme once.

    Fine-grained personal access tokens and JWTs (GitHub App tokens) use the
    Bearer scheme; classic tokens use the token scheme.

    Raises:
        ValueError: If the secret is empty
    """
    secret = secret.strip()
    if not secret:
        raise ValueError("GitHub token is empty")
    if scheme is None:
        if secret.startswith(_FINE_GRAINED_PREFIX) or _looks_like_jwt(secret):
            scheme = CredentialScheme.BEARER
        else:
            scheme = CredentialScheme.TOKEN
    return Credential(scheme=scheme, secret=secret)


def fetch_gh_cli_token() -> str | None:
    """Ask the gh CLI for its token, if gh is installed and authenticated."""
    if shutil.which("gh") is None:
        return None
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=10,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("gh auth token failed: %s", e)
        return None
    token = result.stdout.strip()
    if result.returncode != 0 or not token:
        return None
    return token


def find_token(*, explicit: str | None, env_var: str) -> str | None:
    """Locate a token: explicit value, then environment, then the gh CLI."""
    if explicit:
        return explicit
    from_env = os.environ.get(env_var)
    if from_env:
        return from_env
    return fetch_gh_cli_token()
