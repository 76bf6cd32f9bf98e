"""Value types returned by the Git gateway."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class CommitInfo:
    sha: str
    message: str
    authored_at: datetime
