"""Progress and completion events yielded by long-running operations.

Operations are generators: they yield ProgressEvent while working and finish
with a CompletionEvent carrying the result. The CLI decides how to render them.
"""

from dataclasses import dataclass
from typing import Generic, Literal, TypeVar

T = TypeVar("T")

EventLevel = Literal["info", "success", "warning", "error", "progress"]


@dataclass(frozen=True)
class ProgressEvent:
    message: str
    level: EventLevel = "info"
    phase: str = ""


@dataclass(frozen=True)
class CompletionEvent(Generic[T]):
    result: T
