"""Time abstraction so waits and timestamps can be faked in tests."""

from abc import ABC, abstractmethod
from datetime import datetime


class Time(ABC):
    """Abstract clock with a blocking sleep."""

    @abstractmethod
    def sleep(self, seconds: float) -> None:
        """Suspend the caller for the given number of seconds."""
        ...

    @abstractmethod
    def now(self) -> datetime:
        """Return the current timezone-aware time."""
        ...

    @abstractmethod
    def monotonic(self) -> float:
        """Return a monotonic reading in seconds for measuring elapsed time."""
        ...
