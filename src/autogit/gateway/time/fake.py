"""Fake Time that never blocks."""

from datetime import UTC, datetime, timedelta

from autogit.gateway.time.abc import Time

_DEFAULT_NOW = datetime(2024, 1, 15, 9, 0, 0, tzinfo=UTC)


class FakeTime(Time):
    """Virtual clock that advances only when sleep() is called.

    Mutation Tracking:
    -----------------
    - sleep_calls: every duration passed to sleep(), in order
    """

    def __init__(self, *, now: datetime | None = None) -> None:
        self._now = now if now is not None else _DEFAULT_NOW
        self._elapsed = 0.0
        self._sleep_calls: list[float] = []

    def sleep(self, seconds: float) -> None:
        self._sleep_calls.append(seconds)
        self._elapsed += seconds
        self._now = self._now + timedelta(seconds=seconds)

    def now(self) -> datetime:
        return self._now

    def monotonic(self) -> float:
        return self._elapsed

    @property
    def sleep_calls(self) -> list[float]:
        return list(self._sleep_calls)
