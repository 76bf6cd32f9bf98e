"""Wall-clock implementation of Time."""

import time
from datetime import UTC, datetime

from autogit.gateway.time.abc import Time


class RealTime(Time):
    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)

    def now(self) -> datetime:
        return datetime.now(UTC)

    def monotonic(self) -> float:
        return time.monotonic()
