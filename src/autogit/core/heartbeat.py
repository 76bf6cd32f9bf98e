"""Background keep-alive progress while a run is busy."""

import logging
import threading
from collections.abc import Callable
from types import TracebackType

from autogit.core.events import ProgressEvent

logger = logging.getLogger(__name__)


class Heartbeat:
    """Emit ``describe()`` every ``interval`` seconds on a daemon thread.

    The thread only reads counters through ``describe``; it never touches the
    repository. An interval of zero disables the heartbeat.
    """

    def __init__(
        self,
        *,
        interval: float,
        describe: Callable[[], str],
        emit: Callable[[ProgressEvent], None],
    ) -> None:
        self._interval = interval
        self._describe = describe
        self._emit = emit
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._interval <= 0 or self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="autogit-heartbeat", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stopped.set()
        if self._thread is not None:
            self._thread.join(timeout=self._interval)
            self._thread = None

    def _run(self) -> None:
        while not self._stopped.wait(self._interval):
            self._emit(ProgressEvent(self._describe(), level="info", phase="heartbeat"))

    def __enter__(self) -> "Heartbeat":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()
