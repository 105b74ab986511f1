import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs ``work`` every ``interval_seconds`` on a daemon thread until stopped.

    A failing run is logged and the next tick proceeds as usual.
    """

    def __init__(self, name: str, interval_seconds: float, work: Callable[[], Any], run_immediately: bool = False):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.name = name
        self.interval_seconds = interval_seconds
        self.work = work
        self.run_immediately = run_immediately
        self.runs = 0
        self.failures = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=f"ticker-{self.name}", daemon=True)
        self._thread.start()
        logger.info(f"Started periodic task {self.name} (interval: {self.interval_seconds}s)")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info(f"Stopped periodic task {self.name}")

    def _loop(self) -> None:
        if not self.run_immediately and self._stop.wait(self.interval_seconds):
            return
        while not self._stop.is_set():
            self._tick()
            if self._stop.wait(self.interval_seconds):
                return

    def _tick(self) -> None:
        try:
            self.work()
        except Exception as e:
            self.failures += 1
            logger.error(f"Periodic task {self.name} failed: {e}", exc_info=True)
        finally:
            self.runs += 1
