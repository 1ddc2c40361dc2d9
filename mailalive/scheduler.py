import threading
from typing import Callable, Optional

from .logging_setup import logger


class PeriodicTask:
    """Run ``action`` now and then every ``interval`` seconds in a daemon thread until stopped."""

    def __init__(self, name: str, interval: float, action: Callable[[], None]):
        self.name = name
        self.interval = float(interval)
        self.action = action
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def _run(self) -> None:
        logger.info(f"[{self.name}] loop started (interval={self.interval:g}s)")
        while not self._stop_event.is_set():
            try:
                self.action()
            except Exception as e:
                logger.exception(f"[{self.name}] loop failure: {e}")
            self._stop_event.wait(self.interval)
        logger.info(f"[{self.name}] loop stopped")

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
