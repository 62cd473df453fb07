"""Cancellable repeating timers that drive the cycle controller."""
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

logger = logging.getLogger(__name__)

class Ticker(ABC):
    """Fires ``callback`` every ``interval_ms`` until cancelled."""
    def __init__(self, interval_ms: int):
        self.interval_ms = interval_ms
        self._callback: Optional[Callable[[], None]] = None
    @property
    def active(self) -> bool:
        return self._callback is not None
    def set_interval(self, interval_ms: int):
        if interval_ms <= 0:
            raise ValueError("interval must be positive")
        self.interval_ms = interval_ms
    @abstractmethod
    def start(self, callback: Callable[[], None]):
        ...
    @abstractmethod
    def cancel(self):
        ...

class ThreadTicker(Ticker):
    """Runs the callback on a daemon thread, one firing at a time."""
    def __init__(self, interval_ms: int):
        super().__init__(interval_ms)
        self._stop: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
    def start(self, callback):
        self.cancel()
        self._callback = callback
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stop, callback), daemon=True)
        self._thread.start()
    def _run(self, stop: threading.Event, callback):
        deadline = time.monotonic() + self.interval_ms / 1000.0
        while not stop.wait(max(0.0, deadline - time.monotonic())):
            try:
                callback()
            except Exception:
                logger.exception("tick callback failed; stopping ticker")
                stop.set()
                if self._stop is stop:
                    self._callback = None
                break
            deadline = time.monotonic() + self.interval_ms / 1000.0
    def cancel(self):
        if self._stop is not None:
            self._stop.set()
        self._stop = None
        self._thread = None
        self._callback = None

class TkTicker(Ticker):
    """Schedules firings on a Tk widget's event loop with ``after``."""
    def __init__(self, widget, interval_ms: int):
        super().__init__(interval_ms)
        self.widget = widget
        self._after_id = None
    def start(self, callback):
        self.cancel()
        self._callback = callback
        self._after_id = self.widget.after(self.interval_ms, self._fire)
    def _fire(self):
        self._after_id = None
        callback = self._callback
        if callback is None:
            return
        callback()
        if self._callback is callback and self._after_id is None:
            self._after_id = self.widget.after(self.interval_ms, self._fire)
    def cancel(self):
        if self._after_id is not None:
            self.widget.after_cancel(self._after_id)
            self._after_id = None
        self._callback = None
