"""
Inactivity monitor.

Every request handled by the gateway touches the monitor. A background
thread checks how long the gateway has been idle and, once the idle
threshold is exceeded, calls ``on_idle`` to stop the server. Open gateway
pages keep it alive by pinging the heartbeat endpoint.
"""

import logging
import threading
import time
from typing import Callable, Optional

from .config import MONITOR_INTERVAL_SECONDS, SHUTDOWN_TIMEOUT_SECONDS


class ActivityMonitor:
    """
    Tracks the time of the last request and fires once the gateway is idle.

    The lock only guards the timestamp; it is never held while doing I/O.
    """

    def __init__(
        self,
        on_idle: Callable[[], None],
        idle_timeout: float = SHUTDOWN_TIMEOUT_SECONDS,
        interval: float = MONITOR_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.on_idle = on_idle
        self.idle_timeout = idle_timeout
        self.interval = interval
        self.clock = clock
        self.last_activity = clock()
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.logger = logging.getLogger(__name__)

    def touch(self) -> None:
        """Record activity now."""
        with self._lock:
            self.last_activity = self.clock()

    def idle_seconds(self) -> float:
        """Seconds since the last recorded activity."""
        with self._lock:
            last = self.last_activity
        return self.clock() - last

    def check(self) -> bool:
        """
        Run one idle check.

        Returns:
            bool: True if the idle threshold was exceeded and on_idle was called
        """
        idle = self.idle_seconds()
        if idle <= self.idle_timeout:
            return False

        self.logger.info(f"No activity for {self.idle_timeout:g} seconds. Shutting down...")
        self._stopped.set()
        self.on_idle()
        return True

    def _run(self) -> None:
        while not self._stopped.wait(self.interval):
            if self.check():
                break

    def start(self) -> None:
        """Start the periodic check in a daemon thread."""
        if self._thread and self._thread.is_alive():
            return
        self._stopped.clear()
        self._thread = threading.Thread(target=self._run, name="gofer-activity", daemon=True)
        self._thread.start()
        self.logger.debug(
            f"Activity monitor started (idle timeout {self.idle_timeout:g}s, interval {self.interval:g}s)"
        )

    def stop(self) -> None:
        self._stopped.set()
        thread = self._thread
        if thread and thread is not threading.current_thread():
            thread.join(timeout=self.interval + 1)
        self._thread = None
