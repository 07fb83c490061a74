import threading
import time


class FixedDelayLimiter:
    """
    Keeps at least `delay_seconds` between consecutive calls to wait().

    Only the wait() method is used by callers, so a token bucket can replace it.
    """

    def __init__(self, delay_seconds, clock=time.monotonic, sleep=time.sleep):
        self.delay_seconds = max(0.0, float(delay_seconds))
        self._clock = clock
        self._sleep = sleep
        self._last_call = None
        self._lock = threading.Lock()

    def wait(self):
        with self._lock:
            if self._last_call is not None:
                remaining = self.delay_seconds - (self._clock() - self._last_call)
                if remaining > 0:
                    self._sleep(remaining)
            self._last_call = self._clock()
