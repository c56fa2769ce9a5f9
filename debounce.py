import threading


class Debouncer:
    """Delay calls to ``func`` until ``wait`` seconds pass without a new call.

    Only the latest arguments are delivered. Each owner keeps its own
    Debouncer per field, so edits to one field never cancel another.
    """

    def __init__(self, func, wait=0.3):
        self.func = func
        self.wait = wait
        self._lock = threading.Lock()
        self._timer = None
        self._pending = None

    def __call__(self, *args, **kwargs):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = (args, kwargs)
            self._timer = threading.Timer(self.wait, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self):
        with self._lock:
            pending, self._pending = self._pending, None
            self._timer = None
        if pending is not None:
            args, kwargs = pending
            self.func(*args, **kwargs)

    @property
    def pending(self):
        return self._pending is not None

    def flush(self):
        """Deliver the pending call now instead of waiting for the timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self._fire()

    def cancel(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None


class DebouncerGroup:
    """One Debouncer per key (for example ``(item_id, field)``), created on demand."""

    def __init__(self, wait=0.3):
        self.wait = wait
        self._debouncers = {}
        self._lock = threading.Lock()

    def call(self, key, func, *args, **kwargs):
        with self._lock:
            debouncer = self._debouncers.get(key)
            if debouncer is None:
                debouncer = Debouncer(func, self.wait)
                self._debouncers[key] = debouncer
        debouncer(*args, **kwargs)

    def flush(self):
        for debouncer in list(self._debouncers.values()):
            debouncer.flush()

    def cancel(self):
        self.cancel_where(lambda key: True)

    def cancel_where(self, predicate):
        """Cancel and forget the debouncers whose key matches ``predicate``."""
        with self._lock:
            keys = [key for key in self._debouncers if predicate(key)]
            dropped = [self._debouncers.pop(key) for key in keys]
        for debouncer in dropped:
            debouncer.cancel()
