"""Debouncer — coalesces bursts of calls into the last one.

Search-as-you-type fires on every keystroke; the filter pass should
only run once typing pauses:

    debounced = Debouncer(run_search, delay=0.2)
    for keystroke in keystrokes:
        debounced.schedule(current_query())
    # run_search() fires once, 200 ms after the final keystroke,
    # with the arguments of that final schedule() call.

Re-scheduling inside the window discards the earlier call.
"""

from __future__ import annotations
import logging
import threading
from typing import Any, Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """Delay a callable; a newer schedule() replaces the pending one."""

    __slots__ = ("_fn", "_delay", "_timer", "_pending", "_lock")

    def __init__(self, fn: Callable[..., Any], *, delay: float = 0.2) -> None:
        self._fn = fn
        self._delay = delay
        self._timer: threading.Timer | None = None
        self._pending: tuple[tuple, dict] | None = None   # (args, kwargs)
        self._lock = threading.Lock()

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def schedule(self, *args: Any, **kwargs: Any) -> None:
        """Arm the delay with these arguments, replacing any pending call."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = (args, kwargs)
            timer = threading.Timer(self._delay, self._fire, args=(self._pending,))
            timer.daemon = True
            self._timer = timer
            timer.start()
        logger.debug("debounce armed for %.3fs", self._delay)

    def cancel(self) -> bool:
        """Drop the pending call.  Returns True if one was pending."""
        with self._lock:
            return self._take() is not None

    def flush(self) -> bool:
        """Run the pending call now, on this thread.  False if none."""
        with self._lock:
            call = self._take()
        if call is None:
            return False
        args, kwargs = call
        self._fn(*args, **kwargs)
        return True

    def _take(self) -> tuple[tuple, dict] | None:
        # Caller holds the lock.
        call = self._pending
        self._pending = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        return call

    def _fire(self, call: tuple[tuple, dict]) -> None:
        with self._lock:
            # A later schedule() or a cancel() already superseded this call
            if self._pending is not call:
                return
            self._pending = None
            self._timer = None
        args, kwargs = call
        self._fn(*args, **kwargs)
