"""Throttle a callback to at most one run per interval on the asyncio loop."""

import asyncio
import time
from typing import Any, Callable, Optional, Tuple


class Sampler:
    """Leading-edge call plus one trailing call with the latest arguments.

    The first call runs immediately. Calls arriving within `interval` seconds
    of the last run are coalesced: only the most recent arguments are kept and
    run once when the interval has elapsed.
    """

    def __init__(
        self,
        fn: Callable[..., Any],
        interval: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fn = fn
        self.interval = interval
        self._clock = clock
        self._last_run: Optional[float] = None
        self._pending: Optional[Tuple[tuple, dict]] = None
        self._timer: Optional[asyncio.TimerHandle] = None

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        now = self._clock()
        self._pending = (args, kwargs)
        if self._last_run is None or now - self._last_run >= self.interval:
            self._cancel_timer()
            self._run()
        elif self._timer is None:
            delay = self.interval - (now - self._last_run)
            self._timer = asyncio.get_running_loop().call_later(delay, self._on_timer)

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def flush(self) -> None:
        """Run the pending call now, if any."""
        self._cancel_timer()
        if self._pending is not None:
            self._run()

    def cancel(self) -> None:
        self._cancel_timer()
        self._pending = None

    def _on_timer(self) -> None:
        self._timer = None
        if self._pending is not None:
            self._run()

    def _run(self) -> None:
        args, kwargs = self._pending
        self._pending = None
        self._last_run = self._clock()
        self._fn(*args, **kwargs)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
