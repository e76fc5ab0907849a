"""
Session countdown: warnings as the deadline approaches, one expiry.
"""

import logging
from typing import Callable, List, Optional, Tuple

from ..clock import Clock, now_ms

logger = logging.getLogger(__name__)

DEFAULT_DURATION_SECONDS = 15 * 60

# (seconds remaining, label), descending
WARNING_THRESHOLDS: Tuple[Tuple[int, str], ...] = (
    (300, "5min"),
    (120, "2min"),
    (60, "1min"),
)

WarningHook = Callable[[int, str], None]
ExpiryHook = Callable[[], None]


class CountdownTimer:
    """
    Derives remaining time from the session start on every ``tick``.

    The first tick only establishes a baseline, so resuming a session late
    does not replay old warnings. After that, a warning fires when the
    remaining time crosses its threshold between two ticks; a tick that
    skips past several thresholds fires each of them. Expiry fires exactly
    once.
    """

    def __init__(
        self,
        start_time: int,
        duration_seconds: int = DEFAULT_DURATION_SECONDS,
        on_warning: Optional[WarningHook] = None,
        on_expired: Optional[ExpiryHook] = None,
        clock: Clock = now_ms,
        thresholds: Tuple[Tuple[int, str], ...] = WARNING_THRESHOLDS,
    ):
        self.start_time = start_time
        self.duration_seconds = duration_seconds
        self.on_warning = on_warning
        self.on_expired = on_expired
        self.clock = clock
        self.thresholds = tuple(sorted(thresholds, key=lambda t: -t[0]))
        self._last_remaining: Optional[int] = None
        self._fired: List[str] = []
        self._expired = False

    @property
    def remaining_seconds(self) -> int:
        elapsed = (self.clock() - self.start_time) // 1000
        return max(0, int(self.duration_seconds - elapsed))

    @property
    def expired(self) -> bool:
        return self._expired

    @property
    def fired_warnings(self) -> List[str]:
        return list(self._fired)

    def tick(self) -> int:
        remaining = self.remaining_seconds
        last, self._last_remaining = self._last_remaining, remaining

        if last is not None:
            for seconds, label in self.thresholds:
                if last > seconds >= remaining and label not in self._fired:
                    self._fired.append(label)
                    logger.info(f"Timer warning: {label} remaining")
                    if self.on_warning is not None:
                        self.on_warning(seconds, label)

        if remaining == 0 and not self._expired:
            self._expired = True
            logger.info("Experiment time expired")
            if self.on_expired is not None:
                self.on_expired()
        return remaining
