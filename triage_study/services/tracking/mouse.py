"""
Pointer analytics: movement velocity and rage-click detection.
"""

import math
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional


@dataclass(frozen=True)
class PointerSample:
    x: float
    y: float
    timestamp: int  # epoch ms
    element_id: Optional[str] = None


def pointer_velocity(previous: PointerSample, current: PointerSample) -> float:
    """Pixels per second between two samples; 0 when no time has passed."""
    distance = math.hypot(current.x - previous.x, current.y - previous.y)
    delta_seconds = (current.timestamp - previous.timestamp) / 1000
    return distance / delta_seconds if delta_seconds > 0 else 0.0


@dataclass(frozen=True)
class RageClick:
    x: float
    y: float
    click_count: int
    window_ms: int
    element_id: Optional[str] = None


class RageClickDetector:
    """
    Flags bursts of clicks on roughly the same spot.

    A burst is CLICK_THRESHOLD clicks within WINDOW_MS, each within
    RADIUS_PX of the newest click. After a burst is reported the history is
    reset so one burst is reported once.
    """

    CLICK_THRESHOLD = 3
    WINDOW_MS = 1000
    RADIUS_PX = 30.0

    def __init__(
        self,
        click_threshold: int = CLICK_THRESHOLD,
        window_ms: int = WINDOW_MS,
        radius_px: float = RADIUS_PX,
    ):
        self.click_threshold = click_threshold
        self.window_ms = window_ms
        self.radius_px = radius_px
        self._clicks: Deque[PointerSample] = deque()

    def observe(self, click: PointerSample) -> Optional[RageClick]:
        while self._clicks and click.timestamp - self._clicks[0].timestamp > self.window_ms:
            self._clicks.popleft()
        self._clicks.append(click)

        nearby = [
            c for c in self._clicks
            if math.hypot(c.x - click.x, c.y - click.y) <= self.radius_px
        ]
        if len(nearby) < self.click_threshold:
            return None

        self._clicks.clear()
        return RageClick(
            x=click.x,
            y=click.y,
            click_count=len(nearby),
            window_ms=click.timestamp - nearby[0].timestamp,
            element_id=click.element_id,
        )


class MouseVelocityTracker:
    """Keeps the previous move so each new sample gets a velocity."""

    def __init__(self):
        self._last: Optional[PointerSample] = None

    def observe(self, sample: PointerSample) -> Optional[float]:
        velocity = pointer_velocity(self._last, sample) if self._last else None
        self._last = sample
        return velocity
