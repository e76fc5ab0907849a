import random
from typing import Callable, Dict, Mapping, Optional

from .events import TraceEventType


class SamplingPolicy:
    """
    Decides whether an occurrence of an event type is kept.

    Only the pointer streams are sampled; every other type is recorded
    unconditionally. The random source is injectable so tests can make the
    decision deterministic.
    """

    DEFAULT_RATES: Dict[TraceEventType, float] = {
        TraceEventType.MOUSE_CLICK: 0.1,   # ~10% of clicks
        TraceEventType.MOUSE_MOVE: 0.01,   # ~1% of moves
    }

    def __init__(
        self,
        rates: Optional[Mapping[TraceEventType, float]] = None,
        rng: Callable[[], float] = random.random,
    ):
        self.rates = dict(self.DEFAULT_RATES if rates is None else rates)
        for event_type, rate in self.rates.items():
            if not 0.0 <= rate <= 1.0:
                raise ValueError(f"Sampling rate for {event_type} must be within [0, 1]")
        self.rng = rng

    @classmethod
    def record_all(cls) -> "SamplingPolicy":
        return cls(rates={})

    def rate_for(self, event_type: TraceEventType) -> float:
        return self.rates.get(TraceEventType(event_type), 1.0)

    def should_record(self, event_type: TraceEventType) -> bool:
        rate = self.rate_for(event_type)
        if rate >= 1.0:
            return True
        if rate <= 0.0:
            return False
        return self.rng() < rate
