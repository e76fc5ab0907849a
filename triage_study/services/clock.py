import time
from typing import Callable

# Epoch milliseconds, the unit used by every stored timestamp
Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)
