"""
Randomised think-time between browser interactions.

Every wait in the scraper goes through ``pause`` so the pacing stays
non-uniform and tests can neutralise it in one place.
"""

import random
import time

_sleep = time.sleep


def pause(bounds: tuple) -> float:
    """Sleep for a random duration within ``(low, high)`` seconds."""
    low, high = bounds
    delay = random.uniform(low, high)
    _sleep(delay)
    return delay


def wheel_delta(low: int, high: int) -> int:
    """Random mouse-wheel distance, so consecutive scrolls differ."""
    return random.randint(low, high)
