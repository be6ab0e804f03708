"""Random number source used by the search engine.

A controller owns one ``random.Random`` instance; every stochastic helper
takes it explicitly so runs can be reproduced by injecting a seeded source.
"""

from __future__ import annotations

import os
import random
import time


def create_rng(seed: int | None = None) -> random.Random:
    """Create the random source for one search run.

    Args:
        seed: Fixed seed for reproducible runs. When None the seed mixes the
              wall clock with bytes from ``os.urandom``.

    Returns:
        A new ``random.Random`` instance
    """
    if seed is None:
        entropy = int.from_bytes(os.urandom(8), "little")
        seed = (time.time_ns() << 1) ^ entropy
    return random.Random(seed)


def random_boolean(rng: random.Random, probability: float = 0.5) -> bool:
    """Return True with the given probability.

    Raises:
        ValueError: If probability is outside [0, 1]
    """
    if probability < 0.0 or probability > 1.0:
        raise ValueError(f"probability must be within [0, 1], got {probability}")
    if probability == 0.0:
        return False
    if probability == 1.0:
        return True
    return rng.random() < probability


def asc_random_int(rng: random.Random, n: int) -> int:
    """Draw an int from [0, n) biased towards small values.

    P(k) is proportional to (n - k), so index 0 (the best ranked individual
    in a sorted generation) is the most likely pick.
    """
    if n <= 0:
        raise ValueError(f"n must be positive, got {n}")
    weights = range(n, 0, -1)
    return rng.choices(range(n), weights=weights)[0]
