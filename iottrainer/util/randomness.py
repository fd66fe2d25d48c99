from __future__ import annotations

"""Randomness helpers: explicit random sources and seeding."""

import os
import random
from typing import List, Optional, Sequence, TypeVar

import numpy as np


T = TypeVar("T")


def env_seed() -> Optional[int]:
    """Return the SEED env var as int, or None when unset/invalid."""
    seed = os.environ.get("SEED")
    if seed is None:
        return None
    try:
        return int(seed)
    except ValueError:
        return None


def seed_if_needed() -> None:
    """Seed global RNGs if SEED env var is set."""
    s = env_seed()
    if s is None:
        return
    random.seed(s)
    np.random.seed(s)


def make_rng(seed: Optional[int] = None) -> random.Random:
    """Build an explicit random source.

    Falls back to the SEED env var, then to OS entropy.
    """
    if seed is None:
        seed = env_seed()
    return random.Random(seed)


def pick(rng: random.Random, items: Sequence[T]) -> T:
    """Pick one element uniformly."""
    return items[rng.randrange(len(items))]


def shuffled(rng: random.Random, items: Sequence[T]) -> List[T]:
    """Return a shuffled copy (Fisher-Yates via random.shuffle)."""
    out = list(items)
    rng.shuffle(out)
    return out
