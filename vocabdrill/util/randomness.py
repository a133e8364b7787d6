from __future__ import annotations

"""Randomness helpers: process seeding and injectable generators."""

import os
import random
from typing import Optional

import numpy as np


def seed_from_env() -> Optional[int]:
    seed = os.environ.get("SEED")
    if seed is None:
        return None
    try:
        return int(seed)
    except ValueError:
        return None


def seed_if_needed() -> None:
    """Seed RNGs if SEED env var is set."""
    s = seed_from_env()
    if s is not None:
        random.seed(s)
        np.random.seed(s)


def make_rng(seed: Optional[int] = None) -> random.Random:
    """Isolated generator for the selector and word store.

    Falls back to the SEED env var so whole CLI runs are reproducible.
    """
    if seed is None:
        seed = seed_from_env()
    return random.Random(seed)
