"""Utilities that centralise the project's randomness handling.

Only contract resolution rolls dice; the evaluation engine itself is fully
deterministic and never touches these generators.
"""

from __future__ import annotations

import hashlib
import json
import os
import random
from typing import Optional

import numpy as np

_GLOBAL_SEED: Optional[int] = None
_GLOBAL_SEED_SEQUENCE: np.random.SeedSequence = np.random.SeedSequence()


def seed_everything(seed: Optional[int]) -> int:
    """Seed Python's ``random`` module and the global NumPy seed sequence.

    Resolvers and runner generators built without their own seed spawn their
    generators from that sequence, so one call makes a whole run replayable.

    Parameters
    ----------
    seed:
        The value to seed every RNG with.  When *None*, a seed derived from
        :func:`os.urandom` is used which keeps the RNGs in a valid state but
        does not guarantee reproducible damage rolls.

    Returns
    -------
    int
        The seed that was applied, so callers can log it for replays.
    """

    global _GLOBAL_SEED, _GLOBAL_SEED_SEQUENCE

    if seed is None:
        seed = int.from_bytes(os.urandom(8), "big")

    _GLOBAL_SEED = int(seed)
    random.seed(seed)
    _GLOBAL_SEED_SEQUENCE = np.random.SeedSequence(seed)
    return _GLOBAL_SEED


def current_seed() -> Optional[int]:
    return _GLOBAL_SEED


def spawn_seed_sequence() -> np.random.SeedSequence:
    """Return a child seed sequence derived from the global configuration."""

    return _GLOBAL_SEED_SEQUENCE.spawn(1)[0]


def seed_sequence_for(seed: Optional[int]) -> np.random.SeedSequence:
    """Return a dedicated sequence for ``seed``, or a child of the global one when unseeded.

    A resolver built with an explicit seed replays the same damage rolls no
    matter what else has drawn from the global configuration.
    """

    if seed is None:
        return spawn_seed_sequence()
    return np.random.SeedSequence(seed)


def generator_from_seed_sequence(seed_sequence: np.random.SeedSequence) -> np.random.Generator:
    """Create a new generator initialised with ``seed_sequence``."""

    return np.random.Generator(np.random.PCG64(seed_sequence))


def generator_state_digest(generator: np.random.Generator) -> str:
    """Return a SHA256 digest of ``generator``'s internal state."""

    state = generator.bit_generator.state
    return hashlib.sha256(json.dumps(state, sort_keys=True).encode("utf8")).hexdigest()


__all__ = [
    "current_seed",
    "generator_from_seed_sequence",
    "generator_state_digest",
    "seed_everything",
    "seed_sequence_for",
    "spawn_seed_sequence",
]
