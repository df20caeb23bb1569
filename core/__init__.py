"""Cross-cutting helpers shared by the rules engine and the session layer."""

from .errors import ContractEngineError, ErrorDetails, IllegalSelectionError
from .logging_config import setup_logging
from .random_control import (
    current_seed,
    generator_from_seed_sequence,
    generator_state_digest,
    seed_everything,
    seed_sequence_for,
    spawn_seed_sequence,
)

__all__ = [
    "ContractEngineError",
    "ErrorDetails",
    "IllegalSelectionError",
    "setup_logging",
    "current_seed",
    "generator_from_seed_sequence",
    "generator_state_digest",
    "seed_everything",
    "seed_sequence_for",
    "spawn_seed_sequence",
]
