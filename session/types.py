"""Common dataclasses shared by the session layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from rules.availability import NodeState
from rules.engine import PoolResult
from rules.schema import Runner


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything a presentation layer needs after one mutation."""

    selection: Tuple[str, ...]
    runners: Tuple[Runner, ...]
    availability: Dict[str, NodeState]
    result: PoolResult
    state_hash: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "selection": list(self.selection),
            "runners": [runner.model_dump(mode="json") for runner in self.runners],
            "availability": {node_id: state.value for node_id, state in self.availability.items()},
            "result": self.result.to_payload(),
            "state_hash": self.state_hash,
        }


__all__ = ["SessionSnapshot"]
