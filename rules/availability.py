"""Node availability state machine for contracts.

Every node of a contract is in exactly one of three states: ``Available``
(the player may pick it), ``Selected`` (the player picked it and it is still
reachable) or ``Unavailable``.  States are never stored; they are derived
from the contract, the player's selection and the runner roster on demand.

Gate rules can reference arbitrary, non-adjacent nodes, so the derivation is
a fixed-point iteration over the whole graph rather than a walk over the
direct neighbours of whatever changed.  Starting from nothing, a selected node
joins the *effective* selection once it is unlocked by nodes already in it.
Unlocking only ever depends on membership growing, so the iteration converges
to the same set no matter the order in which the player picked nodes, and
deselecting a node automatically demotes everything that depended on it.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Set, Tuple

from core.errors import IllegalSelectionError

from .conditions import evaluate_gate
from .errors import InvalidGateCondition
from .parser import parse_gate
from .schema import Contract, GateRule, Node, NodeKind, Runner

logger = logging.getLogger(__name__)


class NodeState(str, Enum):
    """Derived per-node state."""

    AVAILABLE = "Available"
    SELECTED = "Selected"
    UNAVAILABLE = "Unavailable"


#: Node kinds that are unlocked without any selected predecessor.
ROOT_KINDS = frozenset({NodeKind.START, NodeKind.SYNERGY})


class AvailabilityStateMachine:
    """Derives node states for one contract.

    The machine holds the contract only.  Selections and rosters are passed in
    on every call and returned selections are new tuples.
    """

    def __init__(self, contract: Contract) -> None:
        self._contract = contract

    @property
    def contract(self) -> Contract:
        return self._contract

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------
    def effective_selection(self, selection: Iterable[str], runners: Iterable[Runner]) -> FrozenSet[str]:
        """Return the selected nodes that are still reachable and unlocked."""

        return self._fixed_point(self._known(selection), tuple(runners), self._parse_gates())

    def _fixed_point(
        self,
        chosen: FrozenSet[str],
        roster: Tuple[Runner, ...],
        gates: Dict[str, Optional[GateRule]],
    ) -> FrozenSet[str]:
        supported: Set[str] = set()
        changed = True
        while changed:
            changed = False
            for node in self._contract.nodes:
                if node.id not in chosen or node.id in supported:
                    continue
                if self._is_unlocked(node, supported, roster, gates):
                    supported.add(node.id)
                    changed = True
        return frozenset(supported)

    def recompute(self, selection: Iterable[str], runners: Iterable[Runner]) -> Dict[str, NodeState]:
        """Return the state of every node, keyed by id in contract order."""

        roster = tuple(runners)
        chosen = self._known(selection)
        gates = self._parse_gates()
        supported = self._fixed_point(chosen, roster, gates)

        states: Dict[str, NodeState] = {}
        for node in self._contract.nodes:
            if node.id in supported:
                states[node.id] = NodeState.SELECTED
            elif node.id not in chosen and self._is_unlocked(node, supported, roster, gates):
                states[node.id] = NodeState.AVAILABLE
            else:
                states[node.id] = NodeState.UNAVAILABLE

        stale = sorted(chosen - supported)
        if stale:
            logger.debug("Selected but unreachable: %s", ", ".join(stale))
        return states

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def select(self, selection: Iterable[str], node_id: str, runners: Iterable[Runner]) -> Tuple[str, ...]:
        """Return ``selection`` with ``node_id`` appended.

        Raises :class:`IllegalSelectionError` unless the node is ``Available``.
        """

        self._contract.node(node_id)
        roster = tuple(runners)
        current = self.prune(selection, roster)
        state = self.recompute(current, roster)[node_id]
        if state is not NodeState.AVAILABLE:
            raise IllegalSelectionError(node_id, state.value)
        return current + (node_id,)

    def deselect(self, selection: Iterable[str], node_id: str, runners: Iterable[Runner]) -> Tuple[str, ...]:
        """Return ``selection`` without ``node_id`` and without anything that relied on it."""

        self._contract.node(node_id)
        remaining = tuple(item for item in selection if item != node_id)
        return self.prune(remaining, runners)

    def prune(self, selection: Iterable[str], runners: Iterable[Runner]) -> Tuple[str, ...]:
        """Drop unknown, duplicate and no longer reachable ids, keeping pick order."""

        selection = tuple(selection)
        supported = self.effective_selection(selection, runners)
        kept = []
        for node_id in selection:
            if node_id in supported and node_id not in kept:
                kept.append(node_id)
        return tuple(kept)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def gate_rule(self, node: Node) -> Optional[GateRule]:
        """Parse the gate rule of ``node``; ``None`` when absent or invalid."""

        if not node.is_gate:
            return None
        try:
            return parse_gate(node.gate_condition or "")
        except InvalidGateCondition as exc:
            logger.warning("Gate node %s is locked: %s", node.id, exc)
            return None

    def _parse_gates(self) -> Dict[str, Optional[GateRule]]:
        return {node.id: self.gate_rule(node) for node in self._contract.nodes if node.is_gate}

    def _known(self, selection: Iterable[str]) -> FrozenSet[str]:
        known = set()
        for node_id in selection:
            if node_id in self._contract:
                known.add(node_id)
            else:
                logger.warning("Ignoring unknown node id in selection: %s", node_id)
        return frozenset(known)

    def _is_unlocked(
        self,
        node: Node,
        supported: Set[str] | FrozenSet[str],
        runners: Tuple[Runner, ...],
        gates: Dict[str, Optional[GateRule]],
    ) -> bool:
        predecessors = self._contract.predecessors(node.id)
        if node.is_gate:
            rule = gates.get(node.id)
            if rule is None:
                return False
            if not any(parent in supported for parent in predecessors):
                return False
            return evaluate_gate(rule, runners, supported)
        if node.kind in ROOT_KINDS or not predecessors:
            return True
        return any(parent in supported for parent in predecessors)


def recompute_availability(
    contract: Contract, selection: Iterable[str], runners: Iterable[Runner]
) -> Dict[str, NodeState]:
    """Derive the state of every node of ``contract``."""

    return AvailabilityStateMachine(contract).recompute(selection, runners)


__all__ = ["AvailabilityStateMachine", "NodeState", "ROOT_KINDS", "recompute_availability"]
