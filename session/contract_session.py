"""Stateful wrapper owning one selection and one runner roster for a contract."""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Iterable, Optional, Tuple

from rules.availability import AvailabilityStateMachine, NodeState
from rules.conditions import ConditionRegistry
from rules.engine import PoolAggregator
from rules.schema import ROSTER_SIZE, Contract, Runner, RunnerStat, RunnerType, default_roster
from session.config import BalancingConfig
from session.types import SessionSnapshot

logger = logging.getLogger(__name__)


class ContractSession:
    """Holds the mutable inputs of one contract run.

    Every mutation replaces the selection or roster wholesale, drops selected
    nodes that are no longer supported and returns a freshly recomputed
    :class:`SessionSnapshot`.  Nothing derived is cached between calls.
    """

    def __init__(
        self,
        contract: Contract,
        runners: Optional[Iterable[Runner]] = None,
        *,
        config: Optional[BalancingConfig] = None,
        condition_registry: Optional[ConditionRegistry] = None,
    ) -> None:
        self._contract = contract
        self._config = config or BalancingConfig()
        self._availability = AvailabilityStateMachine(contract)
        self._aggregator = PoolAggregator(contract, condition_registry=condition_registry)
        self._runners = self._normalise_roster(runners)
        self._selection: Tuple[str, ...] = ()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def contract(self) -> Contract:
        return self._contract

    @property
    def config(self) -> BalancingConfig:
        return self._config

    @property
    def selection(self) -> Tuple[str, ...]:
        return self._selection

    @property
    def runners(self) -> Tuple[Runner, ...]:
        return self._runners

    def snapshot(self) -> SessionSnapshot:
        availability = self._availability.recompute(self._selection, self._runners)
        result = self._aggregator.recompute(self._selection, self._runners)
        return SessionSnapshot(
            selection=self._selection,
            runners=self._runners,
            availability=availability,
            result=result,
            state_hash=self.state_hash(),
        )

    def node_state(self, node_id: str) -> NodeState:
        self._contract.node(node_id)
        return self._availability.recompute(self._selection, self._runners)[node_id]

    def select_node(self, node_id: str) -> SessionSnapshot:
        self._selection = self._availability.select(self._selection, node_id, self._runners)
        logger.debug("Selected node %s", node_id)
        return self.snapshot()

    def deselect_node(self, node_id: str) -> SessionSnapshot:
        before = self._selection
        self._selection = self._availability.deselect(self._selection, node_id, self._runners)
        self._log_demoted(before, exclude=node_id)
        return self.snapshot()

    def toggle_node(self, node_id: str) -> SessionSnapshot:
        if node_id in self._selection:
            return self.deselect_node(node_id)
        return self.select_node(node_id)

    def clear_selection(self) -> SessionSnapshot:
        self._selection = ()
        return self.snapshot()

    def set_runner_type(self, slot: int, runner_type: RunnerType | str) -> SessionSnapshot:
        runner = self._runner_at(slot)
        updated = Runner.model_validate({**runner.model_dump(), "type": RunnerType.from_string(runner_type)})
        return self._replace(updated)

    def set_runner_stat(self, slot: int, stat: RunnerStat | str, value: int) -> SessionSnapshot:
        """Set one stat of the runner in ``slot``, clamped to ``0..max_runner_stat``."""

        runner = self._runner_at(slot)
        key = RunnerStat.from_string(stat).value
        clamped = max(0, min(int(value), self._config.max_runner_stat))
        if clamped != value:
            logger.debug("Clamped %s of slot %d from %s to %d", key, slot, value, clamped)
        updated = Runner.model_validate({**runner.model_dump(), key: clamped})
        return self._replace(updated)

    def replace_runner(self, runner: Runner) -> SessionSnapshot:
        self._runner_at(runner.slot)
        return self._replace(runner)

    def state_hash(self) -> str:
        """Return a deterministic hash of the session inputs."""

        payload = {
            "contract": self._contract.name,
            "nodes": list(self._contract.node_ids),
            "selection": list(self._selection),
            "runners": [runner.model_dump(mode="json") for runner in self._runners],
        }
        return hashlib.sha256(json.dumps(payload, sort_keys=True).encode("utf8")).hexdigest()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _normalise_roster(runners: Optional[Iterable[Runner]]) -> Tuple[Runner, ...]:
        roster = list(default_roster())
        for runner in runners or ():
            roster[runner.slot] = runner
        return tuple(roster)

    def _runner_at(self, slot: int) -> Runner:
        if not 0 <= slot < ROSTER_SIZE:
            raise IndexError(f"Runner slot must be between 0 and {ROSTER_SIZE - 1}, got {slot}")
        return self._runners[slot]

    def _replace(self, runner: Runner) -> SessionSnapshot:
        roster = list(self._runners)
        roster[runner.slot] = runner
        self._runners = tuple(roster)
        before = self._selection
        self._selection = self._availability.prune(self._selection, self._runners)
        self._log_demoted(before)
        return self.snapshot()

    def _log_demoted(self, before: Tuple[str, ...], *, exclude: Optional[str] = None) -> None:
        demoted = [node_id for node_id in before if node_id not in self._selection and node_id != exclude]
        if demoted:
            logger.info("Deselected nodes that lost support: %s", ", ".join(demoted))


__all__ = ["ContractSession"]
