"""Pydantic models describing contracts, runners and parsed rule expressions."""

from __future__ import annotations

from enum import Enum
from functools import cached_property
from typing import Annotated, Any, Dict, Iterable, List, Literal, Mapping, Optional, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from .errors import NodeNotFoundError

NODE_ID_PATTERN = r"^[A-Za-z0-9_-]+$"
ROSTER_SIZE = 3


class _LabelEnum(str, Enum):
    """String enum that resolves labels case-insensitively."""

    @classmethod
    def from_string(cls, value: Any) -> "_LabelEnum":
        if isinstance(value, cls):
            return value
        normalised = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == normalised or member.name.lower() == normalised:
                return member
        raise ValueError(f"Unsupported {cls.__name__} value: {value!r}")


class NodeKind(_LabelEnum):
    NORMAL = "Normal"
    SYNERGY = "Synergy"
    START = "Start"
    END = "End"
    GATE = "Gate"


class NodeColor(_LabelEnum):
    RED = "Red"
    YELLOW = "Yellow"
    GREEN = "Green"
    BLUE = "Blue"
    PURPLE = "Purple"
    GREY = "Grey"


class RunnerType(_LabelEnum):
    EMPTY = "Empty"
    FACE = "Face"
    MUSCLE = "Muscle"
    HACKER = "Hacker"
    NINJA = "Ninja"


class RunnerStat(_LabelEnum):
    """The four stats every runner carries."""

    FACE = "face"
    MUSCLE = "muscle"
    HACKER = "hacker"
    NINJA = "ninja"


class RunnerCondition(_LabelEnum):
    """Health of a runner; only contract resolution changes it."""

    READY = "Ready"
    INJURED = "Injured"
    DEAD = "Dead"


class PoolStat(_LabelEnum):
    DAMAGE = "damage"
    RISK = "risk"
    MONEY = "money"
    GRIT = "grit"
    VEIL = "veil"


class Operator(_LabelEnum):
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"

    @property
    def is_additive(self) -> bool:
        return self in (Operator.ADD, Operator.SUBTRACT)


class Comparison(_LabelEnum):
    GREATER_EQUAL = ">="
    LESS_EQUAL = "<="
    GREATER = ">"
    LESS = "<"
    EQUAL = "="

    def compare(self, left: int, right: int) -> bool:
        if self is Comparison.GREATER_EQUAL:
            return left >= right
        if self is Comparison.LESS_EQUAL:
            return left <= right
        if self is Comparison.GREATER:
            return left > right
        if self is Comparison.LESS:
            return left < right
        return left == right


class GateKind(_LabelEnum):
    NODE = "Node"
    RUNNER_TYPE = "RunnerType"
    RUNNER_STAT = "RunnerStat"


# --------------------------------------------------------------------- records
def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    if isinstance(value, str):
        return value.strip()
    return value


def _split_connections(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        if not value.strip():
            return ()
        separator = "," if "," in value else ";"
        parts: Iterable[Any] = value.split(separator)
    else:
        parts = value
    return tuple(str(part).strip() for part in parts if part is not None and str(part).strip())


class Node(BaseModel):
    """A single selectable unit of a contract.

    Effect and gate strings are kept raw.  They are parsed on every evaluation
    pass so that a malformed string only disables the node or effect carrying
    it, never the whole contract.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)
    id: str = Field(..., pattern=NODE_ID_PATTERN, validation_alias=AliasChoices("id", "Node ID"))
    kind: NodeKind = Field(default=NodeKind.NORMAL, validation_alias=AliasChoices("kind", "type", "Type"))
    color: NodeColor = Field(default=NodeColor.GREY, validation_alias=AliasChoices("color", "Color"))
    effect1: Optional[str] = Field(default=None, validation_alias=AliasChoices("effect1", "Effect 1"))
    effect2: Optional[str] = Field(default=None, validation_alias=AliasChoices("effect2", "Effect 2"))
    gate_condition: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gate_condition", "gateCondition", "GateCondition"),
    )
    connections: Tuple[str, ...] = Field(
        default=(), validation_alias=AliasChoices("connections", "Connections")
    )
    description: str = Field(default="", validation_alias=AliasChoices("description", "Description"))

    @field_validator("kind", mode="before")
    @classmethod
    def _coerce_kind(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        return NodeKind.NORMAL if value is None else NodeKind.from_string(value)

    @field_validator("color", mode="before")
    @classmethod
    def _coerce_color(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        return NodeColor.GREY if value is None else NodeColor.from_string(value)

    @field_validator("effect1", "effect2", "gate_condition", mode="before")
    @classmethod
    def _strip_expression(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("connections", mode="before")
    @classmethod
    def _coerce_connections(cls, value: Any) -> Tuple[str, ...]:
        return _split_connections(value)

    @field_validator("description", mode="before")
    @classmethod
    def _coerce_description(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @model_validator(mode="after")
    def _validate_gate(self) -> "Node":
        if self.kind is NodeKind.GATE and not self.gate_condition:
            raise ValueError(f"Gate node '{self.id}' requires a gate condition")
        return self

    @property
    def is_gate(self) -> bool:
        return self.kind is NodeKind.GATE

    def effect_slots(self) -> List[Tuple[int, str]]:
        """Return ``(slot, raw)`` pairs for every non-empty effect string."""

        slots = []
        for slot, raw in ((1, self.effect1), (2, self.effect2)):
            if raw:
                slots.append((slot, raw))
        return slots


def _accepted_record_keys() -> frozenset:
    keys = set()
    for name, info in Node.model_fields.items():
        keys.add(name)
        alias = info.validation_alias
        if isinstance(alias, AliasChoices):
            keys.update(choice for choice in alias.choices if isinstance(choice, str))
    return frozenset(keys)


class Runner(BaseModel):
    """A team member occupying one roster slot."""

    model_config = ConfigDict(extra="forbid", frozen=True)
    slot: int = Field(default=0, ge=0, lt=ROSTER_SIZE)
    type: RunnerType = RunnerType.EMPTY
    face: int = Field(default=0, ge=0)
    muscle: int = Field(default=0, ge=0)
    hacker: int = Field(default=0, ge=0)
    ninja: int = Field(default=0, ge=0)
    name: str = ""
    condition: RunnerCondition = RunnerCondition.READY
    level: int = Field(default=1, ge=1)
    contracts_completed: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _flatten_stats(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and isinstance(data.get("stats"), Mapping):
            flattened = {key: value for key, value in data.items() if key != "stats"}
            for stat, value in data["stats"].items():
                flattened.setdefault(str(stat).lower(), value)
            return flattened
        return data

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> Any:
        return RunnerType.from_string(value)

    @field_validator("condition", mode="before")
    @classmethod
    def _coerce_condition(cls, value: Any) -> Any:
        return RunnerCondition.from_string(value)

    @property
    def is_active(self) -> bool:
        """Empty slots never contribute to any total."""

        return self.type is not RunnerType.EMPTY

    def stat(self, stat: RunnerStat) -> int:
        return getattr(self, stat.value)


def default_roster() -> Tuple[Runner, ...]:
    """Return a roster of empty runners, one per slot."""

    return tuple(Runner(slot=slot) for slot in range(ROSTER_SIZE))


class Contract(BaseModel):
    """The node graph a player works through.

    ``nodes`` keeps the load order, which doubles as the canonical order used
    whenever the engine needs a deterministic walk over the graph.
    """

    model_config = ConfigDict(extra="forbid")
    name: str = ""
    nodes: List[Node] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_unique_ids(self) -> "Contract":
        seen = set()
        for node in self.nodes:
            if node.id in seen:
                raise ValueError(f"Duplicate node id '{node.id}'")
            seen.add(node.id)
        return self

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]], *, name: str = "") -> "Contract":
        """Build a contract from loader rows, dropping presentational columns."""

        accepted = _accepted_record_keys()
        nodes = []
        for record in records:
            payload = {key: value for key, value in record.items() if key in accepted}
            nodes.append(Node.model_validate(payload))
        return cls(name=name, nodes=nodes)

    # ------------------------------------------------------------------ lookup
    @cached_property
    def node_index(self) -> Dict[str, Node]:
        return {node.id: node for node in self.nodes}

    @cached_property
    def node_positions(self) -> Dict[str, int]:
        return {node.id: index for index, node in enumerate(self.nodes)}

    @cached_property
    def predecessor_index(self) -> Dict[str, Tuple[str, ...]]:
        incoming: Dict[str, List[str]] = {node.id: [] for node in self.nodes}
        for node in self.nodes:
            for target in node.connections:
                if target in incoming and node.id not in incoming[target]:
                    incoming[target].append(node.id)
        return {node_id: tuple(sources) for node_id, sources in incoming.items()}

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.node_index

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def node_ids(self) -> Tuple[str, ...]:
        return tuple(node.id for node in self.nodes)

    def node(self, node_id: str) -> Node:
        try:
            return self.node_index[node_id]
        except KeyError as exc:
            raise NodeNotFoundError(node_id) from exc

    def position(self, node_id: str) -> int:
        try:
            return self.node_positions[node_id]
        except KeyError as exc:
            raise NodeNotFoundError(node_id) from exc

    def successors(self, node_id: str) -> Tuple[str, ...]:
        return tuple(target for target in self.node(node_id).connections if target in self.node_index)

    def predecessors(self, node_id: str) -> Tuple[str, ...]:
        self.node(node_id)
        return self.predecessor_index[node_id]

    def descendants(self, node_id: str) -> Tuple[str, ...]:
        """Return every node reachable from ``node_id``, in contract order."""

        seen = set()
        frontier = list(self.successors(node_id))
        while frontier:
            current = frontier.pop()
            if current in seen:
                continue
            seen.add(current)
            frontier.extend(self.successors(current))
        seen.discard(node_id)
        return tuple(node.id for node in self.nodes if node.id in seen)

    def start_nodes(self) -> Tuple[str, ...]:
        return tuple(node.id for node in self.nodes if node.kind is NodeKind.START)

    def unknown_connections(self) -> List[Tuple[str, str]]:
        return [
            (node.id, target)
            for node in self.nodes
            for target in node.connections
            if target not in self.node_index
        ]


# -------------------------------------------------------------- parsed forms
class AlwaysCondition(BaseModel):
    """``None``: always satisfied."""

    model_config = ConfigDict(extra="forbid", frozen=True)
    kind: Literal["None"] = "None"


class RunnerTypeCondition(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)
    kind: Literal["RunnerType"] = "RunnerType"
    runner_type: RunnerType

    @field_validator("runner_type")
    @classmethod
    def _reject_empty(cls, value: RunnerType) -> RunnerType:
        if value is RunnerType.EMPTY:
            raise ValueError("RunnerType conditions cannot target empty slots")
        return value


class RunnerStatCondition(BaseModel):
    """Compare the roster-wide sum of one or more stats against a value."""

    model_config = ConfigDict(extra="forbid", frozen=True)
    kind: Literal["RunnerStat"] = "RunnerStat"
    stats: Tuple[RunnerStat, ...] = Field(..., min_length=1)
    comparison: Comparison
    value: int


class NodeColorCondition(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)
    kind: Literal["NodeColor"] = "NodeColor"
    color: NodeColor


class NodeColorComboCondition(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)
    kind: Literal["NodeColorCombo"] = "NodeColorCombo"
    colors: Tuple[NodeColor, ...] = Field(..., min_length=1)


class ExtensionCondition(BaseModel):
    """A condition whose evaluation rule is supplied by a registry handler."""

    model_config = ConfigDict(extra="forbid", frozen=True)
    kind: Literal["Extension"] = "Extension"
    name: str = Field(..., min_length=1)
    argument: Optional[str] = None


Condition = Annotated[
    Union[
        AlwaysCondition,
        RunnerTypeCondition,
        RunnerStatCondition,
        NodeColorCondition,
        NodeColorComboCondition,
        ExtensionCondition,
    ],
    Field(discriminator="kind"),
]


class Effect(BaseModel):
    """Parsed ``Condition;Operator;Amount;Stat`` effect."""

    model_config = ConfigDict(extra="forbid", frozen=True)
    condition: Condition
    operator: Operator
    amount: int
    stat: PoolStat
    raw: str = ""


class NodeGate(BaseModel):
    """``Node:<ids>;T``: all listed nodes when ``T`` is 0, else at least ``T``."""

    model_config = ConfigDict(extra="forbid", frozen=True)
    kind: Literal["Node"] = "Node"
    node_ids: Tuple[str, ...] = Field(..., min_length=1)
    threshold: int = Field(default=0, ge=0)


class RunnerTypeGate(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)
    kind: Literal["RunnerType"] = "RunnerType"
    runner_types: Tuple[RunnerType, ...] = Field(..., min_length=1)
    threshold: int = Field(default=0, ge=0)


class RunnerStatGate(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)
    kind: Literal["RunnerStat"] = "RunnerStat"
    stats: Tuple[RunnerStat, ...] = Field(..., min_length=1)
    threshold: int = Field(default=0, ge=0)


GateRule = Annotated[
    Union[NodeGate, RunnerTypeGate, RunnerStatGate],
    Field(discriminator="kind"),
]


def get_contract_json_schema() -> Dict[str, Any]:
    """Return the JSON schema used to validate contract payloads."""

    return Contract.model_json_schema()


__all__ = [
    "NODE_ID_PATTERN",
    "ROSTER_SIZE",
    "AlwaysCondition",
    "Comparison",
    "Condition",
    "Contract",
    "Effect",
    "ExtensionCondition",
    "GateKind",
    "GateRule",
    "Node",
    "NodeColor",
    "NodeColorComboCondition",
    "NodeColorCondition",
    "NodeGate",
    "NodeKind",
    "Operator",
    "PoolStat",
    "Runner",
    "RunnerCondition",
    "RunnerStat",
    "RunnerStatCondition",
    "RunnerStatGate",
    "RunnerType",
    "RunnerTypeCondition",
    "RunnerTypeGate",
    "default_roster",
    "get_contract_json_schema",
]
