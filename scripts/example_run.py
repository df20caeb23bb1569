from core.logging_config import setup_logging
from core.random_control import current_seed, seed_everything
from rules.extensions import build_prevention_registry
from rules.schema import Contract
from rules.validation import validate_contract
from session.contract_session import ContractSession
from session.resolution import ContractResolver, parse_damage_table
from session.runner_generator import NameTable, RunnerGenerator

SEED = 42

CONTRACT_ROWS = [
    {"Node ID": "S", "Type": "Start", "Color": "Grey", "Effect 1": "None;+;2;damage", "Connections": "A,B"},
    {"Node ID": "A", "Color": "Red", "Effect 1": "None;+;300;money", "Effect 2": "RunnerType:Muscle;+;4;grit", "Connections": "G"},
    {"Node ID": "B", "Color": "Blue", "Effect 1": "NodeColor:Red;*;2;money", "Effect 2": "None;+;2;risk", "Connections": "G"},
    {"Node ID": "G", "Type": "Gate", "GateCondition": "Node:A,B;0", "Connections": "E"},
    {"Node ID": "E", "Type": "End", "Color": "Green", "Effect 1": "RunnerStat:hacker>=3;+;2;veil", "Effect 2": "PrevDam;+;150;money"},
]

DAMAGE_TABLE_ROWS = [
    {"Roll Range": "1-10", "Effect": "Injury"},
    {"Roll Range": "11-15", "Effect": "Death"},
    {"Roll Range": "16-40", "Effect": "Reduce 15"},
    {"Roll Range": "41-90", "Effect": "No Effect"},
    {"Roll Range": "91-100", "Effect": "Extra 5"},
]

NAME_ROWS = [["Neon", "Fox"], ["Chrome", "Wire"], ["Static", "Ghost"]]


def main():
    logger = setup_logging()
    seed_everything(SEED)
    logger.info("Seeded run with %d", current_seed())

    extensions = build_prevention_registry()
    contract = Contract.from_records(CONTRACT_ROWS, name="demo")
    report = validate_contract(contract, condition_registry=extensions)
    logger.info("Contract valid=%s warnings=%d", report.is_valid, len(report.warnings))

    crew = RunnerGenerator(NameTable.from_rows(NAME_ROWS)).generate_batch(2)
    for runner in crew:
        logger.info("Hired %s (%s) in slot %d", runner.name, runner.type.value, runner.slot)

    session = ContractSession(contract, crew, condition_registry=extensions)
    snapshot = None
    for node_id in ("S", "A", "B", "G", "E"):
        snapshot = session.select_node(node_id)
        logger.info("Selected %s -> pools=%s", node_id, snapshot.result.pools.as_dict())

    resolver = ContractResolver(parse_damage_table(DAMAGE_TABLE_ROWS), config=session.config)
    outcome = resolver.resolve(snapshot.result, session.runners)
    for roll in outcome.rolls:
        logger.info("Roll %d: %d %s", roll.number, roll.roll, roll.description)
    logger.info("Reward=%d risk=%d leveled up=%s", outcome.final_reward, outcome.risk_applied, list(outcome.leveled_up))


if __name__ == "__main__":
    main()
