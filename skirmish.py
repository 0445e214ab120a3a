#!/usr/bin/env python3
"""
Skirmish runner.

Builds units from a YAML scenario, resolves the scripted attacks turn by
turn and prints what happened.
"""

import logging
from pathlib import Path

import yaml

from mechcombat import (
    AttackEngine, AttackParams, AttackRequest, AttackType, BattleContext, DislodgeMethod,
    HexMap, MoveType, MovementState, TimeOfDay, UnitCatalog, UnitRoster, Weather,
    configure_logging, load_config,
)

logger = logging.getLogger(__name__)


def load_scenario(path: Path) -> dict:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def build_battle(scenario: dict, data_path: Path) -> tuple[UnitRoster, BattleContext]:
    """Roster and battlefield context for a scenario."""
    map_spec = scenario.get("map", {})
    hex_map = HexMap(
        width=map_spec.get("width", 16),
        height=map_spec.get("height", 17),
        data_path=data_path,
    )
    hex_map.load_layout(map_spec.get("terrain", []))

    context = BattleContext(
        hex_map=hex_map,
        weather=Weather(scenario.get("weather", "clear")),
        time_of_day=TimeOfDay(scenario.get("time_of_day", "day")),
    )

    catalog = UnitCatalog(data_path)
    roster = UnitRoster()
    for entry in scenario.get("units", []):
        unit = catalog.create(
            entry["template"],
            team=entry["team"],
            position=tuple(entry["position"]),
            unit_id=entry.get("id"),
        )
        movement = entry.get("movement")
        if movement:
            unit.movement = MovementState(MoveType(movement["type"]), movement.get("hexes", 0))
        roster.add(unit)
    return roster, context


def build_request(entry: dict) -> AttackRequest:
    method = entry.get("method")
    params = AttackParams(
        jump_distance=entry.get("jump_distance"),
        method=DislodgeMethod(method) if method else None,
    )
    return AttackRequest(
        attacker_id=entry["attacker"],
        target_id=entry["target"],
        attack_type=AttackType(entry["type"]),
        params=params,
    )


def run_scenario(engine: AttackEngine, scenario: dict, roster: UnitRoster, context: BattleContext):
    attacks = scenario.get("attacks", [])
    last_turn = max((a.get("turn", 1) for a in attacks), default=1)

    for turn in range(1, last_turn + 1):
        print(f"\n--- Turn {turn} ---")
        for entry in attacks:
            if entry.get("turn", 1) != turn:
                continue
            request = build_request(entry)
            outcome, applied = engine.resolve_request(request, roster, context)

            print(f"{request.attacker_id} {request.attack_type.value} {request.target_id}:")
            if outcome.to_hit is not None:
                print(f"  to-hit: {outcome.to_hit.describe()}")
            for message in outcome.messages:
                print(f"  {message}")
            if applied is not None and not applied.success:
                print(f"  not applied: {applied.reason}")
        engine.end_of_turn(roster, context)

    print("\n--- Status ---")
    for unit in roster.units.values():
        if unit.is_infantry:
            state = f"{unit.troops}/{unit.max_troops} troops, {unit.morale.value}"
        else:
            state = f"{'destroyed' if unit.destroyed else unit.posture.value}, heat {unit.heat}"
        print(f"{unit.id:10} {unit.name:24} {state}")


def main():
    """Run a skirmish scenario."""
    import argparse

    parser = argparse.ArgumentParser(description="Mech combat skirmish")
    parser.add_argument("--scenario", default="demo", help="Scenario name or YAML path")
    parser.add_argument("--data", default=None, help="Data directory path")
    parser.add_argument("--seed", type=int, default=None, help="Dice seed")
    parser.add_argument("--config", default=None, help="Config file path")

    args = parser.parse_args()

    config = load_config(args.config)
    if args.data:
        config.data_path = Path(args.data)
    if args.seed is not None:
        config.seed = args.seed
    configure_logging(config.log_level)

    scenario_path = Path(args.scenario)
    if not scenario_path.exists():
        scenario_path = config.data_path / "scenarios" / f"{args.scenario}.yaml"
    scenario = load_scenario(scenario_path)
    logger.info(f"Running {scenario.get('name', scenario_path.stem)} (seed {config.seed})")

    roster, context = build_battle(scenario, config.data_path)
    engine = AttackEngine(config=config)
    run_scenario(engine, scenario, roster, context)


if __name__ == "__main__":
    main()
