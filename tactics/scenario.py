"""
Scenario loading.

A scenario file describes the board size, the terrain layout, the players
in turn order and the starting position of every unit:

    scenario:
      name: Ford
      width: 8
      height: 6
      players: [red, blue]
      max_turns: 30        # optional, counted in player turns
    terrain:
      default: plains
      forest: [[3, 1], [3, 2]]
    units:
      red:
        - {id: red_archer, type: archer, at: [0, 2]}
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from .errors import OutOfBoundsError, RulesError, ScenarioError
from .map import Grid
from .rules import Rules
from .turn import TurnManager
from .units import Unit, UnitManager

logger = logging.getLogger(__name__)

SCENARIO_DIR = Path(__file__).parent / "data" / "scenarios"


@dataclass
class Scenario:
    """A ready-to-play board and roster."""
    name: str
    grid: Grid
    units: UnitManager
    players: list[str]
    max_turns: Optional[int] = None

    def create_turn_manager(self, max_moves_per_turn: int = TurnManager.MAX_MOVES_PER_TURN, **kwargs) -> TurnManager:
        return TurnManager(
            self.grid,
            self.units,
            self.players,
            max_moves_per_turn=max_moves_per_turn,
            max_turns=self.max_turns,
            **kwargs,
        )


def resolve_scenario_path(name_or_path: Path | str) -> Path:
    """Accept a file path or the name of a packaged scenario."""
    path = Path(name_or_path)
    if path.exists():
        return path
    packaged = SCENARIO_DIR / f"{name_or_path}.yaml"
    if packaged.exists():
        return packaged
    raise ScenarioError(f"Scenario not found: {name_or_path}")


def load_scenario(name_or_path: Path | str, rules: Rules) -> Scenario:
    """Load a scenario file and build its grid and roster."""
    path = resolve_scenario_path(name_or_path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ScenarioError(f"Cannot parse scenario file {path}: {e}")

    scenario = build_scenario(data or {}, rules)
    logger.info(
        f"Scenario loaded: {scenario.name} ({scenario.grid.width}x{scenario.grid.height}, "
        f"{len(scenario.units.units)} units)"
    )
    return scenario


def _section(value, where: str, kind: type = dict):
    if value is None:
        return kind()
    if not isinstance(value, kind):
        raise ScenarioError(f"{where} must be a {'mapping' if kind is dict else 'list'}, "
                            f"got {type(value).__name__}")
    return value


def _coord(value, where: str) -> tuple[int, int]:
    if (not isinstance(value, (list, tuple)) or len(value) != 2
            or not all(isinstance(v, int) and not isinstance(v, bool) for v in value)):
        raise ScenarioError(f"{where}: expected an [x, y] pair of integers, got {value!r}")
    return tuple(value)


def build_scenario(data: dict, rules: Rules) -> Scenario:
    data = _section(data, "Scenario file")
    header = _section(data.get("scenario"), "'scenario'")
    try:
        width = int(header["width"])
        height = int(header["height"])
    except KeyError as e:
        raise ScenarioError(f"Scenario header is missing {e.args[0]!r}")
    except (TypeError, ValueError):
        raise ScenarioError(f"Scenario width/height must be integers, got {header.get('width')!r}x{header.get('height')!r}")

    unit_sections = _section(data.get("units"), "'units'")
    players = list(_section(header.get("players"), "'players'", list) or unit_sections.keys())
    if not players:
        raise ScenarioError("Scenario defines no players")

    terrain = dict(_section(data.get("terrain"), "'terrain'"))
    default_terrain = terrain.pop("default", "plains")
    try:
        grid = Grid.from_rules(width, height, rules, default_terrain=default_terrain)
    except ValueError as e:
        raise ScenarioError(str(e))

    for terrain_id, coords in terrain.items():
        if terrain_id not in rules.terrain_info:
            raise ScenarioError(f"Unknown terrain {terrain_id!r} in scenario")
        for coord in _section(coords, f"Terrain {terrain_id!r}", list):
            try:
                grid.set_terrain(_coord(coord, f"Terrain {terrain_id!r}"), terrain_id)
            except OutOfBoundsError as e:
                raise ScenarioError(f"Terrain {terrain_id!r}: {e}")

    units = UnitManager()
    for owner, entries in unit_sections.items():
        if owner not in players:
            raise ScenarioError(f"Units listed for {owner!r}, who is not a player")
        for entry in _section(entries, f"Units of {owner!r}", list):
            _place_unit(entry, owner, rules, grid, units)

    max_turns = header.get("max_turns")
    if max_turns is not None and (not isinstance(max_turns, int) or isinstance(max_turns, bool) or max_turns < 1):
        raise ScenarioError(f"max_turns must be a positive integer, got {max_turns!r}")
    return Scenario(
        name=header.get("name", "Unnamed"),
        grid=grid,
        units=units,
        players=players,
        max_turns=max_turns,
    )


def _place_unit(entry: dict, owner: str, rules: Rules, grid: Grid, units: UnitManager):
    entry = _section(entry, f"Unit entry for {owner!r}")
    try:
        unit_id = entry["id"]
        type_id = entry["type"]
        position = _coord(entry["at"], f"Unit {unit_id!r}")
    except KeyError as e:
        raise ScenarioError(f"Unit entry for {owner!r} is missing {e.args[0]!r}: {entry}")
    if not isinstance(unit_id, str) or not isinstance(type_id, str):
        raise ScenarioError(f"Unit entry for {owner!r} needs string 'id' and 'type': {entry}")

    try:
        unit_type = rules.unit_type(type_id)
    except RulesError as e:
        raise ScenarioError(str(e))

    unit = Unit(id=unit_id, owner=owner, unit_type=unit_type, position=position)
    try:
        grid.place_unit(unit_id, position)
        units.add_unit(unit)
    except (OutOfBoundsError, ValueError) as e:
        raise ScenarioError(f"Cannot place {unit_id}: {e}")
